import asyncio
import logging
import uuid
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from rich.console import Console
from rich.panel import Panel
from ytrelay.api import health, info, download
from ytrelay.config.settings import config
from ytrelay.core.errors import RelayError
from ytrelay.core.logging import log_event, log_info, setup_logging
from ytrelay.core.state import state
from ytrelay.services.transcode import FfmpegTranscoder
from ytrelay.services.ytdlp import SubprocessExecutor, YTDLPCommandBuilder, YouTubeExtractor

console = Console()

app = FastAPI(
    title=config.api.title,
    version=config.api.version,
    docs_url="/docs" if config.api.debug else None,
    redoc_url=None
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.api.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag the request for log correlation and log it"""
    request.state.request_id = uuid.uuid4().hex[:12]
    log_info(request, f"{request.method} {request.url.path}", event="http.request", path=request.url.path)
    return await call_next(request)

@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

# Routes
app.include_router(health.router, tags=["Health"])
app.include_router(info.router, tags=["Info"])
app.include_router(download.router, tags=["Download"])

async def _tool_version(cmd) -> str:
    try:
        result = await SubprocessExecutor.run(cmd, timeout=10.0)
    except (OSError, asyncio.TimeoutError):
        return "unknown"
    if result.returncode != 0:
        return "unknown"
    lines = result.stdout.decode(errors="replace").strip().splitlines()
    return lines[0] if lines else "unknown"

@app.on_event("startup")
async def startup_event():
    setup_logging()

    state.extractor = YouTubeExtractor()
    state.ytdlp_version = await _tool_version(YTDLPCommandBuilder.build_version_command())
    if state.ytdlp_version == "unknown":
        log_event(logging.ERROR, "startup.ytdlp_missing", f"✗ {config.ytdlp.binary} not found, extraction will fail")
    else:
        log_event(logging.INFO, "startup.ytdlp", f"✓ yt-dlp {state.ytdlp_version} loaded")

    state.transcoder = FfmpegTranscoder.detect()
    if state.transcoder:
        state.ffmpeg_version = await _tool_version([state.transcoder.binary, "-version"])
        log_event(logging.INFO, "startup.ffmpeg", "✓ FFmpeg loaded", ffmpeg_version=state.ffmpeg_version)
    else:
        log_event(logging.WARNING, "startup.ffmpeg_missing", "⚠ FFmpeg not available (audio conversion and merging disabled)")

@app.on_event("shutdown")
async def shutdown_event():
    if state.extractor:
        await state.extractor.aclose()
        state.extractor = None

def run():
    """Console entry point"""
    import uvicorn

    console.print(Panel.fit(
        f"[bold]{config.api.title} v{config.api.version}[/bold]\n"
        f"Local:  http://localhost:{config.port}\n\n"
        "Endpoints:\n"
        "  • GET /api/info?url=YOUTUBE_URL\n"
        "  • GET /api/download?url=URL&type=video&quality=720\n"
        "  • GET /api/get-url?url=URL&type=video&quality=720",
        border_style="green"
    ))
    uvicorn.run(app, host=config.host, port=config.port)

if __name__ == "__main__":
    run()
