from typing import Any, AsyncIterator, Dict, List, Optional, NamedTuple
from collections import deque
from contextlib import suppress
import asyncio
import json
import httpx
from ytrelay.config.settings import config
from ytrelay.core.errors import ExtractionError, NoUsableFormat
from ytrelay.i18n import i18n
from ytrelay.models.internal import StreamDescriptor, VideoDetails, VideoMetadata

STDERR_MAX_LINES = 50
DIRECT_PROTOCOLS = {"http", "https"}

class CompletedProcess(NamedTuple):
    """Subprocess result"""
    returncode: int
    stdout: bytes
    stderr: bytes

class SubprocessExecutor:
    """Execute subprocess with consistent error handling"""

    @staticmethod
    async def run(
        cmd: List[str],
        timeout: float,
        capture_stderr: bool = True
    ) -> CompletedProcess:
        """
        Run subprocess with timeout and proper cleanup.
        Prevents process leaks and ensures consistent error handling.
        """
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE if capture_stderr else asyncio.subprocess.DEVNULL,
            stdin=asyncio.subprocess.DEVNULL
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout
            )

            return CompletedProcess(
                returncode=process.returncode,
                stdout=stdout,
                stderr=stderr if capture_stderr else b""
            )

        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise
        except BaseException:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

class YTDLPCommandBuilder:
    """Build yt-dlp commands"""

    @staticmethod
    def _common() -> List[str]:
        return [
            '--no-playlist',
            '--socket-timeout', str(config.ytdlp.socket_timeout),
            '--retries', str(config.ytdlp.retries),
        ]

    @staticmethod
    def build_version_command() -> List[str]:
        return [config.ytdlp.binary, '--version']

    @staticmethod
    def build_info_command(url: str) -> List[str]:
        """Build command for fetching video info"""
        return [
            config.ytdlp.binary,
            '--dump-json',
            *YTDLPCommandBuilder._common(),
            url
        ]

    @staticmethod
    def build_stream_command(url: str, format_str: str) -> List[str]:
        """Build command writing the selected format to stdout"""
        return [
            config.ytdlp.binary,
            url,
            '-f', format_str,
            '-o', '-',
            *YTDLPCommandBuilder._common(),
            # Keep stdout clean for binary output
            '--no-progress',
            '--quiet',
        ]

def _as_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return None

def descriptor_from_ytdlp(fmt: Dict[str, Any]) -> Optional[StreamDescriptor]:
    """
    Map one entry of yt-dlp's ``formats`` list.
    Returns None for entries that carry neither track (storyboards) or that
    are manifests rather than directly fetchable files.
    """
    vcodec = fmt.get("vcodec")
    acodec = fmt.get("acodec")
    has_video = vcodec not in (None, "none")
    has_audio = acodec not in (None, "none")
    if not has_video and not has_audio:
        return None

    protocol = fmt.get("protocol") or "https"
    if protocol not in DIRECT_PROTOCOLS:
        return None

    format_id = str(fmt.get("format_id", ""))

    return StreamDescriptor(
        id=format_id,
        itag=int(format_id) if format_id.isdigit() else None,
        has_video=has_video,
        has_audio=has_audio,
        container=fmt.get("ext") or "",
        height=_as_int(fmt.get("height")) if has_video else None,
        audio_bitrate=_as_int(fmt.get("abr")) if has_audio else None,
        approximate_size=_as_int(fmt.get("filesize") or fmt.get("filesize_approx")),
        exact_size=_as_int(fmt.get("filesize")),
        url=fmt.get("url"),
        http_headers={str(k): str(v) for k, v in (fmt.get("http_headers") or {}).items()},
    )

def metadata_from_ytdlp(info: Dict[str, Any]) -> VideoMetadata:
    """Build VideoMetadata from ``yt-dlp --dump-json`` output"""
    details = VideoDetails(
        video_id=info.get("id") or "",
        title=info.get("title") or "Unknown",
        channel_name=info.get("channel") or info.get("uploader"),
        duration=_as_int(info.get("duration")) or 0,
        view_count=_as_int(info.get("view_count")),
        description=info.get("description") or "",
    )

    formats = []
    for fmt in info.get("formats") or []:
        descriptor = descriptor_from_ytdlp(fmt)
        if descriptor is not None:
            formats.append(descriptor)

    return VideoMetadata(details=details, formats=formats)

def choose_format(
    formats: List[StreamDescriptor],
    quality: str = "highest",
    filter: Optional[str] = None
) -> StreamDescriptor:
    """
    Pick one descriptor the way ytdl-style choosers do.

    filter: ``audioonly``, ``videoonly``, ``audioandvideo`` or None.
    quality: ``highest`` (prefers combined streams, then height, then bitrate),
    ``highestaudio``, ``highestvideo`` or ``lowest``.
    Raises NoUsableFormat when nothing passes the filter.
    """
    filters = {
        None: lambda f: True,
        "audioonly": lambda f: f.is_audio_only,
        "videoonly": lambda f: f.is_video_only,
        "audioandvideo": lambda f: f.is_combined,
    }
    if filter not in filters:
        raise ValueError(f"Unknown format filter: {filter}")
    if quality not in ("highest", "highestaudio", "highestvideo", "lowest"):
        raise ValueError(f"Unknown format quality: {quality}")

    candidates = [f for f in formats if filters[filter](f)]
    if not candidates:
        raise NoUsableFormat(i18n.get("error.no_matching_format", criteria=f"{quality}/{filter or 'any'}"))

    def video_key(f: StreamDescriptor):
        return (f.height or 0, f.audio_bitrate or 0)

    if quality == "highestaudio":
        return max(candidates, key=lambda f: (f.audio_bitrate or 0, -(f.height or 0)))
    if quality == "highestvideo":
        return max(candidates, key=video_key)
    if quality == "lowest":
        return min(candidates, key=video_key)
    return max(candidates, key=lambda f: (f.is_combined, *video_key(f)))

class YouTubeExtractor:
    """yt-dlp backed extraction: metadata and byte streams"""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        # Reuse client for keep-alive
        self.client = client or httpx.AsyncClient(follow_redirects=True, timeout=30.0)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def get_metadata(self, video_url: str) -> VideoMetadata:
        cmd = YTDLPCommandBuilder.build_info_command(video_url)

        try:
            result = await SubprocessExecutor.run(cmd, timeout=config.download.info_timeout)
        except asyncio.TimeoutError:
            raise ExtractionError(f"yt-dlp timed out after {config.download.info_timeout:.0f}s")
        except OSError as e:
            raise ExtractionError(f"Cannot run yt-dlp: {e}")

        if result.returncode != 0:
            error_msg = result.stderr.decode(errors="replace").strip()
            raise ExtractionError(error_msg[:200] or f"yt-dlp exited with {result.returncode}")

        try:
            info = json.loads(result.stdout.decode())
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ExtractionError(f"Unparseable yt-dlp output: {e}")

        return metadata_from_ytdlp(info)

    async def open_stream(
        self,
        metadata: VideoMetadata,
        descriptor: StreamDescriptor
    ) -> AsyncIterator[bytes]:
        """
        Stream a descriptor's bytes from its direct URL.
        Fetched in Range windows until a short 206, a 416 or a plain 200
        (server ignoring Range). Only ``exact_size`` bounds the windows,
        ``approximate_size`` may be a bitrate estimate.
        """
        if not descriptor.url:
            raise ExtractionError(f"Format {descriptor.id} of {metadata.details.video_id} has no URL")

        window = config.download.range_chunk_size
        chunk_size = config.download.chunk_size
        start = 0

        while True:
            end = start + window - 1
            if descriptor.exact_size:
                end = min(end, descriptor.exact_size - 1)
                if start > end:
                    return

            headers = {**descriptor.http_headers, "Range": f"bytes={start}-{end}"}
            req = self.client.build_request("GET", descriptor.url, headers=headers)
            try:
                response = await self.client.send(req, stream=True)
            except httpx.HTTPError as e:
                raise ExtractionError(f"Fetching format {descriptor.id} failed: {e}")

            received = 0
            try:
                if response.status_code == 416:
                    return
                if response.status_code >= 400:
                    raise ExtractionError(f"Fetching format {descriptor.id} failed: HTTP {response.status_code}")

                async for chunk in response.aiter_bytes(chunk_size):
                    received += len(chunk)
                    yield chunk
            except httpx.HTTPError as e:
                raise ExtractionError(f"Fetching format {descriptor.id} failed: {e}")
            finally:
                await response.aclose()

            if response.status_code != 206 or received < end - start + 1:
                return
            start = end + 1

    async def open_default_stream(self, video_url: str, quality: str = "highest") -> AsyncIterator[bytes]:
        """
        Let yt-dlp pick the stream itself and pipe it out.
        ``quality`` is either "highest" or a raw yt-dlp format string.
        """
        format_str = config.ytdlp.default_format if quality == "highest" else quality
        cmd = YTDLPCommandBuilder.build_stream_command(video_url, format_str)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL
            )
        except OSError as e:
            raise ExtractionError(f"Cannot run yt-dlp: {e}")

        stderr_lines = deque(maxlen=STDERR_MAX_LINES)

        async def drain_stderr():
            """Drain stderr to prevent buffer deadlock"""
            while True:
                line = await process.stderr.readline()
                if not line:
                    break
                stderr_lines.append(line.decode(errors="replace").strip())

        stderr_task = asyncio.create_task(drain_stderr())

        try:
            while True:
                chunk = await process.stdout.read(config.download.chunk_size)
                if not chunk:
                    break
                yield chunk

            returncode = await process.wait()
            await stderr_task
            if returncode != 0:
                error_summary = '\n'.join(stderr_lines)
                raise ExtractionError(f"yt-dlp failed: {error_summary[:200]}")
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()
            stderr_task.cancel()
            with suppress(asyncio.CancelledError):
                await stderr_task
