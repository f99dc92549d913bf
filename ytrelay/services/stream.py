from typing import AsyncIterator, Dict, Optional
from urllib.parse import quote
from fastapi import Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from ytrelay.core.logging import log_error
from ytrelay.i18n import i18n
from ytrelay.models.internal import DownloadPlan, PlanStrategy, VideoMetadata
from ytrelay.services.transcode import FfmpegTranscoder, audio_to_mp3, merge_to_mp4
from ytrelay.services.ytdlp import YouTubeExtractor
from ytrelay.utils.filename import sanitize_filename
from ytrelay.utils.video_id import watch_url

class StreamService:
    """Turn a DownloadPlan into a byte stream plus response headers"""

    @staticmethod
    def open_source(
        plan: DownloadPlan,
        metadata: VideoMetadata,
        extractor: YouTubeExtractor,
        transcoder: Optional[FfmpegTranscoder]
    ) -> AsyncIterator[bytes]:
        """Nothing is fetched until the returned iterator is consumed"""
        if plan.strategy in (PlanStrategy.COMBINED, PlanStrategy.VIDEO_ONLY):
            return extractor.open_stream(metadata, plan.video)

        if plan.strategy == PlanStrategy.MERGE:
            return transcoder.transcode(
                [
                    extractor.open_stream(metadata, plan.video),
                    extractor.open_stream(metadata, plan.audio),
                ],
                merge_to_mp4()
            )

        if plan.strategy == PlanStrategy.AUDIO:
            source = extractor.open_stream(metadata, plan.audio)
            if plan.transcode and transcoder is not None:
                return transcoder.transcode([source], audio_to_mp3(plan.audio_bitrate))
            return source

        return extractor.open_default_stream(watch_url(metadata.details.video_id), quality="highest")

    @staticmethod
    def build_headers(title: str, video_id: str, plan: DownloadPlan) -> Dict[str, str]:
        filename = f"{sanitize_filename(title) or video_id}.{plan.ext}"
        return {
            'Content-Disposition': f'attachment; filename="{quote(filename, safe="!~*()")}"',
            'X-Content-Type-Options': 'nosniff',
            'Cache-Control': 'no-cache',
        }

    @staticmethod
    def build_response(
        source: AsyncIterator[bytes],
        body: AsyncIterator[bytes],
        plan: DownloadPlan,
        title: str,
        video_id: str
    ) -> StreamingResponse:
        """
        Attachment response for a primed body. The background close also runs
        when the body was never iterated (client gone before the first send).
        """
        return StreamingResponse(
            body,
            media_type=plan.media_type,
            headers=StreamService.build_headers(title, video_id, plan),
            background=BackgroundTask(StreamService.close, source, body)
        )

    @staticmethod
    async def close(source: AsyncIterator[bytes], body: AsyncIterator[bytes]) -> None:
        await body.aclose()
        # Kills the yt-dlp or ffmpeg child behind the source, if still running
        await source.aclose()

    @staticmethod
    async def prime(source: AsyncIterator[bytes], request: Request, locale: Optional[str] = None) -> AsyncIterator[bytes]:
        """
        Pull the first chunk before any header goes out, so opening failures
        still reach the caller as JSON. Later failures only truncate the body.
        """
        try:
            first = await source.__anext__()
        except StopAsyncIteration:
            first = b""

        async def generate():
            try:
                if first:
                    yield first
                async for chunk in source:
                    yield chunk
            except Exception as e:
                log_error(
                    request,
                    i18n.get("log.stream_error", locale=locale, reason=str(e)),
                    event="download.truncated"
                )
            finally:
                await source.aclose()

        return generate()
