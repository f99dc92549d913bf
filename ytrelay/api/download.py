from typing import Optional
from urllib.parse import urlencode
from fastapi import APIRouter, Request, Depends
from ytrelay.api.deps import download_query, get_extractor, get_transcoder, request_locale
from ytrelay.config.settings import config
from ytrelay.core.errors import RelayError, UpstreamFailure
from ytrelay.core.logging import log_info, log_error
from ytrelay.models.internal import PlanStrategy
from ytrelay.models.request import DownloadQuery
from ytrelay.models.response import DownloadUrlResponse
from ytrelay.services.format import FormatSelector
from ytrelay.services.stream import StreamService
from ytrelay.services.transcode import FfmpegTranscoder
from ytrelay.services.ytdlp import YouTubeExtractor
from ytrelay.utils.video_id import watch_url
from ytrelay.i18n import i18n
import functools

router = APIRouter()

PLAN_LOG_KEYS = {
    PlanStrategy.COMBINED: "log.using_combined",
    PlanStrategy.MERGE: "log.merging",
    PlanStrategy.VIDEO_ONLY: "log.video_only",
    PlanStrategy.DEFAULT: "log.fallback_highest",
    PlanStrategy.AUDIO: "log.audio_format",
}

@router.get("/api/download")
async def download(
    request: Request,
    query: DownloadQuery = Depends(download_query),
    locale: str = Depends(request_locale),
    extractor: YouTubeExtractor = Depends(get_extractor),
    transcoder: Optional[FfmpegTranscoder] = Depends(get_transcoder),
):
    """Stream the video (mp4) or audio (mp3) as an attachment"""
    _ = functools.partial(i18n.get, locale=locale)

    download_request = query.to_request(locale)
    video_id = download_request.video_id
    log_info(
        request,
        _("log.download_start", video_id=video_id, media_type=download_request.media_type.value, quality=download_request.quality),
        event="download.start",
        video_id=video_id,
        media_type=download_request.media_type.value,
        quality=download_request.quality
    )

    try:
        metadata = await extractor.get_metadata(watch_url(video_id))

        plan = FormatSelector.select(
            download_request.media_type,
            download_request.quality,
            metadata.formats,
            can_transcode=transcoder is not None
        )
        selected = plan.video or plan.audio
        log_info(
            request,
            _(
                PLAN_LOG_KEYS[plan.strategy],
                height=selected.height if selected else None,
                itag=selected.id if selected else None,
                bitrate=selected.audio_bitrate if selected else None
            ),
            event="download.plan",
            video_id=video_id,
            strategy=plan.strategy.value,
            video_format=plan.video.id if plan.video else None,
            audio_format=plan.audio.id if plan.audio else None,
            transcode=plan.transcode
        )

        source = StreamService.open_source(plan, metadata, extractor, transcoder)
        body = await StreamService.prime(source, request, locale)
    except RelayError as e:
        log_error(request, _("log.request_error", reason=str(e)), event="download.failed", video_id=video_id)
        raise type(e)(_("error.download_failed"), e.message or e.error)
    except Exception as e:
        log_error(request, _("log.request_error", reason=str(e)), event="download.failed", video_id=video_id)
        raise UpstreamFailure(_("error.download_failed"), str(e))

    return StreamService.build_response(source, body, plan, metadata.details.title, video_id)

@router.get("/api/get-url", response_model=DownloadUrlResponse)
async def get_download_url(
    request: Request,
    query: DownloadQuery = Depends(download_query),
    locale: str = Depends(request_locale),
):
    """Link to this server's own /api/download with the ID already resolved"""
    download_request = query.to_request(locale)

    base_url = (config.api.public_base_url or str(request.base_url)).rstrip("/")
    params = urlencode({
        "videoId": download_request.video_id,
        "type": download_request.media_type.value,
        "quality": download_request.quality,
    })

    return DownloadUrlResponse(download_url=f"{base_url}/api/download?{params}")
