from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from ytrelay.api.deps import get_extractor, request_locale
from ytrelay.core.errors import RelayError, UpstreamFailure
from ytrelay.core.logging import log_info, log_error
from ytrelay.models.response import VideoInfo
from ytrelay.services.info import VideoInfoService
from ytrelay.services.ytdlp import YouTubeExtractor
from ytrelay.utils.video_id import resolve_video_id
from ytrelay.i18n import i18n
import functools

router = APIRouter()

@router.get("/api/info", response_model=VideoInfo)
async def get_video_info(
    request: Request,
    url: Optional[str] = Query(None, description="YouTube URL"),
    video_id: Optional[str] = Query(None, alias="videoId", description="11-character video ID"),
    locale: str = Depends(request_locale),
    extractor: YouTubeExtractor = Depends(get_extractor),
):
    """Video metadata and the selectable video/audio qualities"""
    _ = functools.partial(i18n.get, locale=locale)

    video_id = resolve_video_id(url=url, video_id=video_id, locale=locale)
    log_info(request, _("log.fetching_info", video_id=video_id), event="info.fetch", video_id=video_id)

    try:
        video_info = await VideoInfoService.fetch(extractor, video_id)
    except RelayError:
        raise
    except Exception as e:
        log_error(request, _("log.request_error", reason=str(e)), event="info.failed", video_id=video_id)
        raise UpstreamFailure(_("error.info_failed"), str(e))

    log_info(
        request,
        _("log.info_retrieved", title=video_info.title),
        event="info.retrieved",
        video_id=video_id,
        video_formats=len(video_info.formats.video),
        audio_formats=len(video_info.formats.audio)
    )
    return video_info
