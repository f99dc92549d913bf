from typing import Optional
from fastapi import Query, Request
from ytrelay.core.state import state
from ytrelay.models.request import DownloadQuery
from ytrelay.services.transcode import FfmpegTranscoder
from ytrelay.services.ytdlp import YouTubeExtractor
from ytrelay.utils.locale import get_locale

def get_extractor() -> YouTubeExtractor:
    """Extraction collaborator, created lazily if startup did not run"""
    if state.extractor is None:
        state.extractor = YouTubeExtractor()
    return state.extractor

def get_transcoder() -> Optional[FfmpegTranscoder]:
    """Optional transcoding collaborator; None when ffmpeg is unavailable"""
    return state.transcoder

def request_locale(request: Request) -> str:
    return get_locale(request.headers.get("accept-language"))

def download_query(
    url: Optional[str] = Query(None, description="YouTube URL"),
    video_id: Optional[str] = Query(None, alias="videoId", description="11-character video ID"),
    type: Optional[str] = Query(None, description="video or audio"),
    quality: Optional[str] = Query(None, description="Target height or audio bitrate"),
    itag: Optional[str] = Query(None, description="Unused"),
) -> DownloadQuery:
    """Collect the raw download query; defaults are applied by DownloadQuery"""
    return DownloadQuery(url=url, video_id=video_id, type=type, quality=quality, itag=itag)
