from ytrelay.models.internal import VideoMetadata
from ytrelay.models.response import VideoInfo
from ytrelay.services.format import FormatClassifier
from ytrelay.services.ytdlp import YouTubeExtractor
from ytrelay.utils.formatting import format_duration, format_views
from ytrelay.utils.video_id import watch_url

DESCRIPTION_MAX_CHARS = 500
THUMBNAIL_URL = "https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"

def build_video_info(video_id: str, metadata: VideoMetadata) -> VideoInfo:
    """Shape extracted metadata into the /api/info payload"""
    details = metadata.details
    view_count = str(details.view_count or 0)

    return VideoInfo(
        video_id=video_id,
        title=details.title,
        channel_name=details.channel_name or "Unknown",
        thumbnail=THUMBNAIL_URL.format(video_id=video_id),
        duration=details.duration,
        duration_formatted=format_duration(details.duration),
        view_count=view_count,
        view_count_formatted=format_views(view_count),
        description=details.description[:DESCRIPTION_MAX_CHARS],
        formats=FormatClassifier.classify(metadata.formats)
    )

class VideoInfoService:
    """Video info fetching service"""

    @staticmethod
    async def fetch(extractor: YouTubeExtractor, video_id: str) -> VideoInfo:
        """Extract metadata for one video. ExtractionError propagates."""
        metadata = await extractor.get_metadata(watch_url(video_id))
        return build_video_info(video_id, metadata)
