from .filename import sanitize_filename
from .formatting import format_duration, format_size, format_views
from .video_id import extract_video_id, is_valid_video_id, resolve_video_id, watch_url

__all__ = [
    "extract_video_id",
    "format_duration",
    "format_size",
    "format_views",
    "is_valid_video_id",
    "resolve_video_id",
    "sanitize_filename",
    "watch_url",
]
