from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ytrelay.services.transcode import FfmpegTranscoder
    from ytrelay.services.ytdlp import YouTubeExtractor

@dataclass
class RuntimeState:
    """Centralized runtime state"""
    extractor: Optional["YouTubeExtractor"] = None
    transcoder: Optional["FfmpegTranscoder"] = None
    ytdlp_version: str = "unknown"
    ffmpeg_version: str = "unknown"

state = RuntimeState()
