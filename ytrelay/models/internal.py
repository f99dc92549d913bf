from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional

class MediaType(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"

class StreamDescriptor(BaseModel):
    """One encoded variant of a video, as reported by yt-dlp"""
    model_config = ConfigDict(frozen=True)

    id: str
    itag: Optional[int] = None
    has_video: bool
    has_audio: bool
    container: str
    height: Optional[int] = None
    audio_bitrate: Optional[int] = None
    approximate_size: Optional[int] = None
    # Reported byte count, never an estimate
    exact_size: Optional[int] = None
    url: Optional[str] = None
    http_headers: Dict[str, str] = Field(default_factory=dict)

    @property
    def is_combined(self) -> bool:
        return self.has_video and self.has_audio

    @property
    def is_video_only(self) -> bool:
        return self.has_video and not self.has_audio

    @property
    def is_audio_only(self) -> bool:
        return self.has_audio and not self.has_video

class VideoDetails(BaseModel):
    video_id: str
    title: str = "Unknown"
    channel_name: Optional[str] = None
    duration: int = 0
    view_count: Optional[int] = None
    description: str = ""

class VideoMetadata(BaseModel):
    """Everything one extraction returns"""
    details: VideoDetails
    formats: List[StreamDescriptor] = Field(default_factory=list)

class DownloadRequest(BaseModel):
    """Internal download request (separated from HTTP concerns)"""
    video_id: str
    media_type: MediaType = MediaType.VIDEO
    quality: int
    itag: Optional[str] = None

class PlanStrategy(str, Enum):
    COMBINED = "combined"
    MERGE = "merge"
    VIDEO_ONLY = "video_only"
    DEFAULT = "default"
    AUDIO = "audio"

class DownloadPlan(BaseModel):
    """Which descriptor(s) to fetch and how to package them"""
    strategy: PlanStrategy
    video: Optional[StreamDescriptor] = None
    audio: Optional[StreamDescriptor] = None
    transcode: bool = False
    audio_bitrate: Optional[int] = None
    ext: str = "mp4"
    media_type: str = "video/mp4"
