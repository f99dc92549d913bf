from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VideoOption(CamelModel):
    """Selectable video quality"""
    itag: Optional[int] = None
    quality: str
    height: int
    format: str = "mp4"
    size: str
    has_audio: bool


class AudioOption(CamelModel):
    """Selectable audio quality"""
    itag: Optional[int] = None
    quality: str
    bitrate: int
    format: str = "mp3"
    size: str


class FormatOptions(CamelModel):
    video: List[VideoOption] = Field(default_factory=list)
    audio: List[AudioOption] = Field(default_factory=list)


class VideoInfo(CamelModel):
    """Video information response"""
    success: bool = True
    video_id: str
    title: str
    channel_name: str
    thumbnail: str
    duration: int
    duration_formatted: str
    view_count: str
    view_count_formatted: str
    description: str
    formats: FormatOptions


class DownloadUrlResponse(CamelModel):
    success: bool = True
    download_url: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str


class RootResponse(BaseModel):
    status: str
    service: str
    version: str
    endpoints: Dict[str, str]
