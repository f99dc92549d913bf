import re
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from ytrelay.config.settings import config
from ytrelay.models.internal import DownloadRequest, MediaType
from ytrelay.utils.video_id import resolve_video_id

LEADING_INT_RE = re.compile(r'^\s*([+-]?\d+)')

class DownloadQuery(BaseModel):
    """Raw query string of /api/download and /api/get-url"""
    url: Optional[str] = Field(None, description="YouTube URL")
    video_id: Optional[str] = Field(None, description="11-character video ID, takes precedence over url")
    type: MediaType = Field(MediaType.VIDEO, description="video or audio")
    quality: Optional[int] = Field(None, description="Target height (video) or MP3 bitrate in kbps (audio)")
    itag: Optional[str] = Field(None, description="Accepted for compatibility, not used for selection")

    @field_validator('type', mode='before')
    @classmethod
    def coerce_type(cls, v):
        """Anything other than "audio" is a video request"""
        if isinstance(v, str) and v.strip().lower() == MediaType.AUDIO.value:
            return MediaType.AUDIO
        if v == MediaType.AUDIO:
            return MediaType.AUDIO
        return MediaType.VIDEO

    @field_validator('quality', mode='before')
    @classmethod
    def parse_quality(cls, v):
        """Integer prefix ("720p" -> 720); zero, negative or unparseable means default"""
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, int):
            return v if v > 0 else None
        match = LEADING_INT_RE.match(str(v))
        if not match:
            return None
        value = int(match.group(1))
        return value if value > 0 else None

    def resolved_quality(self) -> int:
        if self.quality:
            return self.quality
        if self.type == MediaType.AUDIO:
            return config.download.default_audio_bitrate
        return config.download.default_video_quality

    def to_request(self, locale: Optional[str] = None) -> DownloadRequest:
        """Validate the identifier and apply defaults. Raises InvalidInput."""
        video_id = resolve_video_id(url=self.url, video_id=self.video_id, locale=locale)

        return DownloadRequest(
            video_id=video_id,
            media_type=self.type,
            quality=self.resolved_quality(),
            itag=self.itag
        )
