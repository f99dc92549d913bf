import pytest
from typing import List, Optional
from ytrelay.api.deps import get_extractor, get_transcoder
from ytrelay.core.errors import ExtractionError
from ytrelay.main import app
from ytrelay.models.internal import StreamDescriptor, VideoDetails, VideoMetadata

VIDEO_ID = "dQw4w9WgXcQ"


def combined(height: int, itag: int, container: str = "mp4", size: Optional[int] = None) -> StreamDescriptor:
    return StreamDescriptor(
        id=str(itag), itag=itag, has_video=True, has_audio=True,
        container=container, height=height, audio_bitrate=96,
        approximate_size=size, url=f"https://media.test/{itag}"
    )


def video_only(height: int, itag: int, container: str = "mp4", size: Optional[int] = None) -> StreamDescriptor:
    return StreamDescriptor(
        id=str(itag), itag=itag, has_video=True, has_audio=False,
        container=container, height=height, approximate_size=size,
        url=f"https://media.test/{itag}"
    )


def audio_only(bitrate: Optional[int], itag: int, container: str = "webm", size: Optional[int] = None) -> StreamDescriptor:
    return StreamDescriptor(
        id=str(itag), itag=itag, has_video=False, has_audio=True,
        container=container, audio_bitrate=bitrate, approximate_size=size,
        url=f"https://media.test/{itag}"
    )


class FakeExtractor:
    """Stands in for YouTubeExtractor; streams are the descriptor id as bytes"""

    def __init__(self, formats: List[StreamDescriptor], title: str = "Never Gonna Give You Up", error: Optional[Exception] = None):
        self.metadata = VideoMetadata(
            details=VideoDetails(
                video_id=VIDEO_ID,
                title=title,
                channel_name="Rick Astley",
                duration=213,
                view_count=1_234_567,
                description="x" * 600,
            ),
            formats=formats,
        )
        self.error = error
        self.metadata_calls: List[str] = []
        self.opened: List[str] = []

    async def get_metadata(self, video_url: str) -> VideoMetadata:
        self.metadata_calls.append(video_url)
        if self.error:
            raise self.error
        return self.metadata

    async def open_stream(self, metadata, descriptor):
        self.opened.append(descriptor.id)
        yield f"<{descriptor.id}>".encode()

    async def open_default_stream(self, video_url, quality="highest"):
        self.opened.append(quality)
        yield b"<highest>"


class FailingStreamExtractor(FakeExtractor):
    async def open_stream(self, metadata, descriptor):
        raise ExtractionError("HTTP 403")
        yield b""


class FakeTranscoder:
    def __init__(self):
        self.calls = []

    async def transcode(self, inputs, output_options):
        self.calls.append(list(output_options))
        parts = []
        for source in inputs:
            async for chunk in source:
                parts.append(chunk)
        yield b"ffmpeg:" + b"+".join(parts)


@pytest.fixture
def install():
    """Install fake collaborators on the app for one test"""
    def _install(extractor, transcoder=None):
        app.dependency_overrides[get_extractor] = lambda: extractor
        app.dependency_overrides[get_transcoder] = lambda: transcoder
        return app

    yield _install
    app.dependency_overrides.clear()
