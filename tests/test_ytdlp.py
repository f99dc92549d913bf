import httpx
import pytest
from conftest import audio_only, combined, video_only
from ytrelay.config.settings import config
from ytrelay.core.errors import ExtractionError, NoUsableFormat
from ytrelay.models.internal import StreamDescriptor, VideoDetails, VideoMetadata
from ytrelay.services.ytdlp import (
    YTDLPCommandBuilder,
    YouTubeExtractor,
    choose_format,
    descriptor_from_ytdlp,
    metadata_from_ytdlp,
)

DUMP = {
    "id": "dQw4w9WgXcQ",
    "title": "Never Gonna Give You Up",
    "channel": "Rick Astley",
    "uploader": "RickAstleyVEVO",
    "duration": 212.9,
    "view_count": 1500000000,
    "description": "The official video",
    "formats": [
        {"format_id": "sb0", "ext": "mhtml", "vcodec": "none", "acodec": "none", "protocol": "mhtml"},
        {"format_id": "140", "ext": "m4a", "vcodec": "none", "acodec": "mp4a.40.2", "abr": 129.477,
         "filesize": 3433514, "protocol": "https", "url": "https://rr.test/140",
         "http_headers": {"User-Agent": "UA"}},
        {"format_id": "18", "ext": "mp4", "vcodec": "avc1.42001E", "acodec": "mp4a.40.2", "height": 360,
         "abr": 96, "filesize_approx": 12000000, "protocol": "https", "url": "https://rr.test/18"},
        {"format_id": "137", "ext": "mp4", "vcodec": "avc1.640028", "acodec": "none", "height": 1080,
         "protocol": "https", "url": "https://rr.test/137"},
        {"format_id": "96", "ext": "mp4", "vcodec": "avc1.640028", "acodec": "mp4a.40.2", "height": 1080,
         "protocol": "m3u8_native", "url": "https://manifest.test/96.m3u8"},
    ],
}


def test_metadata_mapping():
    metadata = metadata_from_ytdlp(DUMP)

    assert metadata.details.video_id == "dQw4w9WgXcQ"
    assert metadata.details.channel_name == "Rick Astley"
    assert metadata.details.duration == 213
    assert [f.id for f in metadata.formats] == ["140", "18", "137"]


def test_descriptor_mapping():
    audio, muxed, video = metadata_from_ytdlp(DUMP).formats

    assert audio.is_audio_only and audio.audio_bitrate == 129 and audio.height is None
    assert audio.itag == 140
    assert audio.approximate_size == audio.exact_size == 3433514
    assert audio.http_headers == {"User-Agent": "UA"}
    assert muxed.is_combined and muxed.container == "mp4" and muxed.height == 360
    assert muxed.approximate_size == 12000000
    assert muxed.exact_size is None
    assert video.is_video_only and video.audio_bitrate is None


def test_non_numeric_format_id_has_no_itag():
    descriptor = descriptor_from_ytdlp({"format_id": "hls-720", "ext": "mp4", "vcodec": "avc1", "acodec": "none", "height": 720})
    assert descriptor.itag is None
    assert descriptor.id == "hls-720"


def test_choose_highest_audio():
    formats = [combined(360, 18), audio_only(64, 139), audio_only(160, 251), audio_only(128, 140)]
    assert choose_format(formats, quality="highestaudio", filter="audioonly").id == "251"


def test_choose_highest_prefers_combined():
    formats = [video_only(1080, 137), combined(360, 18), combined(720, 22)]
    assert choose_format(formats, quality="highest").id == "22"
    assert choose_format(formats, quality="highestvideo", filter="videoonly").id == "137"
    assert choose_format(formats, quality="lowest").id == "18"


def test_choose_without_candidates():
    with pytest.raises(NoUsableFormat):
        choose_format([combined(360, 18)], quality="highestaudio", filter="audioonly")


def test_choose_rejects_unknown_criteria():
    with pytest.raises(ValueError):
        choose_format([], filter="sideways")


def test_info_command():
    cmd = YTDLPCommandBuilder.build_info_command("https://www.youtube.com/watch?v=dQw4w9WgXcQ")
    assert cmd[0] == "yt-dlp"
    assert "--dump-json" in cmd
    assert "--no-playlist" in cmd
    assert cmd[-1] == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


def test_stream_command_writes_to_stdout():
    cmd = YTDLPCommandBuilder.build_stream_command("https://www.youtube.com/watch?v=dQw4w9WgXcQ", "best")
    assert cmd[cmd.index("-f") + 1] == "best"
    assert cmd[cmd.index("-o") + 1] == "-"
    assert "--quiet" in cmd


class MediaServer:
    """Serves ``payload`` over HTTP with byte-range support"""

    def __init__(self, payload: bytes, honour_range: bool = True, status: int = 200):
        self.payload = payload
        self.honour_range = honour_range
        self.status = status
        self.ranges = []
        self.headers = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.headers.append(dict(request.headers))
        if self.status >= 400:
            return httpx.Response(self.status)

        byte_range = request.headers.get("range")
        if not self.honour_range or not byte_range:
            return httpx.Response(200, content=self.payload)

        start, end = (int(n) for n in byte_range.split("=", 1)[1].split("-"))
        self.ranges.append((start, end))
        if start >= len(self.payload):
            return httpx.Response(416)
        body = self.payload[start:end + 1]
        return httpx.Response(
            206,
            content=body,
            headers={"Content-Range": f"bytes {start}-{start + len(body) - 1}/{len(self.payload)}"}
        )


def media_descriptor(**kwargs) -> StreamDescriptor:
    return StreamDescriptor(
        id="18", itag=18, has_video=True, has_audio=True, container="mp4", height=360,
        url="https://rr.test/videoplayback?itag=18", http_headers={"User-Agent": "UA"}, **kwargs
    )


async def fetch_all(server: MediaServer, descriptor: StreamDescriptor) -> bytes:
    extractor = YouTubeExtractor(httpx.AsyncClient(transport=httpx.MockTransport(server)))
    metadata = VideoMetadata(details=VideoDetails(video_id="dQw4w9WgXcQ"), formats=[descriptor])
    try:
        return b"".join([chunk async for chunk in extractor.open_stream(metadata, descriptor)])
    finally:
        await extractor.aclose()


class TestOpenStream:
    @pytest.fixture(autouse=True)
    def small_windows(self, monkeypatch):
        monkeypatch.setattr(config.download, "range_chunk_size", 1024)
        monkeypatch.setattr(config.download, "chunk_size", 256)

    @pytest.mark.asyncio
    async def test_size_estimate_does_not_cut_the_file(self):
        payload = bytes(range(256)) * 16
        server = MediaServer(payload)

        data = await fetch_all(server, media_descriptor(approximate_size=600))

        assert data == payload
        assert server.ranges[-1] == (4096, 5119)

    @pytest.mark.asyncio
    async def test_exact_size_bounds_the_last_window(self):
        payload = b"v" * 2500
        server = MediaServer(payload)

        data = await fetch_all(server, media_descriptor(exact_size=2500))

        assert data == payload
        assert server.ranges == [(0, 1023), (1024, 2047), (2048, 2499)]
        assert all(h["user-agent"] == "UA" for h in server.headers)

    @pytest.mark.asyncio
    async def test_short_partial_response_ends_the_stream(self):
        payload = b"a" * 1500
        server = MediaServer(payload)

        data = await fetch_all(server, media_descriptor())

        assert data == payload
        assert server.ranges == [(0, 1023), (1024, 2047)]

    @pytest.mark.asyncio
    async def test_server_ignoring_range(self):
        payload = b"z" * 3000
        server = MediaServer(payload, honour_range=False)

        data = await fetch_all(server, media_descriptor())

        assert data == payload
        assert len(server.headers) == 1

    @pytest.mark.asyncio
    async def test_http_error(self):
        with pytest.raises(ExtractionError, match="HTTP 403"):
            await fetch_all(MediaServer(b"", status=403), media_descriptor())

    @pytest.mark.asyncio
    async def test_missing_url(self):
        descriptor = media_descriptor().model_copy(update={"url": None})
        with pytest.raises(ExtractionError, match="no URL"):
            await fetch_all(MediaServer(b""), descriptor)
