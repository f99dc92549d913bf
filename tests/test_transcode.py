import logging
import os
import sys
import pytest
from ytrelay.config.settings import FfmpegConfig
from ytrelay.services import transcode
from ytrelay.services.transcode import FfmpegTranscoder, audio_to_mp3, merge_to_mp4


def test_merge_command_uses_one_pipe_per_input():
    cmd = FfmpegTranscoder("ffmpeg").build_command([5, 7], merge_to_mp4())

    assert cmd[cmd.index("-i") + 1] == "pipe:5"
    assert cmd.count("-i") == 2
    assert "pipe:7" in cmd
    assert cmd[cmd.index("-c:v") + 1] == "copy"
    assert cmd[cmd.index("-c:a") + 1] == "aac"
    assert "frag_keyframe+empty_moov" in cmd
    assert cmd[-1] == "pipe:1"


def test_audio_preset():
    options = audio_to_mp3(160)
    assert options[options.index("-b:a") + 1] == "160k"
    assert options[options.index("-c:a") + 1] == "libmp3lame"
    assert options[-2:] == ["-f", "mp3"]


def test_detect_when_installed(monkeypatch):
    monkeypatch.setattr(transcode.shutil, "which", lambda name: f"/usr/bin/{name}")
    transcoder = FfmpegTranscoder.detect(FfmpegConfig())
    assert transcoder is not None
    assert transcoder.binary == "/usr/bin/ffmpeg"


def test_detect_when_missing(monkeypatch):
    monkeypatch.setattr(transcode.shutil, "which", lambda name: None)
    assert FfmpegTranscoder.detect(FfmpegConfig()) is None


def test_detect_when_disabled(monkeypatch):
    monkeypatch.setattr(transcode.shutil, "which", lambda name: f"/usr/bin/{name}")
    assert FfmpegTranscoder.detect(FfmpegConfig(enabled=False)) is None


# Concatenates every `-i pipe:N` input, in argument order, onto stdout
STAND_IN_FFMPEG = '''#!{python}
import os
import sys

args = sys.argv[1:]
fds = [int(args[i + 1].split(":")[1]) for i, arg in enumerate(args) if arg == "-i"]
data = b""
for fd in fds:
    with os.fdopen(fd, "rb") as pipe:
        data += pipe.read()

if os.environ.get("STAND_IN_FFMPEG_FAIL"):
    sys.stderr.write("pipe:0: Invalid data found when processing input\\n")
    sys.exit(1)

sys.stdout.buffer.write(data)
'''


@pytest.fixture
def stand_in_ffmpeg(tmp_path):
    path = tmp_path / "ffmpeg"
    path.write_text(STAND_IN_FFMPEG.format(python=sys.executable))
    os.chmod(path, 0o755)
    return FfmpegTranscoder(str(path), chunk_size=16)


class Input:
    def __init__(self, payload: bytes, chunk: int = 7):
        self.payload = payload
        self.chunk = chunk
        self.closed = False

    async def stream(self):
        try:
            for i in range(0, len(self.payload), self.chunk):
                yield self.payload[i:i + self.chunk]
        finally:
            self.closed = True


@pytest.mark.skipif(sys.platform == "win32", reason="inputs are passed as inherited pipe fds")
class TestTranscode:
    @pytest.mark.asyncio
    async def test_each_input_gets_its_own_pipe(self, stand_in_ffmpeg):
        video, audio = Input(b"V" * 50), Input(b"A" * 30)

        output = b"".join([
            chunk async for chunk in stand_in_ffmpeg.transcode([video.stream(), audio.stream()], merge_to_mp4())
        ])

        assert output == b"V" * 50 + b"A" * 30
        assert video.closed and audio.closed

    @pytest.mark.asyncio
    async def test_single_input(self, stand_in_ffmpeg):
        output = b"".join([
            chunk async for chunk in stand_in_ffmpeg.transcode([Input(b"pcm" * 10).stream()], audio_to_mp3(128))
        ])
        assert output == b"pcm" * 10

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self, stand_in_ffmpeg, monkeypatch, caplog):
        monkeypatch.setenv("STAND_IN_FFMPEG_FAIL", "1")
        caplog.set_level(logging.INFO, logger="ytrelay")

        output = b"".join([
            chunk async for chunk in stand_in_ffmpeg.transcode([Input(b"junk").stream()], audio_to_mp3(128))
        ])

        assert output == b""
        failures = [r for r in caplog.records if getattr(r, "event", None) == "transcode.failed"]
        assert len(failures) == 1
        assert failures[0].returncode == 1
        assert "Invalid data found" in failures[0].getMessage()
