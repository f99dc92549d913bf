import asyncio
import logging
import os
import shutil
from collections import deque
from contextlib import suppress
from typing import AsyncIterator, List, Optional, Sequence
from ytrelay.config.settings import FfmpegConfig, config
from ytrelay.core.errors import TranscodeFailure
from ytrelay.core.logging import log_event

STDERR_MAX_LINES = 50

def audio_to_mp3(bitrate: int) -> List[str]:
    """Re-encode the first input to MP3 at ``bitrate`` kbps"""
    return ['-vn', '-c:a', 'libmp3lame', '-b:a', f'{bitrate}k', '-f', 'mp3']

def merge_to_mp4() -> List[str]:
    """Video of input 0 copied, audio of input 1 re-encoded, fragmented for piping"""
    return [
        '-map', '0:v:0',
        '-map', '1:a:0',
        '-c:v', 'copy',
        '-c:a', 'aac',
        '-movflags', 'frag_keyframe+empty_moov',
        '-f', 'mp4',
    ]

def _write_all(fd: int, data: bytes) -> None:
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]

class FfmpegTranscoder:
    """ffmpeg run as a child process fed through OS pipes"""

    def __init__(self, binary: str, chunk_size: Optional[int] = None):
        self.binary = binary
        self.chunk_size = chunk_size or config.download.chunk_size

    @classmethod
    def detect(cls, ffmpeg_config: Optional[FfmpegConfig] = None) -> Optional["FfmpegTranscoder"]:
        """Return a transcoder if ffmpeg is enabled and on PATH, else None"""
        ffmpeg_config = ffmpeg_config or config.ffmpeg
        if not ffmpeg_config.enabled:
            return None
        path = shutil.which(ffmpeg_config.binary)
        if not path:
            return None
        return cls(path)

    def build_command(self, input_fds: Sequence[int], output_options: Sequence[str]) -> List[str]:
        cmd = [self.binary, '-hide_banner', '-loglevel', 'error', '-nostdin']
        for fd in input_fds:
            cmd.extend(['-i', f'pipe:{fd}'])
        cmd.extend(output_options)
        cmd.append('pipe:1')
        return cmd

    async def transcode(
        self,
        inputs: Sequence[AsyncIterator[bytes]],
        output_options: Sequence[str]
    ) -> AsyncIterator[bytes]:
        """
        Pipe every input into ffmpeg as a separate ``-i`` and yield its output.

        A failing ffmpeg is logged as a TranscodeFailure and the output just
        ends. Closing this iterator kills ffmpeg and closes the inputs.
        """
        pipes = [os.pipe() for _ in inputs]
        read_fds = [r for r, _ in pipes]
        write_fds = [w for _, w in pipes]
        cmd = self.build_command(read_fds, output_options)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                pass_fds=read_fds
            )
        except BaseException:
            for fd in read_fds + write_fds:
                os.close(fd)
            raise

        # The child holds its own copies of the read ends
        for fd in read_fds:
            os.close(fd)

        stderr_lines = deque(maxlen=STDERR_MAX_LINES)

        async def drain_stderr():
            """Drain stderr to prevent buffer deadlock"""
            while True:
                line = await process.stderr.readline()
                if not line:
                    break
                stderr_lines.append(line.decode(errors="replace").strip())

        async def feed(source: AsyncIterator[bytes], fd: int):
            try:
                async for chunk in source:
                    await asyncio.to_thread(_write_all, fd, chunk)
            except BrokenPipeError:
                # ffmpeg stopped reading; its exit status tells the story
                pass
            except Exception as e:
                log_event(logging.ERROR, "transcode.input_error", f"[FFmpeg] input failed: {e}")
            finally:
                os.close(fd)
                aclose = getattr(source, "aclose", None)
                if aclose is not None:
                    with suppress(Exception):
                        await aclose()

        stderr_task = asyncio.create_task(drain_stderr())
        feeders = [asyncio.create_task(feed(source, fd)) for source, fd in zip(inputs, write_fds)]

        try:
            while True:
                chunk = await process.stdout.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk

            returncode = await process.wait()
            await stderr_task
            if returncode != 0:
                failure = TranscodeFailure(
                    "Transcode failed",
                    '\n'.join(stderr_lines)[:200] or f"ffmpeg exited with {returncode}"
                )
                log_event(
                    logging.ERROR,
                    "transcode.failed",
                    f"[FFmpeg] {failure.message}",
                    error=failure.error,
                    returncode=returncode
                )
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()
            for task in feeders + [stderr_task]:
                task.cancel()
            for task in feeders + [stderr_task]:
                with suppress(asyncio.CancelledError):
                    await task
