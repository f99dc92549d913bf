from typing import List
from ytrelay.core.errors import NoUsableFormat
from ytrelay.i18n import i18n
from ytrelay.models.internal import DownloadPlan, MediaType, PlanStrategy, StreamDescriptor
from ytrelay.models.response import AudioOption, FormatOptions, VideoOption
from ytrelay.services.ytdlp import choose_format
from ytrelay.utils.formatting import format_size

MIN_HEIGHT = 144
DEFAULT_AUDIO_BITRATE = 128

def is_combined_mp4(f: StreamDescriptor) -> bool:
    return f.is_combined and f.container == "mp4"

def _height(f: StreamDescriptor) -> int:
    return f.height or 0

class FormatClassifier:
    """Turn a descriptor list into de-duplicated quality options for display"""

    @staticmethod
    def classify(formats: List[StreamDescriptor]) -> FormatOptions:
        video: List[VideoOption] = []
        audio: List[AudioOption] = []
        seen_video = set()
        seen_audio = set()

        # Combined streams first: at equal height they need no merge downstream
        passes = (
            ([f for f in formats if is_combined_mp4(f)], True),
            ([f for f in formats if f.is_video_only], False),
        )
        for candidates, has_audio in passes:
            for f in sorted(candidates, key=_height, reverse=True):
                label = f"{f.height}p"
                if f.height is None or f.height < MIN_HEIGHT or label in seen_video:
                    continue
                seen_video.add(label)
                video.append(VideoOption(
                    itag=f.itag,
                    quality=label,
                    height=f.height,
                    size=format_size(f.approximate_size),
                    has_audio=has_audio
                ))

        def bitrate(f: StreamDescriptor) -> int:
            return f.audio_bitrate or DEFAULT_AUDIO_BITRATE

        for f in sorted((f for f in formats if f.is_audio_only), key=bitrate, reverse=True):
            br = bitrate(f)
            label = f"{br}kbps"
            if label in seen_audio:
                continue
            seen_audio.add(label)
            audio.append(AudioOption(
                itag=f.itag,
                quality=label,
                bitrate=br,
                size=format_size(f.approximate_size)
            ))

        video.sort(key=lambda o: o.height, reverse=True)
        audio.sort(key=lambda o: o.bitrate, reverse=True)

        return FormatOptions(video=video, audio=audio)

class FormatSelector:
    """Pick the descriptor(s) that satisfy a download request"""

    @staticmethod
    def select(
        media_type: MediaType,
        quality: int,
        formats: List[StreamDescriptor],
        can_transcode: bool
    ) -> DownloadPlan:
        if media_type == MediaType.AUDIO:
            return FormatSelector.select_audio(quality, formats, can_transcode)
        return FormatSelector.select_video(quality, formats, can_transcode)

    @staticmethod
    def select_audio(bitrate: int, formats: List[StreamDescriptor], can_transcode: bool) -> DownloadPlan:
        """
        Highest-bitrate audio-only stream. ``bitrate`` is the MP3 target when
        transcoding, it never influences which stream is picked.
        """
        try:
            descriptor = choose_format(formats, quality="highestaudio", filter="audioonly")
        except NoUsableFormat:
            raise NoUsableFormat(i18n.get("error.no_audio_format"))

        # Without ffmpeg the raw stream still goes out under the mp3 name
        return DownloadPlan(
            strategy=PlanStrategy.AUDIO,
            audio=descriptor,
            transcode=can_transcode,
            audio_bitrate=bitrate if can_transcode else None,
            ext="mp3",
            media_type="audio/mpeg"
        )

    @staticmethod
    def select_video(height: int, formats: List[StreamDescriptor], can_transcode: bool) -> DownloadPlan:
        """
        Tiers, in order: exact combined mp4, nearest combined mp4, merge of
        nearest video-only + best audio-only, video-only alone, and finally
        yt-dlp's own "highest" pick.
        """
        def distance(f: StreamDescriptor) -> int:
            return abs(_height(f) - height)

        combined = [f for f in formats if is_combined_mp4(f)]

        exact = next((f for f in combined if f.height == height), None)
        # min() keeps the first of equally near candidates
        chosen = exact or (min(combined, key=distance) if combined else None)
        if chosen:
            return DownloadPlan(strategy=PlanStrategy.COMBINED, video=chosen)

        video_only = [f for f in formats if f.is_video_only]
        audio_only = [f for f in formats if f.is_audio_only]

        video = min(video_only, key=distance) if video_only else None
        audio = max(audio_only, key=lambda f: f.audio_bitrate or 0) if audio_only else None

        if video and audio and can_transcode:
            return DownloadPlan(
                strategy=PlanStrategy.MERGE,
                video=video,
                audio=audio,
                transcode=True
            )

        if video:
            return DownloadPlan(strategy=PlanStrategy.VIDEO_ONLY, video=video)

        return DownloadPlan(strategy=PlanStrategy.DEFAULT)
