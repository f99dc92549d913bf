import re
from typing import Optional
from urllib.parse import parse_qs, urlparse
from ytrelay.core.errors import InvalidInput
from ytrelay.i18n import i18n

VIDEO_ID_RE = re.compile(r'^[a-zA-Z0-9_-]{11}$')

URL_PATTERNS = (
    re.compile(r'(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/shorts/)([^&\n?#]+)'),
    re.compile(r'^([a-zA-Z0-9_-]{11})$'),
)


def is_valid_video_id(candidate: Optional[str]) -> bool:
    """Exactly 11 characters of ``[A-Za-z0-9_-]``"""
    return bool(candidate) and VIDEO_ID_RE.match(candidate) is not None


def extract_video_id(url: str) -> Optional[str]:
    """
    Pull a video ID out of a watch, youtu.be or shorts URL, or accept a bare ID.
    Returns None when nothing matches. The result is not validated.
    """
    url = url.strip()
    for pattern in URL_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)

    # watch URLs with v= further down the query string
    try:
        parsed = urlparse(url if "://" in url else f"https://{url}")
    except ValueError:
        return None
    if parsed.hostname and parsed.hostname.endswith("youtube.com") and parsed.path == "/watch":
        values = parse_qs(parsed.query).get("v")
        if values:
            return values[0]

    return None


def resolve_video_id(url: Optional[str] = None, video_id: Optional[str] = None, locale: Optional[str] = None) -> str:
    """Explicit ``video_id`` wins over ``url``; raises InvalidInput if the result is not a valid ID."""
    if not video_id and url:
        video_id = extract_video_id(url)

    if not is_valid_video_id(video_id):
        raise InvalidInput(i18n.get("error.invalid_video", locale=locale))

    return video_id


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"
