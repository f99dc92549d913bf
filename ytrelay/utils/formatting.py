from typing import Optional, Union

SIZE_UNITS = ("B", "KB", "MB", "GB")


def format_duration(seconds: Optional[int]) -> str:
    """``m:ss`` or ``h:mm:ss``"""
    if not seconds:
        return "0:00"
    seconds = int(seconds)
    h, rest = divmod(seconds, 3600)
    m, s = divmod(rest, 60)
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


def format_views(count: Union[int, str, None]) -> str:
    if not count:
        return "0"
    try:
        n = int(count)
    except (TypeError, ValueError):
        return "0"
    if n >= 1_000_000_000:
        return f"{n / 1e9:.1f}B"
    if n >= 1_000_000:
        return f"{n / 1e6:.1f}M"
    if n >= 1_000:
        return f"{n / 1e3:.1f}K"
    return str(n)


def format_size(size: Optional[int]) -> str:
    if not size:
        return "Unknown"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.1f} {SIZE_UNITS[unit]}"
