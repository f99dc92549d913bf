from .errors import (
    ExtractionError,
    InvalidInput,
    NoUsableFormat,
    RelayError,
    TranscodeFailure,
    UpstreamFailure,
)

__all__ = [
    "ExtractionError",
    "InvalidInput",
    "NoUsableFormat",
    "RelayError",
    "TranscodeFailure",
    "UpstreamFailure",
]
