from typing import Optional


class RelayError(Exception):
    """Error rendered to the caller as ``{"error": ..., "message": ...}``"""

    status_code = 500

    def __init__(self, error: str, message: Optional[str] = None):
        super().__init__(message or error)
        self.error = error
        self.message = message

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.message is not None:
            body["message"] = self.message
        return body


class InvalidInput(RelayError):
    """Malformed or missing video URL/ID"""
    status_code = 400


class UpstreamFailure(RelayError):
    """Extraction collaborator failed (network, unavailable video, parse error)"""
    status_code = 500


class NoUsableFormat(RelayError):
    """No stream descriptor satisfies the request"""
    status_code = 500


class TranscodeFailure(RelayError):
    """ffmpeg failed mid-stream. Logged only, never sent to the caller."""
    status_code = 500


class ExtractionError(Exception):
    """Raised by the yt-dlp collaborator"""
