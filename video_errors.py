"""Exceptions raised while talking to the video service.

Every exception carries the HTTP status the request handlers answer with, so
the Flask error handler can turn any of them into a response envelope.
"""
from typing import Optional


class VideoServiceError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(VideoServiceError):
    status_code = 400


class ConfigurationError(VideoServiceError):
    pass


class NotFoundError(VideoServiceError):
    status_code = 404

    def __init__(self, message: str = "Video not found"):
        super().__init__(message)


class NotReadyError(VideoServiceError):
    def __init__(self, current_status: Optional[str]):
        super().__init__(
            f"Video is not ready for download. Current status: {current_status}"
        )
        self.current_status = current_status


class UpstreamError(VideoServiceError):
    def __init__(self, http_status: Optional[int], message: str):
        if http_status is None:
            text = f"Sora API error: {message}"
        else:
            text = f"Sora API error: {http_status} - {message}"
        super().__init__(text)
        self.http_status = http_status
        self.detail = message


class MissingResourceError(VideoServiceError):
    def __init__(self, message: str = "Video URL not available"):
        super().__init__(message)


class PollingError(VideoServiceError):
    """Raised by the polling client only; no request handler sees it."""
