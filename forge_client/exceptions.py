"""Custom exceptions for the APS client."""

from __future__ import annotations

from enum import Enum

import httpx


class ForgeApiError(Exception):
    """Raised when an APS endpoint answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str, url: str | None = None):
        self.status_code = status_code
        self.body = body
        self.url = url
        super().__init__(f"[{status_code}] {body}")

    @classmethod
    def from_response(cls, response: httpx.Response) -> ForgeApiError:
        try:
            url = str(response.request.url)
        except RuntimeError:
            url = None
        return cls(response.status_code, response.text, url=url)


def raise_for_forge_status(response: httpx.Response) -> None:
    if not response.is_success:
        raise ForgeApiError.from_response(response)


class UploadPhase(str, Enum):
    SOURCE_READ = "source read"
    SIGNED_URLS = "signed-url fetch"
    CHUNK_UPLOAD = "chunk upload"
    FINALIZE = "finalize"


class UploadError(Exception):
    """Raised when a signed upload job fails; names the failing phase and the last HTTP status."""

    def __init__(self, phase: UploadPhase, message: str, status_code: int | None = None):
        self.phase = phase
        self.status_code = status_code
        self.detail = message
        status_text = status_code if status_code is not None else "none"
        super().__init__(f"{phase.value} failed (last HTTP status: {status_text}): {message}")


class UploadCancelledError(UploadError):
    """Raised when an upload job is cancelled while waiting or between requests."""
