"""Direct-to-S3 upload of OSS objects through the signeds3upload endpoint.

1. Split the file into parts; every part except the last must be at least 5 MB.
2. Request up to 25 signed URLs per call with
   GET buckets/:bucketKey/objects/:objectKey/signeds3upload?firstPart=..&parts=..
   The first response carries an uploadKey that must be sent on every later call.
3. PUT each part to its URL. 1xx, 429 and 5xx may be retried; 403 means the URLs
   have expired and new ones must be requested for the remaining parts.
4. Finalize with POST buckets/:bucketKey/objects/:objectKey/signeds3upload. An object
   that is not finalized within 24 hours is discarded by OSS.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO
from urllib.parse import quote

import httpx

from forge_client.config import (
    get_upload_chunk_size_mb,
    get_upload_minutes_expiration,
    get_upload_refresh_expired_urls,
)
from forge_client.exceptions import (
    ForgeApiError,
    UploadCancelledError,
    UploadError,
    UploadPhase,
    raise_for_forge_status,
)
from forge_client.schemas.oss import CompleteUploadRequest, SignedUploadUrls, UploadResult
from forge_client.services.http import bearer_headers, client_scope
from forge_client.services.oauth_client import ForgeAuthenticator
from forge_client.services.retry import (
    RetryPolicy,
    chunk_retry_policy,
    gateway_retry_policy,
    last_status_code,
)
from forge_client.services.upload_plan import (
    DEFAULT_CHUNK_SIZE,
    MAX_PARTS_PER_REQUEST,
    MEGABYTE,
    MIN_CHUNK_SIZE,
    PartBatch,
    plan_upload,
)

logger = logging.getLogger(__name__)

OSS_BUCKETS_PATH = "/oss/v2/buckets"
SIGNED_S3_UPLOAD_ENDPOINT = "signeds3upload"
DATA_READ_WRITE_SCOPE = "data:write data:read"
DEFAULT_MINUTES_EXPIRATION = 60
_MAX_URL_REFRESHES_PER_BATCH = 3


@dataclass(frozen=True)
class UploadSettings:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_parts_per_request: int = MAX_PARTS_PER_REQUEST
    minutes_expiration: int = DEFAULT_MINUTES_EXPIRATION
    refresh_expired_urls: bool = False
    gateway_retry: RetryPolicy = field(default_factory=gateway_retry_policy)
    chunk_retry: RetryPolicy = field(default_factory=chunk_retry_policy)

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 1 <= self.max_parts_per_request <= MAX_PARTS_PER_REQUEST:
            raise ValueError(f"max_parts_per_request must be in 1..{MAX_PARTS_PER_REQUEST}")
        if not 1 <= self.minutes_expiration <= 60:
            raise ValueError("minutes_expiration must be in 1..60")
        if self.chunk_size < MIN_CHUNK_SIZE:
            logger.warning(
                "chunk_size %d is below the 5 MiB minimum; finalize will reject multi-part uploads",
                self.chunk_size,
            )


def load_upload_settings() -> UploadSettings:
    return UploadSettings(
        chunk_size=get_upload_chunk_size_mb() * MEGABYTE,
        minutes_expiration=get_upload_minutes_expiration(),
        refresh_expired_urls=get_upload_refresh_expired_urls(),
    )


def build_signed_upload_url(base_url: str, bucket_key: str, object_key: str) -> str:
    return (
        f"{base_url.rstrip('/')}/{quote(bucket_key, safe='')}/objects/"
        f"{quote(object_key, safe='')}/{SIGNED_S3_UPLOAD_ENDPOINT}"
    )


class SignedUrlProvider:
    def __init__(
        self,
        *,
        client: httpx.Client,
        authenticator: ForgeAuthenticator,
        upload_url: str,
        minutes_expiration: int = DEFAULT_MINUTES_EXPIRATION,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._authenticator = authenticator
        self._upload_url = upload_url
        self._minutes_expiration = minutes_expiration
        self._retry_policy = retry_policy or gateway_retry_policy()
        self._sleep = sleep

    def request_signed_urls(
        self,
        *,
        first_part: int,
        parts: int,
        upload_key: str | None = None,
    ) -> SignedUploadUrls:
        params: dict[str, str | int] = {
            "firstPart": first_part,
            "parts": parts,
            "minutesExpiration": self._minutes_expiration,
        }
        if upload_key:
            params["uploadKey"] = upload_key

        def send() -> httpx.Response:
            bearer = self._authenticator.get_token(DATA_READ_WRITE_SCOPE)
            return self._client.get(
                self._upload_url,
                params=params,
                headers=bearer_headers(bearer.access_token),
            )

        response = self._retry_policy.run(send, sleep=self._sleep)
        raise_for_forge_status(response)
        return SignedUploadUrls.model_validate(response.json())


class ChunkUploader:
    """PUTs raw bytes to signed URLs; the URL is the only credential, no bearer token is sent."""

    def __init__(
        self,
        *,
        client: httpx.Client,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._retry_policy = retry_policy or chunk_retry_policy()
        self._sleep = sleep

    def upload_chunk(self, signed_url: str, data: bytes) -> int:
        headers = {
            "Content-Type": "application/octet-stream",
            "Content-Length": str(len(data)),
        }

        def send() -> httpx.Response:
            return self._client.put(signed_url, content=data, headers=headers)

        response = self._retry_policy.run(send, sleep=self._sleep)
        raise_for_forge_status(response)
        return response.status_code


class UploadFinalizer:
    def __init__(
        self,
        *,
        client: httpx.Client,
        authenticator: ForgeAuthenticator,
        upload_url: str,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._authenticator = authenticator
        self._upload_url = upload_url
        self._retry_policy = retry_policy or gateway_retry_policy()
        self._sleep = sleep

    def complete_upload(self, *, upload_key: str, size: int) -> UploadResult:
        """Assemble the uploaded parts; OSS checks ``size`` against the bytes it received."""
        body = CompleteUploadRequest(upload_key=upload_key, size=size).model_dump(by_alias=True)

        def send() -> httpx.Response:
            bearer = self._authenticator.get_token(DATA_READ_WRITE_SCOPE)
            return self._client.post(
                self._upload_url,
                json=body,
                headers={
                    **bearer_headers(bearer.access_token),
                    "x-ads-meta-Content-Type": "application/octet-stream",
                },
            )

        response = self._retry_policy.run(send, sleep=self._sleep)
        raise_for_forge_status(response)
        return UploadResult.model_validate(response.json())


class UploadState(str, Enum):
    PLANNING = "planning"
    BATCH_IN_FLIGHT = "batch_in_flight"
    CHUNK_UPLOADING = "chunk_uploading"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    FAILED = "failed"


class UploadJob:
    """One upload of a local file to ``bucket_key/object_key``.

    Parts and batches are processed strictly in order from a single forward-only
    read of the file. A job runs once; start a new job (and a new upload session)
    after a failure.
    """

    def __init__(
        self,
        *,
        authenticator: ForgeAuthenticator,
        bucket_key: str,
        object_key: str,
        file_path: str | Path,
        base_url: str | None = None,
        settings: UploadSettings | None = None,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.authenticator = authenticator
        self.bucket_key = bucket_key
        self.object_key = object_key
        self.file_path = Path(file_path)
        self.settings = settings or UploadSettings()
        self.upload_url = build_signed_upload_url(
            base_url or f"{authenticator.host_path()}{OSS_BUCKETS_PATH}",
            bucket_key,
            object_key,
        )
        self._client = client
        self._cancel_event = cancel_event
        if sleep is None:
            sleep = cancel_event.wait if cancel_event is not None else time.sleep
        self._sleep_fn = sleep

        try:
            self.file_size = self.file_path.stat().st_size
        except OSError as exc:
            raise UploadError(UploadPhase.SOURCE_READ, f"cannot stat {self.file_path}: {exc}") from exc

        self.plan = plan_upload(self.file_size, self.settings.chunk_size, self.settings.max_parts_per_request)
        self.upload_key: str | None = None
        self.parts_uploaded = 0
        self.state = UploadState.PLANNING
        self._phase = UploadPhase.SIGNED_URLS

        logger.info(
            "New upload job: bucket=%s object=%s file=%s size=%d parts=%d batches=%d",
            bucket_key,
            object_key,
            self.file_path,
            self.file_size,
            self.plan.total_parts,
            self.plan.total_batches,
        )

    @property
    def total_parts(self) -> int:
        return self.plan.total_parts

    @property
    def total_batches(self) -> int:
        return self.plan.total_batches

    def run(self) -> UploadResult:
        if self.state is not UploadState.PLANNING:
            raise RuntimeError(f"upload job already ran (state={self.state.value})")

        try:
            with client_scope(self._client) as client:
                provider = SignedUrlProvider(
                    client=client,
                    authenticator=self.authenticator,
                    upload_url=self.upload_url,
                    minutes_expiration=self.settings.minutes_expiration,
                    retry_policy=self.settings.gateway_retry,
                    sleep=self._sleep,
                )
                uploader = ChunkUploader(
                    client=client,
                    retry_policy=self.settings.chunk_retry,
                    sleep=self._sleep,
                )
                finalizer = UploadFinalizer(
                    client=client,
                    authenticator=self.authenticator,
                    upload_url=self.upload_url,
                    retry_policy=self.settings.gateway_retry,
                    sleep=self._sleep,
                )
                self._upload_parts(provider, uploader)
                result = self._finalize(finalizer)
        except Exception:
            self.state = UploadState.FAILED
            raise

        self.state = UploadState.COMPLETE
        logger.info(
            "Finished uploading %s: object_id=%s location=%s size=%d",
            self.file_path,
            result.object_id,
            result.location,
            result.size,
        )
        return result

    def cancel(self) -> None:
        if self._cancel_event is None:
            raise RuntimeError("job was created without a cancel_event")
        self._cancel_event.set()

    def _upload_parts(self, provider: SignedUrlProvider, uploader: ChunkUploader) -> None:
        try:
            source = self.file_path.open("rb")
        except OSError as exc:
            raise UploadError(UploadPhase.SOURCE_READ, f"cannot open {self.file_path}: {exc}") from exc

        with source:
            for batch in self.plan.batches:
                self._upload_batch(batch, source, provider, uploader)

    def _upload_batch(
        self,
        batch: PartBatch,
        source: BinaryIO,
        provider: SignedUrlProvider,
        uploader: ChunkUploader,
    ) -> None:
        self.state = UploadState.BATCH_IN_FLIGHT
        urls = self._fetch_signed_urls(provider, first_part=batch.first_part, parts=batch.part_count)
        self.state = UploadState.CHUNK_UPLOADING

        refreshes = 0
        for offset in range(batch.part_count):
            part_number = batch.first_part + offset
            chunk = self._read_chunk(source, part_number)
            while True:
                self._phase = UploadPhase.CHUNK_UPLOAD
                self._check_cancelled()
                try:
                    uploader.upload_chunk(urls[offset], chunk)
                    break
                except ForgeApiError as exc:
                    if not self._can_refresh_urls(exc, refreshes):
                        raise self._phase_error(UploadPhase.CHUNK_UPLOAD, exc, f"part {part_number}") from exc
                    refreshes += 1
                    logger.info(
                        "- signed URL for part %d expired; requesting URLs for parts %d-%d",
                        part_number,
                        part_number,
                        batch.last_part,
                    )
                    self.state = UploadState.BATCH_IN_FLIGHT
                    urls[offset:] = self._fetch_signed_urls(
                        provider,
                        first_part=part_number,
                        parts=batch.last_part - part_number + 1,
                    )
                    self.state = UploadState.CHUNK_UPLOADING
                except httpx.RequestError as exc:
                    raise self._phase_error(UploadPhase.CHUNK_UPLOAD, exc, f"part {part_number}") from exc

            self.parts_uploaded += 1
            logger.info("- part %d/%d: %d bytes sent", part_number, self.plan.total_parts, len(chunk))

    def _can_refresh_urls(self, exc: ForgeApiError, refreshes: int) -> bool:
        return (
            exc.status_code == 403
            and self.settings.refresh_expired_urls
            and refreshes < _MAX_URL_REFRESHES_PER_BATCH
        )

    def _fetch_signed_urls(self, provider: SignedUrlProvider, *, first_part: int, parts: int) -> list[str]:
        self._phase = UploadPhase.SIGNED_URLS
        self._check_cancelled()
        part_range = f"parts {first_part}-{first_part + parts - 1}"
        try:
            signed = provider.request_signed_urls(
                first_part=first_part,
                parts=parts,
                upload_key=self.upload_key,
            )
        except (ForgeApiError, httpx.RequestError, ValueError) as exc:
            raise self._phase_error(UploadPhase.SIGNED_URLS, exc, part_range) from exc

        if self.upload_key is None:
            self.upload_key = signed.upload_key
        elif signed.upload_key != self.upload_key:
            logger.warning("- ignoring new upload key %s, keeping %s", signed.upload_key, self.upload_key)

        if len(signed.urls) != parts:
            raise UploadError(
                UploadPhase.SIGNED_URLS,
                f"{part_range}: requested {parts} signed URLs, received {len(signed.urls)}",
                status_code=200,
            )

        logger.info("- %s: upload key %s, %d signed URLs", part_range, self.upload_key, len(signed.urls))
        return list(signed.urls)

    def _read_chunk(self, source: BinaryIO, part_number: int) -> bytes:
        expected = self.plan.part_size(part_number)
        self._phase = UploadPhase.SOURCE_READ
        try:
            chunk = source.read(self.settings.chunk_size)
        except OSError as exc:
            raise UploadError(
                UploadPhase.SOURCE_READ,
                f"error reading part {part_number} of {self.file_path}: {exc}",
            ) from exc
        if len(chunk) != expected:
            raise UploadError(
                UploadPhase.SOURCE_READ,
                f"part {part_number}: expected {expected} bytes, read {len(chunk)}; was the file modified?",
            )
        return chunk

    def _finalize(self, finalizer: UploadFinalizer) -> UploadResult:
        self.state = UploadState.FINALIZING
        self._phase = UploadPhase.FINALIZE
        if self.parts_uploaded != self.plan.total_parts or self.upload_key is None:
            raise UploadError(
                UploadPhase.FINALIZE,
                f"uploaded {self.parts_uploaded} of {self.plan.total_parts} parts",
            )

        self._check_cancelled()
        logger.info("- completing upload...")
        try:
            return finalizer.complete_upload(upload_key=self.upload_key, size=self.file_size)
        except (ForgeApiError, httpx.RequestError, ValueError) as exc:
            raise self._phase_error(UploadPhase.FINALIZE, exc, f"upload key {self.upload_key}") from exc

    def _sleep(self, seconds: float) -> None:
        self._check_cancelled()
        self._sleep_fn(seconds)
        self._check_cancelled()

    def _check_cancelled(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise UploadCancelledError(self._phase, f"upload of {self.file_path} was cancelled")

    @staticmethod
    def _phase_error(phase: UploadPhase, exc: Exception, context: str) -> UploadError:
        return UploadError(phase, f"{context}: {exc}", status_code=last_status_code(exc))
