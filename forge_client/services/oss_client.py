from __future__ import annotations

import threading
from pathlib import Path
from urllib.parse import quote

import httpx

from forge_client.config import get_region
from forge_client.exceptions import raise_for_forge_status
from forge_client.schemas.oss import (
    BucketContent,
    BucketDetails,
    BucketInfo,
    CreateBucketRequest,
    ListedBuckets,
    Region,
    RetentionPolicy,
    UploadResult,
)
from forge_client.services.http import bearer_headers, client_scope
from forge_client.services.oauth_client import ForgeAuthenticator
from forge_client.services.signed_upload import OSS_BUCKETS_PATH, UploadJob, UploadSettings

BUCKET_CREATE_SCOPE = "bucket:create"
BUCKET_READ_SCOPE = "bucket:read"
BUCKET_DELETE_SCOPE = "bucket:delete"
DATA_READ_SCOPE = "data:read"


class OssApi:
    """Object Storage Service buckets and objects.

    Each call requests a token for the narrowest scope it needs.
    """

    def __init__(
        self,
        authenticator: ForgeAuthenticator,
        region: Region | str | None = None,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        self.authenticator = authenticator
        if region is None:
            region = get_region()
        self.region = region if isinstance(region, Region) else Region.parse(region)
        self._client = client

    @property
    def base_url(self) -> str:
        return f"{self.authenticator.host_path()}{OSS_BUCKETS_PATH}"

    def create_bucket(self, bucket_key: str, policy_key: RetentionPolicy | str) -> BucketDetails:
        """Create a bucket in ``self.region``.

        The key must be globally unique (-_.a-z0-9, 3-128 chars); neither it nor the
        retention policy can be changed later.
        """
        payload = CreateBucketRequest(bucket_key=bucket_key, policy_key=RetentionPolicy(policy_key))
        bearer = self.authenticator.get_token(BUCKET_CREATE_SCOPE)
        with client_scope(self._client) as client:
            response = client.post(
                self.base_url,
                json=payload.model_dump(by_alias=True, mode="json"),
                headers={
                    **bearer_headers(bearer.access_token),
                    "x-ads-region": self.region.value,
                },
            )
            raise_for_forge_status(response)
            return BucketDetails.model_validate(response.json())

    def delete_bucket(self, bucket_key: str) -> None:
        bearer = self.authenticator.get_token(BUCKET_DELETE_SCOPE)
        with client_scope(self._client) as client:
            response = client.delete(
                f"{self.base_url}/{quote(bucket_key, safe='')}",
                headers=bearer_headers(bearer.access_token),
            )
            raise_for_forge_status(response)

    def list_buckets(
        self,
        *,
        region: Region | None = None,
        limit: int | None = None,
        start_at: str | None = None,
    ) -> list[BucketInfo]:
        """Return every bucket of the application, following ``next`` links."""
        buckets: list[BucketInfo] = []
        with client_scope(self._client) as client:
            while True:
                page = self._list_buckets_page(client, region=region or self.region, limit=limit, start_at=start_at)
                buckets.extend(page.items)
                if not page.next:
                    return buckets
                start_at = extract_start_at(page.next)

    def _list_buckets_page(
        self,
        client: httpx.Client,
        *,
        region: Region,
        limit: int | None,
        start_at: str | None,
    ) -> ListedBuckets:
        params: dict[str, str | int] = {"region": region.value}
        if limit is not None:
            params["limit"] = limit
        if start_at:
            params["startAt"] = start_at

        bearer = self.authenticator.get_token(BUCKET_READ_SCOPE)
        response = client.get(self.base_url, params=params, headers=bearer_headers(bearer.access_token))
        raise_for_forge_status(response)
        return ListedBuckets.model_validate(response.json())

    def get_bucket_details(self, bucket_key: str) -> BucketDetails:
        bearer = self.authenticator.get_token(BUCKET_READ_SCOPE)
        with client_scope(self._client) as client:
            response = client.get(
                f"{self.base_url}/{quote(bucket_key, safe='')}/details",
                headers=bearer_headers(bearer.access_token),
            )
            raise_for_forge_status(response)
            return BucketDetails.model_validate(response.json())

    def list_objects(
        self,
        bucket_key: str,
        *,
        limit: int | None = None,
        begins_with: str | None = None,
        start_at: str | None = None,
    ) -> BucketContent:
        params: dict[str, str | int] = {}
        if begins_with:
            params["beginsWith"] = begins_with
        if limit is not None:
            params["limit"] = limit
        if start_at:
            params["startAt"] = start_at

        bearer = self.authenticator.get_token(DATA_READ_SCOPE)
        with client_scope(self._client) as client:
            response = client.get(
                f"{self.base_url}/{quote(bucket_key, safe='')}/objects",
                params=params,
                headers=bearer_headers(bearer.access_token),
            )
            raise_for_forge_status(response)
            return BucketContent.model_validate(response.json())

    def download_object(self, bucket_key: str, object_key: str) -> bytes:
        bearer = self.authenticator.get_token(DATA_READ_SCOPE)
        with client_scope(self._client) as client:
            response = client.get(
                f"{self.base_url}/{quote(bucket_key, safe='')}/objects/{quote(object_key, safe='')}",
                headers=bearer_headers(bearer.access_token),
            )
            raise_for_forge_status(response)
            return response.content

    def upload_object(
        self,
        bucket_key: str,
        object_key: str,
        file_path: str | Path,
        *,
        settings: UploadSettings | None = None,
        cancel_event: threading.Event | None = None,
    ) -> UploadResult:
        """Upload a local file through signed S3 URLs; see ``UploadJob``."""
        job = UploadJob(
            authenticator=self.authenticator,
            bucket_key=bucket_key,
            object_key=object_key,
            file_path=file_path,
            base_url=self.base_url,
            settings=settings,
            client=self._client,
            cancel_event=cancel_event,
        )
        return job.run()


def extract_start_at(next_url: str) -> str:
    start_at = httpx.URL(next_url).params.get("startAt")
    if not start_at:
        raise ValueError(f"startAt not found in next url: {next_url}")
    return start_at
