from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Region(str, Enum):
    US = "US"
    EMEA = "EMEA"

    @classmethod
    def parse(cls, value: str) -> "Region":
        candidate = value.strip().upper()
        if candidate == "EU":
            return cls.EMEA
        try:
            return cls(candidate)
        except ValueError as exc:
            raise ValueError(f"Unsupported region: {value!r} (expected US, EMEA or EU)") from exc


class RetentionPolicy(str, Enum):
    # Objects older than 24 hours are removed automatically.
    TRANSIENT = "transient"
    # Objects are deleted after 30 days.
    TEMPORARY = "temporary"
    PERSISTENT = "persistent"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateBucketRequest(_CamelModel):
    bucket_key: str = Field(alias="bucketKey", pattern=r"^[-_.a-z0-9]{3,128}$")
    policy_key: RetentionPolicy = Field(alias="policyKey")


class BucketPermission(_CamelModel):
    auth_id: str = Field(alias="authId")
    access: str


class BucketDetails(_CamelModel):
    bucket_key: str = Field(alias="bucketKey")
    bucket_owner: str | None = Field(default=None, alias="bucketOwner")
    create_date: int | None = Field(default=None, alias="createDate")
    permissions: list[BucketPermission] = Field(default_factory=list)
    policy_key: RetentionPolicy | None = Field(default=None, alias="policyKey")


class BucketInfo(_CamelModel):
    bucket_key: str = Field(alias="bucketKey")
    created_date: int | None = Field(default=None, alias="createdDate")
    policy_key: RetentionPolicy | None = Field(default=None, alias="policyKey")


class ListedBuckets(_CamelModel):
    items: list[BucketInfo] = Field(default_factory=list)
    next: str | None = None


class ObjectDetails(_CamelModel):
    bucket_key: str = Field(alias="bucketKey")
    object_id: str = Field(alias="objectId")
    object_key: str = Field(alias="objectKey")
    sha1: str | None = None
    size: int = 0
    content_type: str | None = Field(default=None, alias="contentType")
    location: str | None = None


class BucketContent(_CamelModel):
    items: list[ObjectDetails] = Field(default_factory=list)
    next: str | None = None


class SignedUploadUrls(_CamelModel):
    upload_key: str = Field(alias="uploadKey", min_length=1)
    upload_expiration: datetime | None = Field(default=None, alias="uploadExpiration")
    url_expiration: datetime | None = Field(default=None, alias="urlExpiration")
    urls: list[str] = Field(default_factory=list)


class CompleteUploadRequest(_CamelModel):
    upload_key: str = Field(alias="uploadKey", min_length=1)
    size: int = Field(ge=0)


class UploadResult(_CamelModel):
    bucket_key: str = Field(alias="bucketKey")
    object_id: str = Field(alias="objectId")
    object_key: str = Field(alias="objectKey")
    size: int = Field(ge=0)
    content_type: str | None = Field(default=None, alias="content-type")
    location: str | None = None
