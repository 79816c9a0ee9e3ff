from forge_client.services.oauth_client import (
    ForgeAuthenticator,
    ThreeLeggedAuth,
    TwoLeggedAuth,
    fetch_user_profile,
)
from forge_client.services.oss_client import OssApi, extract_start_at
from forge_client.services.retry import RetryPolicy, chunk_retry_policy, gateway_retry_policy
from forge_client.services.signed_upload import (
    ChunkUploader,
    SignedUrlProvider,
    UploadFinalizer,
    UploadJob,
    UploadSettings,
    UploadState,
    load_upload_settings,
)
from forge_client.services.upload_plan import (
    DEFAULT_CHUNK_SIZE,
    MAX_PARTS_PER_REQUEST,
    MIN_CHUNK_SIZE,
    UploadPlan,
    count_batches,
    count_parts,
    parts_in_batch,
    plan_upload,
)

__all__ = [
    "ForgeAuthenticator",
    "TwoLeggedAuth",
    "ThreeLeggedAuth",
    "fetch_user_profile",
    "OssApi",
    "extract_start_at",
    "RetryPolicy",
    "gateway_retry_policy",
    "chunk_retry_policy",
    "SignedUrlProvider",
    "ChunkUploader",
    "UploadFinalizer",
    "UploadJob",
    "UploadSettings",
    "UploadState",
    "load_upload_settings",
    "DEFAULT_CHUNK_SIZE",
    "MAX_PARTS_PER_REQUEST",
    "MIN_CHUNK_SIZE",
    "UploadPlan",
    "count_parts",
    "count_batches",
    "parts_in_batch",
    "plan_upload",
]
