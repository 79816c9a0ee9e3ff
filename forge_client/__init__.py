from forge_client.exceptions import ForgeApiError, UploadCancelledError, UploadError, UploadPhase
from forge_client.services import (
    OssApi,
    ThreeLeggedAuth,
    TwoLeggedAuth,
    UploadJob,
    UploadSettings,
    load_upload_settings,
)

__version__ = "0.1.0"

__all__ = [
    "ForgeApiError",
    "UploadError",
    "UploadCancelledError",
    "UploadPhase",
    "OssApi",
    "TwoLeggedAuth",
    "ThreeLeggedAuth",
    "UploadJob",
    "UploadSettings",
    "load_upload_settings",
]
