from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Reported instead of a live status when a package produced no App.
COMPILER_ERROR_STATUS = "compiler_error"


class AppStatus(str, Enum):
    UNKNOWN = "unknown"
    CONSTRUCTED = "constructed"
    INITIALIZED = "initialized"
    AUTO_ENABLED = "auto_enabled"
    MANUALLY_ENABLED = "manually_enabled"
    COMPILER_ERROR_DISABLED = "compiler_error_disabled"
    ERROR_DISABLED = "error_disabled"
    MANUALLY_DISABLED = "manually_disabled"
    INVALID_SETTINGS_DISABLED = "invalid_settings_disabled"
    DISABLED = "disabled"

    @property
    def is_enabled(self) -> bool:
        return self in _ENABLED_STATUSES

    @property
    def is_disabled(self) -> bool:
        return self in _DISABLED_STATUSES


_ENABLED_STATUSES = frozenset({AppStatus.AUTO_ENABLED, AppStatus.MANUALLY_ENABLED})
_DISABLED_STATUSES = frozenset(
    {
        AppStatus.COMPILER_ERROR_DISABLED,
        AppStatus.ERROR_DISABLED,
        AppStatus.MANUALLY_DISABLED,
        AppStatus.INVALID_SETTINGS_DISABLED,
        AppStatus.DISABLED,
    }
)


class InstalledApp(BaseModel):
    """An App as persisted in the ``apps`` collection (package bytes excluded)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., alias="_id")
    info: dict[str, Any]
    status: AppStatus = AppStatus.UNKNOWN
    settings: dict[str, dict[str, Any]] = Field(default_factory=dict)
    language_content: dict[str, dict[str, Any]] = Field(
        default_factory=dict, alias="languageContent"
    )
    implemented: list[str] = Field(default_factory=list)
    apis: list[dict[str, Any]] = Field(default_factory=list)
    created_at: datetime | None = Field(None, alias="createdAt")
    updated_at: datetime | None = Field(None, alias="_updatedAt")

    def info_with_status(self) -> dict[str, Any]:
        return {**self.info, "status": self.status.value}


@dataclass
class AppInstallResult:
    """Outcome of an add or update; ``app`` is None when validation failed."""

    app: InstalledApp | None
    info: dict[str, Any]
    implemented: list[str] = field(default_factory=list)
    compiler_errors: list[dict[str, Any]] = field(default_factory=list)


# Body fields stay untyped so that wrong shapes are reported by the routes
# with their own failure messages instead of a validation error.


class UpdateSettingsRequest(BaseModel):
    settings: Any = None


class UpdateSettingRequest(BaseModel):
    setting: Any = None


class UpdateStatusRequest(BaseModel):
    status: Any = None
