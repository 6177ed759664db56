#!/usr/bin/env python3
"""
Data models for Winget-AutoUpdate
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, TypedDict

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils import compare_versions

UNKNOWN_VERSION = "unknown"


class ListMode(str, Enum):
    """Which kind of policy file restricts eligible packages"""

    ALLOW_LIST = "AllowList"
    DENY_LIST = "DenyList"


class NotificationLevel(str, Enum):
    """How chatty the agent is towards the logged-on user"""

    FULL = "Full"
    SUCCESS_ONLY = "SuccessOnly"
    NONE = "None"


class Severity(str, Enum):
    """Severity of a toast notification"""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class UpdateRecord:
    """One row of the winget upgrade table"""

    name: str
    id: str
    current_version: str
    available_version: str

    @property
    def has_unknown_version(self) -> bool:
        return self.current_version.strip().lower() == UNKNOWN_VERSION


@dataclass(frozen=True, slots=True)
class Policy:
    """Allow-list or deny-list of package ids, fixed for the whole run"""

    mode: ListMode
    entries: frozenset[str] = field(default_factory=frozenset)

    def excludes(self, package_id: str) -> bool:
        """Check whether a package id must be left alone."""
        if self.mode is ListMode.DENY_LIST:
            return package_id in self.entries
        return package_id not in self.entries


@dataclass(frozen=True, slots=True)
class VersionInfo:
    """Local and remote agent versions"""

    current: str
    latest: str

    @property
    def update_available(self) -> bool:
        return compare_versions(self.current, self.latest) < 0


@dataclass(frozen=True, slots=True)
class NotificationEvent:
    """A toast notification ready to be shown"""

    title: str
    message: str
    severity: Severity = Severity.INFO
    tag: str = ""


class CommandResult(TypedDict):
    """Type definition for command execution results"""

    success: bool
    output: str
    command: List[str]
    return_code: int


@dataclass
class UpgradeOutcome:
    """Terminal classification of one upgrade attempt"""

    record: UpdateRecord
    succeeded: bool
    attempts: List[CommandResult] = field(default_factory=list)

    @property
    def return_codes(self) -> List[int]:
        return [attempt["return_code"] for attempt in self.attempts]


class AgentConfig(BaseModel):
    """Persisted agent settings, validated by Pydantic."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    auto_update_enabled: bool = True
    allow_prerelease: bool = False
    list_mode: ListMode = ListMode.DENY_LIST
    notification_level: NotificationLevel = NotificationLevel.FULL

    @field_validator("list_mode", "notification_level", mode="before")
    @classmethod
    def _match_enum_case(cls, value, info):
        # Accept "denylist", "DENYLIST" etc. as written by hand
        if isinstance(value, str):
            enum_type = ListMode if info.field_name == "list_mode" else NotificationLevel
            for member in enum_type:
                if member.value.lower() == value.strip().lower():
                    return member
        return value


class ReleaseInfo(BaseModel):
    """Subset of a GitHub release object."""

    model_config = ConfigDict(extra="ignore")

    tag_name: str
    prerelease: bool = False
    html_url: Optional[str] = None

    @property
    def version(self) -> str:
        return self.tag_name.lstrip("vV")


class ToastPayload(BaseModel):
    """Rendered toast handed from the SYSTEM run to the user helper task."""

    title: str
    message: str
    severity: Severity = Severity.INFO
    tag: str = ""
    group: str = Field(default="Winget-AutoUpdate")
    xml: str
