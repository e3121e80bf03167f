"""
Install-side models — what to fetch and where from.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, computed_field, field_validator

K0S_REPO = "k0sproject/k0s"
RELEASE_DOWNLOAD_BASE = f"https://github.com/{K0S_REPO}/releases/download"
LATEST = "latest"


class Architecture(str, Enum):
    """Canonical k0s binary architecture identifiers."""

    AMD64 = "amd64"
    ARM64 = "arm64"
    ARM = "arm"


class InstallRequest(BaseModel):
    """What the user asked for. Built once at process start."""

    model_config = ConfigDict(frozen=True)

    requested_version: str = LATEST
    architecture: Architecture

    @property
    def wants_latest(self) -> bool:
        return self.requested_version.strip().lower() == LATEST


class ResolvedRelease(BaseModel):
    """A concrete, downloadable k0s release."""

    model_config = ConfigDict(frozen=True)

    tag: str
    architecture: Architecture

    @field_validator("tag")
    @classmethod
    def _tag_is_concrete(cls, value: str) -> str:
        if not value or value.strip().lower() == LATEST:
            raise ValueError("release tag must be concrete, not 'latest'")
        return value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def download_url(self) -> str:
        """Asset URL, a pure function of tag and architecture."""
        return f"{RELEASE_DOWNLOAD_BASE}/{self.tag}/k0s-{self.tag}-{self.architecture.value}"
