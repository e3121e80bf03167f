"""
Cluster-side models — the launched cluster, readiness config, and the
readiness state machine's inputs and outputs.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

K0S_SERVICE_NAME = "k0scontroller"


class ClusterHandle(BaseModel):
    """The long-lived artifact produced by the launcher."""

    model_config = ConfigDict(frozen=True)

    credentials_path: str
    service_name: str = K0S_SERVICE_NAME


class ReadinessConfig(BaseModel):
    """Bounds for the readiness polling loop."""

    model_config = ConfigDict(frozen=True)

    timeout_seconds: int = Field(default=300, ge=0)
    poll_interval_seconds: int = Field(default=5, gt=0)
    deep_check_enabled: bool = False
    dns_timeout_seconds: int = Field(default=120, gt=0)

    @property
    def single_sample(self) -> bool:
        """True when the interval leaves no room for a second sample."""
        return self.poll_interval_seconds >= self.timeout_seconds


class ReadinessLayer(str, Enum):
    """Health layers, in the order they gate each other."""

    SERVICE_UP = "ServiceUp"
    API_REACHABLE = "APIReachable"
    NODES_READY = "NodesReady"
    WORKLOADS_HEALTHY = "WorkloadsHealthy"
    DNS_FUNCTIONAL = "DNSFunctional"


class ClusterObservations(BaseModel):
    """Raw signals gathered in one poll cycle.

    ``None`` means "not gathered": the cycle short-circuited before
    reaching that layer, or the listing could not be parsed.
    """

    service_up: bool | None = None
    api_reachable: bool | None = None
    nodes: list[dict[str, Any]] | None = None
    pods: list[dict[str, Any]] | None = None


class LayerResult(BaseModel):
    """Outcome of evaluating one cycle's observations."""

    model_config = ConfigDict(frozen=True)

    passed: bool
    failed_layer: ReadinessLayer | None = None
    passed_layers: tuple[ReadinessLayer, ...] = ()
    detail: str = ""


class DiagnosticSection(BaseModel):
    """One captured command output in the timeout diagnostic bundle."""

    model_config = ConfigDict(frozen=True)

    title: str
    command: str
    output: str = ""
    ok: bool = True


# ── Verdicts ────────────────────────────────────────────────────


class Ready(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["ready"] = "ready"
    elapsed: float
    cycles: int


class TimedOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["timed_out"] = "timed_out"
    elapsed: float
    last_observed_stage: ReadinessLayer | None
    cycles: int
    detail: str = ""
    diagnostics: tuple[DiagnosticSection, ...] = ()

    @field_validator("diagnostics", mode="before")
    @classmethod
    def _as_tuple(cls, value: Any) -> Any:
        return tuple(value) if isinstance(value, list) else value


class Fatal(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["fatal"] = "fatal"
    reason: str


ReadinessVerdict = Union[Ready, TimedOut, Fatal]
