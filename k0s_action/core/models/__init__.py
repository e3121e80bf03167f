"""
Domain models for setup-k0s.

All models are Pydantic v2 BaseModels. Immutable values (requests,
releases, verdicts) are frozen; the phase marker is mutable because
it is transitioned and re-persisted.
"""

from k0s_action.core.models.cluster import (
    ClusterHandle,
    ClusterObservations,
    Fatal,
    LayerResult,
    ReadinessConfig,
    ReadinessLayer,
    ReadinessVerdict,
    Ready,
    TimedOut,
)
from k0s_action.core.models.command import Command, Receipt
from k0s_action.core.models.phase import PhaseMarker, PhaseState
from k0s_action.core.models.platform import Architecture, InstallRequest, ResolvedRelease

__all__ = [
    "Architecture",
    "ClusterHandle",
    "ClusterObservations",
    "Command",
    "Fatal",
    "InstallRequest",
    "LayerResult",
    "PhaseMarker",
    "PhaseState",
    "ReadinessConfig",
    "ReadinessLayer",
    "ReadinessVerdict",
    "Ready",
    "Receipt",
    "ResolvedRelease",
    "TimedOut",
]
