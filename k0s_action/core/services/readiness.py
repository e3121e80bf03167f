"""
Readiness engine — bounded, layered polling until the cluster is usable.

Each poll cycle checks, in order, stopping at the first failure:

    ServiceUp → APIReachable → NodesReady → WorkloadsHealthy

The I/O (``gather_observations``) is kept apart from the verdict
(``evaluate``) so the tie-breaks (zero nodes or zero pods is NOT ready,
first failing layer wins) are testable without a cluster. The loop
(``wait_for_ready``) takes its clock and sleep as arguments for the
same reason.

Timeout is checked once per cycle; a slow probe can overshoot it by its
own duration.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from typing import Any

from k0s_action.adapters.base import CommandRunner
from k0s_action.core.models.cluster import (
    ClusterHandle,
    ClusterObservations,
    DiagnosticSection,
    Fatal,
    LayerResult,
    ReadinessConfig,
    ReadinessLayer,
    ReadinessVerdict,
    Ready,
    TimedOut,
)
from k0s_action.core.services.k0s_common import (
    SYSTEM_NAMESPACE,
    k0s_argv,
    kubectl_argv,
    run_kubectl,
)

logger = logging.getLogger(__name__)

Probe = Callable[[], LayerResult]

_HEALTHY_POD_PHASES = frozenset({"Running", "Succeeded"})


# ═══════════════════════════════════════════════════════════════════
#  Pure evaluation
# ═══════════════════════════════════════════════════════════════════


def _name(obj: dict[str, Any]) -> str:
    return obj.get("metadata", {}).get("name", "?")


def has_ready_condition(obj: dict[str, Any]) -> bool:
    """Whether the object's ``Ready`` condition has status ``"True"``."""
    for cond in obj.get("status", {}).get("conditions", []) or []:
        if cond.get("type") == "Ready":
            return cond.get("status") == "True"
    return False


def node_is_ready(node: dict[str, Any]) -> bool:
    return has_ready_condition(node)


def pod_is_healthy(pod: dict[str, Any]) -> bool:
    """Running (with no container stuck waiting) or Completed."""
    if pod.get("metadata", {}).get("deletionTimestamp"):
        return False
    status = pod.get("status", {})
    phase = status.get("phase", "")
    if phase not in _HEALTHY_POD_PHASES:
        return False
    if phase == "Running":
        for cs in status.get("containerStatuses", []) or []:
            if "waiting" in (cs.get("state") or {}):
                return False
    return True


def evaluate(obs: ClusterObservations) -> LayerResult:
    """Verdict for one cycle: the first failing layer, or a pass."""
    passed: list[ReadinessLayer] = []

    def fail(layer: ReadinessLayer, detail: str) -> LayerResult:
        return LayerResult(
            passed=False, failed_layer=layer, passed_layers=tuple(passed), detail=detail
        )

    if not obs.service_up:
        return fail(ReadinessLayer.SERVICE_UP, "k0s not running yet")
    passed.append(ReadinessLayer.SERVICE_UP)

    if not obs.api_reachable:
        return fail(ReadinessLayer.API_REACHABLE, "kubectl cannot connect yet")
    passed.append(ReadinessLayer.API_REACHABLE)

    if obs.nodes is None:
        return fail(ReadinessLayer.NODES_READY, "node list unavailable")
    if not obs.nodes:
        return fail(ReadinessLayer.NODES_READY, "no nodes registered yet")
    not_ready = [_name(n) for n in obs.nodes if not node_is_ready(n)]
    if not_ready:
        return fail(ReadinessLayer.NODES_READY, f"nodes not Ready yet: {', '.join(not_ready)}")
    passed.append(ReadinessLayer.NODES_READY)

    if obs.pods is None:
        return fail(ReadinessLayer.WORKLOADS_HEALTHY, f"{SYSTEM_NAMESPACE} pod list unavailable")
    if not obs.pods:
        return fail(ReadinessLayer.WORKLOADS_HEALTHY, f"no {SYSTEM_NAMESPACE} pods yet")
    unhealthy = [_name(p) for p in obs.pods if not pod_is_healthy(p)]
    if unhealthy:
        return fail(
            ReadinessLayer.WORKLOADS_HEALTHY,
            f"{SYSTEM_NAMESPACE} pods not running yet: {', '.join(unhealthy)}",
        )
    passed.append(ReadinessLayer.WORKLOADS_HEALTHY)

    return LayerResult(passed=True, passed_layers=tuple(passed))


# ═══════════════════════════════════════════════════════════════════
#  Observation gathering (I/O)
# ═══════════════════════════════════════════════════════════════════


def parse_items(output: str) -> list[dict[str, Any]] | None:
    try:
        data = json.loads(output)
    except (ValueError, TypeError):
        return None
    if not isinstance(data, dict):
        return None
    items = data.get("items")
    return items if isinstance(items, list) else None


def gather_observations(
    runner: CommandRunner,
    kubectl: list[str],
) -> ClusterObservations:
    """Collect signals layer by layer, stopping at the first failed one."""
    obs = ClusterObservations()

    status = runner.run("k0s-status", k0s_argv(runner), "status", sudo=True, timeout=15)
    obs.service_up = status.ok
    if not obs.service_up:
        return obs

    info = run_kubectl(runner, kubectl, "kubectl-cluster-info", "cluster-info")
    obs.api_reachable = info.ok
    if not obs.api_reachable:
        return obs

    nodes = run_kubectl(runner, kubectl, "kubectl-get-nodes", "get", "nodes", "-o", "json")
    obs.nodes = parse_items(nodes.output) if nodes.ok else None
    if not obs.nodes or not all(node_is_ready(n) for n in obs.nodes):
        return obs

    pods = run_kubectl(
        runner, kubectl, "kubectl-get-pods",
        "get", "pods", "-n", SYSTEM_NAMESPACE, "-o", "json",
    )
    obs.pods = parse_items(pods.output) if pods.ok else None
    return obs


class ClusterProbe:
    """Callable probe bound to a runner and kubeconfig."""

    def __init__(self, runner: CommandRunner, kubectl: list[str]):
        self.runner = runner
        self.kubectl = kubectl
        self.last_observations: ClusterObservations | None = None

    def __call__(self) -> LayerResult:
        self.last_observations = gather_observations(self.runner, self.kubectl)
        return evaluate(self.last_observations)


# ═══════════════════════════════════════════════════════════════════
#  Diagnostics
# ═══════════════════════════════════════════════════════════════════


def collect_diagnostics(
    runner: CommandRunner,
    kubectl: list[str] | None,
    service_name: str,
) -> list[DiagnosticSection]:
    """Capture the timeout bundle. Each command's failure is recorded, not raised."""
    k0s = k0s_argv(runner)
    plan: list[tuple[str, str, list[str], bool]] = [
        ("k0s Status", "diag-k0s-status", [k0s, "status"], True),
        (
            "k0s Controller Logs",
            "diag-journal",
            ["journalctl", "-u", service_name, "-n", "100", "--no-pager"],
            True,
        ),
    ]
    if kubectl:
        plan.extend([
            ("Kubectl Cluster Info", "diag-cluster-info", [*kubectl, "cluster-info"], False),
            ("Nodes", "diag-nodes", [*kubectl, "get", "nodes", "-o", "wide"], False),
            (
                "Kube-system Pods",
                "diag-pods",
                [*kubectl, "get", "pods", "-n", SYSTEM_NAMESPACE],
                False,
            ),
        ])

    sections: list[DiagnosticSection] = []
    for title, command_id, argv, sudo in plan:
        receipt = runner.run(command_id, *argv, sudo=sudo, timeout=30)
        text = receipt.output if receipt.ok else "\n".join(
            part for part in (receipt.output, receipt.error or "") if part
        )
        sections.append(DiagnosticSection(
            title=title,
            command=" ".join(argv),
            output=text.rstrip(),
            ok=receipt.ok,
        ))
    return sections


# ═══════════════════════════════════════════════════════════════════
#  Polling loop
# ═══════════════════════════════════════════════════════════════════


def wait_for_ready(
    probe: Probe,
    config: ReadinessConfig,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    diagnostics: Callable[[], list[DiagnosticSection]] | None = None,
) -> Ready | TimedOut:
    """Poll ``probe`` until it passes or ``config.timeout_seconds`` elapses."""
    if config.single_sample:
        logger.warning(
            "poll interval (%ss) >= timeout (%ss); expect a single sample",
            config.poll_interval_seconds,
            config.timeout_seconds,
        )

    start = clock()
    cycles = 0
    last: LayerResult | None = None

    while True:
        elapsed = clock() - start

        if elapsed > config.timeout_seconds:
            stage = last.failed_layer if last else None
            logger.error(
                "Timeout waiting for cluster to be ready (last failed layer: %s)",
                stage.value if stage else "none",
            )
            sections = diagnostics() if diagnostics else []
            return TimedOut(
                elapsed=elapsed,
                last_observed_stage=stage,
                cycles=cycles,
                detail=last.detail if last else "",
                diagnostics=sections,
            )

        cycles += 1
        result = probe()
        for layer in result.passed_layers:
            logger.debug("  %s ✓", layer.value)

        if result.passed:
            elapsed = clock() - start
            logger.info("✓ k0s cluster is fully ready! (%.0fs, %d checks)", elapsed, cycles)
            return Ready(elapsed=elapsed, cycles=cycles)

        last = result
        logger.info(
            "Cluster not ready yet (%s: %s), waiting... (%.0f/%ss)",
            result.failed_layer.value if result.failed_layer else "?",
            result.detail,
            elapsed,
            config.timeout_seconds,
        )
        sleep(config.poll_interval_seconds)


def check_readiness(
    runner: CommandRunner,
    handle: ClusterHandle,
    config: ReadinessConfig,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> ReadinessVerdict:
    """Run the readiness loop against a launched cluster.

    Returns ``Fatal`` without polling when there is no kubectl to ask
    with: that cluster can never be observed as ready.
    """
    kubectl = kubectl_argv(runner, handle.credentials_path)
    if kubectl is None:
        return Fatal(reason="Neither kubectl nor k0s is available to query the cluster")

    logger.info("Waiting for k0s cluster to be ready (timeout: %ss)...", config.timeout_seconds)
    probe = ClusterProbe(runner, kubectl)
    return wait_for_ready(
        probe,
        config,
        clock=clock,
        sleep=sleep,
        diagnostics=lambda: collect_diagnostics(runner, kubectl, handle.service_name),
    )
