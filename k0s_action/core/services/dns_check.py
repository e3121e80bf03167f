"""
DNS deep check — prove in-cluster name resolution works.

Runs once, after the readiness loop reports Ready:

    1. wait (bounded) for the cluster DNS pods to be Ready
    2. start a throwaway busybox pod that runs nslookup
    3. wait (bounded) for it to finish, then check it succeeded

The probe pod is deleted on every exit path. Any failure is a
``DNSVerificationError``.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable

from k0s_action.adapters.base import CommandRunner
from k0s_action.core.errors import DNSVerificationError
from k0s_action.core.models.cluster import ClusterHandle, ReadinessConfig
from k0s_action.core.services.k0s_common import (
    SYSTEM_NAMESPACE,
    kubectl_argv,
    run_kubectl,
)
from k0s_action.core.services.readiness import has_ready_condition, parse_items, pod_is_healthy

logger = logging.getLogger(__name__)

DNS_SELECTOR = "k8s-app=kube-dns"
PROBE_IMAGE = "busybox:1.36"
PROBE_LOOKUP = "kubernetes.default.svc.cluster.local"
PROBE_NAMESPACE = "default"
_POLL_SECONDS = 2
_DONE_PHASES = frozenset({"Succeeded", "Failed"})


def _deadline_loop(
    timeout: int,
    clock: Callable[[], float],
    sleep: Callable[[float], None],
    check: Callable[[], bool],
) -> bool:
    """Call ``check`` until it returns True or ``timeout`` elapses."""
    start = clock()
    while True:
        if check():
            return True
        if clock() - start > timeout:
            return False
        sleep(_POLL_SECONDS)


def wait_for_dns_workload(
    runner: CommandRunner,
    kubectl: list[str],
    timeout: int,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Block until every DNS pod is Running and Ready. Zero pods is not ready."""

    def dns_ready() -> bool:
        receipt = run_kubectl(
            runner, kubectl, "kubectl-get-dns-pods",
            "get", "pods", "-n", SYSTEM_NAMESPACE, "-l", DNS_SELECTOR, "-o", "json",
        )
        pods = parse_items(receipt.output) if receipt.ok else None
        if not pods:
            return False
        return all(pod_is_healthy(p) and has_ready_condition(p) for p in pods)

    logger.info("Waiting for cluster DNS to be ready (timeout: %ss)...", timeout)
    if not _deadline_loop(timeout, clock, sleep, dns_ready):
        raise DNSVerificationError(f"Cluster DNS pods ({DNS_SELECTOR}) not ready after {timeout}s")


def _probe_phase(runner: CommandRunner, kubectl: list[str], pod: str) -> str:
    receipt = run_kubectl(
        runner, kubectl, "kubectl-probe-phase",
        "get", "pod", pod, "-n", PROBE_NAMESPACE, "-o", "jsonpath={.status.phase}",
    )
    return receipt.output.strip() if receipt.ok else ""


def _delete_probe(runner: CommandRunner, kubectl: list[str], pod: str) -> None:
    receipt = run_kubectl(
        runner, kubectl, "kubectl-delete-probe",
        "delete", "pod", pod, "-n", PROBE_NAMESPACE, "--ignore-not-found", "--wait=false",
        timeout=30,
    )
    if receipt.ok:
        logger.debug("Removed DNS probe pod %s", pod)
    else:
        logger.warning("Could not remove DNS probe pod %s: %s", pod, receipt.reason)


def run_dns_probe(
    runner: CommandRunner,
    kubectl: list[str],
    timeout: int,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    pod_name: str | None = None,
) -> str:
    """Resolve ``PROBE_LOOKUP`` from inside the cluster.

    Returns:
        The probe's nslookup output.
    """
    pod = pod_name or f"dns-probe-{uuid.uuid4().hex[:8]}"
    try:
        created = run_kubectl(
            runner, kubectl, "kubectl-run-probe",
            "run", pod, "-n", PROBE_NAMESPACE,
            f"--image={PROBE_IMAGE}", "--restart=Never",
            "--command", "--", "nslookup", PROBE_LOOKUP,
            timeout=30,
        )
        if not created.ok:
            raise DNSVerificationError(f"Cannot start DNS probe pod: {created.reason}")

        phase = ""

        def finished() -> bool:
            nonlocal phase
            phase = _probe_phase(runner, kubectl, pod)
            return phase in _DONE_PHASES

        done = _deadline_loop(timeout, clock, sleep, finished)

        logs = run_kubectl(runner, kubectl, "kubectl-probe-logs", "logs", pod, "-n", PROBE_NAMESPACE)
        output = logs.output.strip() if logs.ok else ""

        if not done:
            raise DNSVerificationError(
                f"DNS probe pod did not finish within {timeout}s (phase: {phase or 'unknown'})"
            )
        if phase != "Succeeded":
            raise DNSVerificationError(
                f"DNS probe could not resolve {PROBE_LOOKUP}: {output or 'no output'}"
            )
        return output
    finally:
        _delete_probe(runner, kubectl, pod)


def verify_dns(
    runner: CommandRunner,
    handle: ClusterHandle,
    config: ReadinessConfig,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Full deep check against a Ready cluster.

    Raises:
        DNSVerificationError: On any failure.
    """
    kubectl = kubectl_argv(runner, handle.credentials_path)
    if kubectl is None:
        raise DNSVerificationError("Neither kubectl nor k0s is available to run the DNS check")

    timeout = config.dns_timeout_seconds
    wait_for_dns_workload(runner, kubectl, timeout, clock=clock, sleep=sleep)
    output = run_dns_probe(runner, kubectl, timeout, clock=clock, sleep=sleep)
    logger.info("✓ Cluster DNS resolves %s", PROBE_LOOKUP)
    return output
