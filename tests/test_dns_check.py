"""
Tests for the DNS deep check — DNS workload wait and the probe pod.
"""

import json

import pytest

from k0s_action.adapters.mock import MockRunner
from k0s_action.core.errors import DNSVerificationError
from k0s_action.core.models.cluster import ClusterHandle, ReadinessConfig
from k0s_action.core.services.dns_check import (
    DNS_SELECTOR,
    PROBE_IMAGE,
    PROBE_LOOKUP,
    run_dns_probe,
    verify_dns,
    wait_for_dns_workload,
)

_KUBECTL = ["kubectl", "--kubeconfig", "/tmp/kubeconfig"]
_POD = "dns-probe-test"
_NSLOOKUP_OK = "Name:\tkubernetes.default.svc.cluster.local\nAddress: 10.96.0.1\n"


def _dns_pods(*ready_flags):
    items = [
        {
            "metadata": {"name": f"coredns-{i}"},
            "status": {
                "phase": "Running",
                "conditions": [{"type": "Ready", "status": "True" if ready else "False"}],
                "containerStatuses": [{"name": "coredns", "state": {"running": {}}}],
            },
        }
        for i, ready in enumerate(ready_flags)
    ]
    return json.dumps({"items": items})


def _phases(runner: MockRunner, *phases: str) -> None:
    runner.set_sequence(
        "kubectl-probe-phase", [runner.ok("kubectl-probe-phase", p) for p in phases]
    )


class TestWaitForDnsWorkload:
    def test_ready(self, runner, clock):
        runner.set_output("kubectl-get-dns-pods", _dns_pods(True, True))
        wait_for_dns_workload(runner, _KUBECTL, 60, clock=clock, sleep=clock.sleep)
        cmd = runner.calls_for("kubectl-get-dns-pods")[0]
        assert DNS_SELECTOR in cmd.argv
        assert clock.sleeps == []

    def test_becomes_ready(self, runner, clock):
        runner.set_sequence("kubectl-get-dns-pods", [
            runner.ok("kubectl-get-dns-pods", _dns_pods()),
            runner.ok("kubectl-get-dns-pods", _dns_pods(True, False)),
            runner.ok("kubectl-get-dns-pods", _dns_pods(True, True)),
        ])
        wait_for_dns_workload(runner, _KUBECTL, 60, clock=clock, sleep=clock.sleep)
        assert len(runner.calls_for("kubectl-get-dns-pods")) == 3

    def test_zero_pods_times_out(self, runner, clock):
        runner.set_output("kubectl-get-dns-pods", _dns_pods())
        with pytest.raises(DNSVerificationError, match="not ready after 10s"):
            wait_for_dns_workload(runner, _KUBECTL, 10, clock=clock, sleep=clock.sleep)


class TestRunDnsProbe:
    def test_success(self, runner, clock):
        _phases(runner, "Pending", "Running", "Succeeded")
        runner.set_output("kubectl-probe-logs", _NSLOOKUP_OK)

        output = run_dns_probe(
            runner, _KUBECTL, 60, clock=clock, sleep=clock.sleep, pod_name=_POD
        )

        assert PROBE_LOOKUP in output
        create = runner.calls_for("kubectl-run-probe")[0]
        assert f"--image={PROBE_IMAGE}" in create.argv
        assert create.argv[-2:] == ["nslookup", PROBE_LOOKUP]
        assert runner.called_ids[-1] == "kubectl-delete-probe"
        assert _POD in runner.calls_for("kubectl-delete-probe")[0].argv

    def test_lookup_failed(self, runner, clock):
        _phases(runner, "Failed")
        runner.set_output("kubectl-probe-logs", "nslookup: can't resolve")
        with pytest.raises(DNSVerificationError, match="can't resolve"):
            run_dns_probe(runner, _KUBECTL, 60, clock=clock, sleep=clock.sleep, pod_name=_POD)
        assert runner.called_ids[-1] == "kubectl-delete-probe"

    def test_never_finishes(self, runner, clock):
        _phases(runner, "Running")
        with pytest.raises(DNSVerificationError, match="did not finish"):
            run_dns_probe(runner, _KUBECTL, 6, clock=clock, sleep=clock.sleep, pod_name=_POD)
        assert runner.called_ids[-1] == "kubectl-delete-probe"

    def test_create_failure_still_deletes(self, runner, clock):
        runner.set_failure("kubectl-run-probe", "ImagePullBackOff")
        with pytest.raises(DNSVerificationError, match="Cannot start DNS probe"):
            run_dns_probe(runner, _KUBECTL, 6, clock=clock, sleep=clock.sleep, pod_name=_POD)
        assert runner.called_ids == ["kubectl-run-probe", "kubectl-delete-probe"]

    def test_delete_failure_does_not_mask_result(self, runner, clock):
        _phases(runner, "Succeeded")
        runner.set_output("kubectl-probe-logs", _NSLOOKUP_OK)
        runner.set_failure("kubectl-delete-probe", "forbidden")
        assert run_dns_probe(
            runner, _KUBECTL, 6, clock=clock, sleep=clock.sleep, pod_name=_POD
        )

    def test_random_pod_name(self, runner, clock):
        _phases(runner, "Succeeded")
        run_dns_probe(runner, _KUBECTL, 6, clock=clock, sleep=clock.sleep)
        name = runner.calls_for("kubectl-run-probe")[0].argv[len(_KUBECTL) + 1]
        assert name.startswith("dns-probe-")


class TestVerifyDns:
    def test_full_check(self, runner, clock):
        runner.set_output("kubectl-get-dns-pods", _dns_pods(True))
        _phases(runner, "Succeeded")
        runner.set_output("kubectl-probe-logs", _NSLOOKUP_OK)
        handle = ClusterHandle(credentials_path="/tmp/kubeconfig")
        cfg = ReadinessConfig(deep_check_enabled=True, dns_timeout_seconds=30)

        verify_dns(runner, handle, cfg, clock=clock, sleep=clock.sleep)

        assert runner.called_ids[0] == "kubectl-get-dns-pods"
        assert "kubectl-run-probe" in runner.called_ids

    def test_no_kubectl(self, clock):
        runner = MockRunner(tools=())
        handle = ClusterHandle(credentials_path="/tmp/kubeconfig")
        with pytest.raises(DNSVerificationError):
            verify_dns(runner, handle, ReadinessConfig(), clock=clock, sleep=clock.sleep)
        assert runner.call_count == 0
