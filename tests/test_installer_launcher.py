"""
Tests for the installer and the cluster launcher.

Downloads go through an injected callable and every host command through
MockRunner. No network, no sudo.
"""

import stat
from pathlib import Path

import pytest

from k0s_action.core.errors import InstallError, InstallVerificationError, LaunchError
from k0s_action.core.models.platform import Architecture, ResolvedRelease
from k0s_action.core.services.installer import install_binary
from k0s_action.core.services.launcher import launch_cluster, write_credentials

_RELEASE = ResolvedRelease(tag="v1.30.0+k0s.0", architecture=Architecture.AMD64)
_KUBECONFIG = "apiVersion: v1\nkind: Config\nclusters: []\n"


class _Download:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls: list[tuple[str, Path]] = []

    def __call__(self, url: str, dest: Path) -> str:
        self.calls.append((url, dest))
        if self.error is not None:
            raise self.error
        dest.write_bytes(b"\x7fELF")
        return "deadbeef"


# ═══════════════════════════════════════════════════════════════════
#  install_binary
# ═══════════════════════════════════════════════════════════════════


class TestInstallBinary:
    def test_happy_path(self, runner, tmp_path: Path):
        runner.set_output("k0s-version", "v1.30.0+k0s.0\n")
        download = _Download()
        target = tmp_path / "bin" / "k0s"

        version = install_binary(_RELEASE, runner, target=target, download=download)

        assert version == "v1.30.0+k0s.0"
        assert download.calls[0][0] == _RELEASE.download_url
        assert runner.called_ids == ["k0s-install-binary", "k0s-version"]

        install = runner.calls_for("k0s-install-binary")[0]
        assert install.sudo is True
        assert install.argv[:3] == ["install", "-m", "0755"]
        assert install.argv[-1] == str(target)

    def test_scratch_removed(self, runner, tmp_path: Path):
        download = _Download()
        install_binary(_RELEASE, runner, target=tmp_path / "k0s", download=download)
        scratch = download.calls[0][1].parent
        assert not scratch.exists()

    def test_scratch_removed_on_download_failure(self, runner, tmp_path: Path):
        download = _Download(error=OSError("404 Not Found"))
        with pytest.raises(InstallError, match="404"):
            install_binary(_RELEASE, runner, target=tmp_path / "k0s", download=download)
        assert not download.calls[0][1].parent.exists()
        assert runner.call_count == 0

    def test_install_step_failure(self, runner, tmp_path: Path):
        runner.set_failure("k0s-install-binary", "permission denied")
        with pytest.raises(InstallError, match="permission denied") as exc:
            install_binary(_RELEASE, runner, target=tmp_path / "k0s", download=_Download())
        assert not isinstance(exc.value, InstallVerificationError)
        assert "k0s-version" not in runner.called_ids

    def test_verification_failure(self, runner, tmp_path: Path):
        runner.set_failure("k0s-version", "exec format error")
        with pytest.raises(InstallVerificationError, match="exec format error"):
            install_binary(_RELEASE, runner, target=tmp_path / "k0s", download=_Download())


# ═══════════════════════════════════════════════════════════════════
#  launch_cluster
# ═══════════════════════════════════════════════════════════════════


class TestLaunchCluster:
    def _launch(self, runner, tmp_path: Path, env: dict, sleeps: list):
        return launch_cluster(
            runner,
            settle_seconds=7,
            kubeconfig_path=tmp_path / "kube" / "config",
            sleep=sleeps.append,
            environ=env,
        )

    def test_happy_path(self, runner, tmp_path: Path, runner_files):
        runner.set_output("k0s-kubeconfig", _KUBECONFIG)
        env = dict(runner_files)
        sleeps: list = []

        handle = self._launch(runner, tmp_path, env, sleeps)

        path = tmp_path / "kube" / "config"
        assert handle.credentials_path == str(path)
        assert handle.service_name == "k0scontroller"
        assert path.read_text() == _KUBECONFIG
        assert runner.called_ids == ["k0s-install-controller", "k0s-start", "k0s-kubeconfig"]
        assert sleeps == [7]

        controller = runner.calls_for("k0s-install-controller")[0]
        assert controller.argv[1:] == ["install", "controller", "--single"]
        assert all(c.sudo for c in runner.call_log)

    def test_publishes_output_and_env(self, runner, tmp_path: Path, runner_files):
        runner.set_output("k0s-kubeconfig", _KUBECONFIG)
        env = dict(runner_files)
        self._launch(runner, tmp_path, env, [])

        path = str(tmp_path / "kube" / "config")
        assert env["KUBECONFIG"] == path
        assert open(runner_files["GITHUB_OUTPUT"]).read() == f"kubeconfig={path}\n"
        assert open(runner_files["GITHUB_ENV"]).read() == f"KUBECONFIG={path}\n"

    def test_credentials_owner_only(self, runner, tmp_path: Path):
        runner.set_output("k0s-kubeconfig", _KUBECONFIG)
        self._launch(runner, tmp_path, {}, [])
        mode = stat.S_IMODE((tmp_path / "kube" / "config").stat().st_mode)
        assert mode == 0o600

    @pytest.mark.parametrize("step", ["k0s-install-controller", "k0s-start", "k0s-kubeconfig"])
    def test_failing_step_named(self, runner, tmp_path: Path, step):
        runner.set_output("k0s-kubeconfig", _KUBECONFIG)
        runner.set_failure(step, "boom")
        with pytest.raises(LaunchError) as exc:
            self._launch(runner, tmp_path, {}, [])
        assert exc.value.step == step
        assert runner.called_ids[-1] == step

    def test_start_failure_stops_pipeline(self, runner, tmp_path: Path):
        """No undo inline: nothing runs after the failed step."""
        runner.set_failure("k0s-start", "unit failed")
        with pytest.raises(LaunchError):
            self._launch(runner, tmp_path, {}, [])
        assert runner.called_ids == ["k0s-install-controller", "k0s-start"]

    def test_empty_kubeconfig(self, runner, tmp_path: Path):
        runner.set_output("k0s-kubeconfig", "  \n")
        with pytest.raises(LaunchError, match="empty kubeconfig"):
            self._launch(runner, tmp_path, {}, [])
        assert not (tmp_path / "kube" / "config").exists()

    def test_overwrites_existing_credentials(self, runner, tmp_path: Path):
        path = tmp_path / "kube" / "config"
        write_credentials(path, "old")
        runner.set_output("k0s-kubeconfig", _KUBECONFIG)
        self._launch(runner, tmp_path, {}, [])
        assert path.read_text() == _KUBECONFIG
