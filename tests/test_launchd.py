"""Tests for the launchd backend."""

import plistlib
from pathlib import Path

import pytest

from service_manager.backends.launchd import LaunchdServiceManager, make_plist
from service_manager.config.models import LaunchdConfig, LaunchdInstallConfig
from service_manager.errors import InvalidConfigurationError, NativeCommandError
from service_manager.label import ServiceLabel
from service_manager.types import (
    RestartPolicy,
    ServiceLevel,
    ServiceStartCtx,
    ServiceState,
    ServiceStatusCtx,
    ServiceStopCtx,
    ServiceUninstallCtx,
)
from tests.conftest import FakeRunner, make_ctx


@pytest.fixture
def daemon_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "LaunchDaemons"
    monkeypatch.setattr(
        "service_manager.backends.launchd.global_daemon_dir_path", lambda: path
    )
    return path


@pytest.fixture
def agent_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "LaunchAgents"
    monkeypatch.setattr(
        "service_manager.backends.launchd.user_agent_dir_path", lambda: path
    )
    return path


@pytest.fixture
def launchctl(runner: FakeRunner, monkeypatch: pytest.MonkeyPatch) -> FakeRunner:
    monkeypatch.setattr("service_manager.backends.launchd.run_command", runner)
    return runner


def _plist(label: ServiceLabel, **overrides) -> dict:
    data = make_plist(
        LaunchdInstallConfig(), label.to_qualified_name(), make_ctx(label, **overrides)
    )
    return plistlib.loads(data)


# =============================================================================
# Plist Generation Tests
# =============================================================================


class TestMakePlist:
    """Tests for plist generation."""

    def test_basic_fields(self, label: ServiceLabel):
        plist = _plist(label)
        assert plist["Label"] == "com.example.echo"
        assert plist["ProgramArguments"] == [
            "/usr/local/bin/echo-server",
            "--port",
            "8080",
        ]
        assert plist["RunAtLoad"] is True
        assert "UserName" not in plist
        assert "WorkingDirectory" not in plist
        assert "EnvironmentVariables" not in plist

    def test_on_failure_keeps_alive_disabled(self, label: ServiceLabel):
        plist = _plist(label, restart_policy=RestartPolicy.on_failure())
        assert plist["KeepAlive"] == {"SuccessfulExit": False}
        assert plist["Disabled"] is True

    def test_on_success(self, label: ServiceLabel):
        plist = _plist(label, restart_policy=RestartPolicy.on_success())
        assert plist["KeepAlive"] == {"SuccessfulExit": True}

    def test_always(self, label: ServiceLabel):
        plist = _plist(label, restart_policy=RestartPolicy.always())
        assert plist["KeepAlive"] is True
        assert plist["Disabled"] is True

    def test_never_omits_keep_alive(self, label: ServiceLabel):
        plist = _plist(label, restart_policy=RestartPolicy.never())
        assert "KeepAlive" not in plist
        assert "Disabled" not in plist

    def test_delay_is_ignored_with_warning(self, label: ServiceLabel, caplog):
        with caplog.at_level("WARNING"):
            plist = _plist(label, restart_policy=RestartPolicy.always(30))
        assert plist["KeepAlive"] is True
        assert "delay" in caplog.text

    def test_keep_alive_config_overrides_policy(self, label: ServiceLabel):
        ctx = make_ctx(label, restart_policy=RestartPolicy.never())
        plist = plistlib.loads(
            make_plist(LaunchdInstallConfig(keep_alive=True), "com.example.echo", ctx)
        )
        assert plist["KeepAlive"] is True

        ctx = make_ctx(label, restart_policy=RestartPolicy.always())
        plist = plistlib.loads(
            make_plist(LaunchdInstallConfig(keep_alive=False), "com.example.echo", ctx)
        )
        assert "KeepAlive" not in plist
        assert "Disabled" not in plist

    def test_optional_fields(self, label: ServiceLabel):
        plist = _plist(
            label,
            username="daemon",
            working_directory=Path("/var/lib/echo"),
            environment=[("PORT", "8080"), ("MODE", "prod")],
            autostart=False,
        )
        assert plist["UserName"] == "daemon"
        assert plist["WorkingDirectory"] == "/var/lib/echo"
        assert plist["EnvironmentVariables"] == {"PORT": "8080", "MODE": "prod"}
        assert plist["RunAtLoad"] is False


# =============================================================================
# Lifecycle Tests
# =============================================================================


class TestLaunchdLifecycle:
    """Tests for install, uninstall, start and stop."""

    def test_install_writes_and_loads(self, label, daemon_dir, launchctl):
        manager = LaunchdServiceManager()
        manager.install(make_ctx(label))

        plist_path = daemon_dir / "com.example.echo.plist"
        assert plist_path.exists()
        assert launchctl.calls == [("launchctl", "load", str(plist_path))]

    def test_install_removes_stale_definition(self, label, daemon_dir, launchctl):
        daemon_dir.mkdir()
        (daemon_dir / "com.example.echo.plist").write_bytes(b"stale")
        launchctl.returns(1, stderr="not loaded")

        LaunchdServiceManager().install(make_ctx(label))

        assert launchctl.calls[0] == ("launchctl", "remove", "com.example.echo")
        assert launchctl.calls[1][1] == "load"

    def test_install_user_level_uses_agents_dir(self, label, agent_dir, launchctl):
        manager = LaunchdServiceManager.for_user()
        manager.install(make_ctx(label))
        assert (agent_dir / "com.example.echo.plist").exists()

    def test_install_contents_override(self, label, daemon_dir, launchctl):
        contents = plistlib.dumps({"Label": "custom"}).decode()
        LaunchdServiceManager().install(make_ctx(label, contents=contents))
        assert (daemon_dir / "com.example.echo.plist").read_text() == contents

    def test_install_invalid_contents(self, label, daemon_dir, launchctl):
        with pytest.raises(InvalidConfigurationError):
            LaunchdServiceManager().install(make_ctx(label, contents="not a plist"))
        assert not daemon_dir.exists()
        assert launchctl.calls == []

    def test_install_load_failure(self, label, daemon_dir, launchctl):
        launchctl.returns(5, stderr="Load failed: 5: Input/output error")
        with pytest.raises(NativeCommandError, match="Input/output error"):
            LaunchdServiceManager().install(make_ctx(label))

    def test_uninstall_ignores_remove_failure(self, label, daemon_dir, launchctl):
        daemon_dir.mkdir()
        plist_path = daemon_dir / "com.example.echo.plist"
        plist_path.write_bytes(b"")
        launchctl.returns(3, stderr="No such process")

        LaunchdServiceManager().uninstall(ServiceUninstallCtx(label))

        assert not plist_path.exists()
        assert launchctl.calls == [("launchctl", "remove", "com.example.echo")]

    def test_start_missing_plist(self, label, daemon_dir, launchctl):
        with pytest.raises(FileNotFoundError):
            LaunchdServiceManager().start(ServiceStartCtx(label))

    def test_start_clears_disabled_and_reloads(self, label, daemon_dir, launchctl):
        manager = LaunchdServiceManager()
        manager.install(make_ctx(label, restart_policy=RestartPolicy.always()))
        launchctl.calls.clear()

        manager.start(ServiceStartCtx(label))

        plist_path = daemon_dir / "com.example.echo.plist"
        plist = plistlib.loads(plist_path.read_bytes())
        assert "Disabled" not in plist
        assert plist["KeepAlive"] is True
        assert launchctl.calls == [
            ("launchctl", "unload", str(plist_path)),
            ("launchctl", "load", str(plist_path)),
        ]

    def test_start_without_keep_alive(self, label, daemon_dir, launchctl):
        manager = LaunchdServiceManager()
        manager.install(make_ctx(label, restart_policy=RestartPolicy.never()))
        launchctl.calls.clear()

        manager.start(ServiceStartCtx(label))

        assert launchctl.calls == [("launchctl", "start", "com.example.echo")]

    def test_stop(self, label, launchctl):
        LaunchdServiceManager().stop(ServiceStopCtx(label))
        assert launchctl.calls == [("launchctl", "stop", "com.example.echo")]


# =============================================================================
# Status Tests
# =============================================================================


class TestLaunchdStatus:
    """Tests for the two-pass status lookup."""

    def test_not_installed(self, label, launchctl):
        launchctl.returns(64, stderr="Bad request.\nCould not find service.")
        status = LaunchdServiceManager().status(ServiceStatusCtx(label))
        assert status.state == ServiceState.NOT_INSTALLED
        assert len(launchctl.calls) == 1

    def test_second_pass_uses_listed_target(self, label, launchctl):
        launchctl.returns(
            64,
            stderr="Unrecognized target specifier.\n    system/com.example.echo\n",
        )
        launchctl.returns(0, stdout="system/com.example.echo = {\n\tstate = running\n}")

        status = LaunchdServiceManager().status(ServiceStatusCtx(label))

        assert status.state == ServiceState.RUNNING
        assert launchctl.calls[1] == ("launchctl", "print", "system/com.example.echo")

    def test_stopped(self, label, launchctl):
        launchctl.returns(0, stdout="\tstate = not running\n\tlast exit code = 0\n")
        status = LaunchdServiceManager().status(ServiceStatusCtx(label))
        assert status.state == ServiceState.STOPPED

    def test_second_pass_failure_raises(self, label, launchctl):
        launchctl.returns(64, stderr="  gui/501/com.example.echo\n")
        launchctl.returns(64, stderr="still not found")
        with pytest.raises(NativeCommandError):
            LaunchdServiceManager().status(ServiceStatusCtx(label))

    def test_other_failure_raises(self, label, launchctl):
        launchctl.returns(1, stderr="Operation not permitted")
        with pytest.raises(NativeCommandError) as exc_info:
            LaunchdServiceManager().status(ServiceStatusCtx(label))
        assert exc_info.value.exit_code == 1

    def test_other_failure_reports_stdout(self, label, launchctl):
        launchctl.returns(5, stdout="Boot-out failed: 5: Input/output error")
        with pytest.raises(NativeCommandError, match="Input/output error") as exc_info:
            LaunchdServiceManager().status(ServiceStatusCtx(label))
        assert exc_info.value.exit_code == 5

    def test_other_failure_without_output(self, label, launchctl):
        launchctl.returns(3)
        with pytest.raises(NativeCommandError, match="no output"):
            LaunchdServiceManager().status(ServiceStatusCtx(label))


class TestLaunchdLevel:
    """Tests for level switching."""

    def test_supports_both_levels(self):
        manager = LaunchdServiceManager(config=LaunchdConfig())
        assert manager.level == ServiceLevel.SYSTEM
        manager.set_level(ServiceLevel.USER)
        assert manager.level == ServiceLevel.USER
        manager.set_level(ServiceLevel.SYSTEM)
        assert manager.level == ServiceLevel.SYSTEM
