"""Tests for the WinSW backend."""

import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from service_manager.backends.winsw import (
    MISSING_CONFIG_MESSAGE,
    WinSwServiceManager,
    make_service_configuration,
    winsw_exe,
)
from service_manager.config.models import (
    WinSwConfig,
    WinSwInstallConfig,
    WinSwOnFailureAction,
    WinSwOptionsConfig,
    WinSwPriority,
    WinSwStartType,
)
from service_manager.errors import InvalidConfigurationError, NativeCommandError
from service_manager.types import (
    RestartPolicy,
    ServiceStartCtx,
    ServiceState,
    ServiceStatusCtx,
    ServiceStopCtx,
    ServiceUninstallCtx,
)
from tests.conftest import FakeRunner, make_ctx


@pytest.fixture
def config(tmp_path: Path) -> WinSwConfig:
    return WinSwConfig(service_definition_dir=tmp_path / "services")


@pytest.fixture
def winsw(runner: FakeRunner, monkeypatch: pytest.MonkeyPatch) -> FakeRunner:
    monkeypatch.delenv("WINSW_PATH", raising=False)
    monkeypatch.setattr("service_manager.backends.winsw.run_command", runner)
    return runner


def _xml(config: WinSwConfig, ctx) -> ET.Element:
    return ET.fromstring(make_service_configuration(config, ctx))


# =============================================================================
# XML Generation Tests
# =============================================================================


class TestServiceConfiguration:
    """Tests for the generated WinSW XML."""

    def test_defaults(self, label, config):
        root = _xml(config, make_ctx(label, restart_policy=RestartPolicy.never()))

        assert root.tag == "service"
        assert root.findtext("id") == "com.example.echo"
        assert root.findtext("executable") == str(Path("/usr/local/bin/echo-server"))
        assert root.findtext("name") == "com.example.echo"
        assert root.findtext("description") == "Service for com.example.echo"
        assert root.findtext("arguments") == "--port 8080"
        assert root.find("onfailure").attrib == {"action": "none"}
        assert root.findtext("startmode") == "Automatic"
        assert root.find("workingdirectory") is None
        assert root.find("priority") is None

    def test_element_order(self, label, config):
        ctx = make_ctx(label, working_directory=Path("C:/srv"), environment=[("A", "1")])
        tags = [child.tag for child in _xml(config, ctx)]
        assert tags == [
            "id",
            "executable",
            "name",
            "description",
            "arguments",
            "workingdirectory",
            "env",
            "onfailure",
            "startmode",
        ]

    def test_manual_start_without_autostart(self, label, config):
        root = _xml(config, make_ctx(label, autostart=False))
        assert root.findtext("startmode") == "Manual"

    def test_env_attributes(self, label, config):
        ctx = make_ctx(label, environment=[("PORT", "8080"), ("MODE", "prod")])
        envs = [env.attrib for env in _xml(config, ctx).findall("env")]
        assert envs == [{"name": "PORT", "value": "8080"}, {"name": "MODE", "value": "prod"}]

    def test_restart_policy_maps_to_onfailure(self, label, config):
        root = _xml(config, make_ctx(label, restart_policy=RestartPolicy.on_failure(10)))
        assert root.find("onfailure").attrib == {"action": "restart", "delay": "10 sec"}

    def test_configured_failure_action_wins(self, label, tmp_path):
        config = WinSwConfig(
            service_definition_dir=tmp_path,
            install=WinSwInstallConfig(
                failure_action=WinSwOnFailureAction(action="reboot")
            ),
        )
        root = _xml(config, make_ctx(label, restart_policy=RestartPolicy.always()))
        assert root.find("onfailure").attrib == {"action": "reboot"}

    def test_all_options(self, label, tmp_path):
        config = WinSwConfig(
            service_definition_dir=tmp_path,
            install=WinSwInstallConfig(
                description="Echo server",
                display_name="Echo",
                failure_action=WinSwOnFailureAction(action="restart", delay="10 sec"),
                reset_failure_time="1 hour",
                security_descriptor="D:(A;;GA;;;SY)",
            ),
            options=WinSwOptionsConfig(
                priority=WinSwPriority.HIGH,
                stop_timeout="15 sec",
                stop_executable=Path("C:/echo/stop.exe"),
                stop_args=["--graceful", "--now"],
                start_mode=WinSwStartType.MANUAL,
                delayed_autostart=True,
                dependent_services=["Tcpip", "Dnscache"],
                interactive=False,
                beep_on_shutdown=True,
            ),
        )
        root = _xml(config, make_ctx(label))

        assert root.findtext("name") == "Echo"
        assert root.findtext("description") == "Echo server"
        assert root.find("onfailure").attrib == {"action": "restart", "delay": "10 sec"}
        assert root.findtext("resetfailure") == "1 hour"
        assert root.findtext("securityDescriptor") == "D:(A;;GA;;;SY)"
        assert root.findtext("priority") == "High"
        assert root.findtext("stoptimeout") == "15 sec"
        assert root.findtext("stopexecutable") == str(Path("C:/echo/stop.exe"))
        assert root.findtext("stoparguments") == "--graceful --now"
        assert root.findtext("startmode") == "Manual"
        assert root.findtext("delayedAutoStart") == "true"
        assert [d.text for d in root.findall("depend")] == ["Tcpip", "Dnscache"]
        assert root.findtext("interactive") == "false"
        assert root.findtext("beeponshutdown") == "true"

    def test_failure_delay_requires_restart(self):
        with pytest.raises(ValueError):
            WinSwOnFailureAction(action="reboot", delay="10 sec")


# =============================================================================
# Lifecycle Tests
# =============================================================================


class TestWinSwLifecycle:
    """Tests for install, uninstall, start and stop."""

    def test_install_writes_config_and_runs_winsw(self, label, config, winsw):
        WinSwServiceManager(config).install(make_ctx(label))

        service_dir = config.service_definition_dir / "com.example.echo"
        config_path = service_dir / "com.example.echo.xml"
        assert config_path.read_bytes().startswith(b"<?xml")
        assert winsw.calls == [("winsw.exe", "install", "com.example.echo.xml")]
        assert winsw.cwds == [service_dir]

    def test_install_contents_override(self, label, config, winsw):
        contents = "<service><id>custom</id></service>"
        WinSwServiceManager(config).install(make_ctx(label, contents=contents))

        config_path = config.service_definition_dir / "com.example.echo" / "com.example.echo.xml"
        assert config_path.read_text() == contents

    def test_invalid_contents_touch_nothing(self, label, config, winsw):
        with pytest.raises(
            InvalidConfigurationError, match="not a valid XML document"
        ):
            WinSwServiceManager(config).install(make_ctx(label, contents="<service>"))

        assert not config.service_definition_dir.exists()
        assert winsw.calls == []

    def test_uninstall_removes_directory(self, label, config, winsw):
        manager = WinSwServiceManager(config)
        manager.install(make_ctx(label))
        winsw.calls.clear()

        manager.uninstall(ServiceUninstallCtx(label))

        assert winsw.calls == [("winsw.exe", "uninstall", "com.example.echo.xml")]
        assert not (config.service_definition_dir / "com.example.echo").exists()

    def test_uninstall_failure_keeps_directory(self, label, config, winsw):
        manager = WinSwServiceManager(config)
        manager.install(make_ctx(label))
        winsw.returns(1, stderr="Access denied")

        with pytest.raises(NativeCommandError):
            manager.uninstall(ServiceUninstallCtx(label))
        assert (config.service_definition_dir / "com.example.echo").exists()

    def test_start_stop(self, label, config, winsw):
        manager = WinSwServiceManager(config)
        manager.start(ServiceStartCtx(label))
        manager.stop(ServiceStopCtx(label))
        assert [call[1] for call in winsw.calls] == ["start", "stop"]

    def test_winsw_path_override(self, tmp_path, monkeypatch):
        exe = tmp_path / "WinSW-x64.exe"
        exe.write_bytes(b"")
        monkeypatch.setenv("WINSW_PATH", str(exe))
        assert winsw_exe() == str(exe)
        assert WinSwServiceManager().available() is True

    def test_winsw_path_missing_file_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("WINSW_PATH", str(tmp_path / "missing.exe"))
        assert winsw_exe() == "winsw.exe"


# =============================================================================
# Status Tests
# =============================================================================


class TestWinSwStatus:
    """Tests for status parsing."""

    @pytest.fixture
    def installed(self, label, config) -> WinSwServiceManager:
        (config.service_definition_dir / label.to_qualified_name()).mkdir(parents=True)
        return WinSwServiceManager(config)

    def test_missing_directory_runs_nothing(self, label, config, winsw):
        status = WinSwServiceManager(config).status(ServiceStatusCtx(label))
        assert status.state == ServiceState.NOT_INSTALLED
        assert winsw.calls == []

    def test_missing_config_file(self, label, installed, winsw):
        winsw.returns(-1, stderr=f"Unhandled exception. {MISSING_CONFIG_MESSAGE}.")
        status = installed.status(ServiceStatusCtx(label))
        assert status.state == ServiceState.NOT_INSTALLED

    @pytest.mark.parametrize(
        ("stdout", "expected"),
        [
            ("NonExistent\n", ServiceState.NOT_INSTALLED),
            ("Active (running)\n", ServiceState.RUNNING),
            ("Inactive (stopped)\n", ServiceState.STOPPED),
        ],
    )
    def test_stdout_mapping(self, label, installed, winsw, stdout, expected):
        winsw.returns(0, stdout=stdout)
        assert installed.status(ServiceStatusCtx(label)).state == expected

    def test_other_failure(self, label, installed, winsw):
        winsw.returns(1, stderr="boom")
        with pytest.raises(NativeCommandError, match="boom"):
            installed.status(ServiceStatusCtx(label))
