"""Tests for the command line entry point."""
import pytest
from pydantic import ValidationError

from switch_telemetry import main as main_module
from switch_telemetry.core.config import Settings
from switch_telemetry.main import EXIT_STARTUP_FAILURE, build_engine, main, settings_from_args
from switch_telemetry.snmp.mock_engine import MockSnmpEngine

HOSTNAME = "mlab2-abc0t.mlab-sandbox.measurement-lab.org"

METRICS_YAML = (
    "- name: ifHCInOctets\n"
    "  description: Ingress octets.\n"
    "  oidStub: .1.3.6.1.2.1.31.1.1.1.6\n"
    "  mlabUplinkName: switch.octets.uplink.rx\n"
    "  mlabMachineName: switch.octets.local.rx\n"
)


def _base(**overrides) -> Settings:
    values = {"community": "", "hostname": "", "metrics": "", "target": ""}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSettingsFromArgs:
    def test_no_flags_keeps_base(self):
        base = _base(community="public")
        assert settings_from_args([], base=base) is base

    def test_flags_override_environment(self):
        base = _base(community="public", hostname="other")
        s = settings_from_args(
            [
                "--community", "s3cret",
                "--hostname", HOSTNAME,
                "--metrics", "m.yaml",
                "--datadir", "/tmp/spool",
                "--write-interval", "60",
                "--prometheus-listen-address", "127.0.0.1:9991",
                "--mock",
            ],
            base=base,
        )
        assert s.community == "s3cret"
        assert s.hostname == HOSTNAME
        assert s.metrics_file == "m.yaml"
        assert s.data_dir == "/tmp/spool"
        assert s.write_interval_seconds == 60
        assert s.prometheus_listen_address == "127.0.0.1:9991"
        assert s.snmp_mock is True
        assert s.resolved_target == "s1-abc0t.measurement-lab.org"

    def test_target_flag(self):
        s = settings_from_args(["--target", "sw.example.net"], base=_base())
        assert s.resolved_target == "sw.example.net"

    @pytest.mark.parametrize("interval", ["0", "-5"])
    def test_write_interval_override_is_validated(self, interval):
        with pytest.raises(ValidationError):
            settings_from_args(["--write-interval", interval], base=_base())


def test_build_engine_mock():
    engine = build_engine(_base(hostname=HOSTNAME, snmp_mock=True))
    assert isinstance(engine, MockSnmpEngine)


def test_missing_required_settings_exit_code(monkeypatch):
    monkeypatch.setattr(main_module, "get_settings", _base)
    assert main([]) == EXIT_STARTUP_FAILURE


def test_bad_metrics_file_exit_code(monkeypatch, tmp_path):
    monkeypatch.setattr(main_module, "get_settings", _base)
    argv = [
        "--community", "public",
        "--hostname", HOSTNAME,
        "--metrics", str(tmp_path / "missing.yaml"),
        "--mock",
    ]
    assert main(argv) == EXIT_STARTUP_FAILURE


class _FakeService:
    instances: list = []

    def __init__(self, aggregator, **kwargs):
        self.aggregator = aggregator
        self.kwargs = kwargs
        _FakeService.instances.append(self)

    def request_stop(self, exit_code=None):
        pass

    async def run(self):
        return 0


@pytest.mark.asyncio
async def test_run_agent_wires_components_in_mock_mode(monkeypatch, tmp_path):
    metrics = tmp_path / "metrics.yaml"
    metrics.write_text(METRICS_YAML, encoding="utf-8")
    monkeypatch.setattr(main_module.MetricsExporter, "serve", lambda self, address: None)
    monkeypatch.setattr(main_module, "SchedulerService", _FakeService)
    _FakeService.instances.clear()
    settings = _base(
        community="public", hostname=HOSTNAME, metrics=str(metrics),
        datadir=str(tmp_path), snmp_mock=True, write_interval_seconds=60,
    )

    assert await main_module.run_agent(settings) == 0

    service = _FakeService.instances[0]
    assert len(service.aggregator.oids) == 2
    assert service.kwargs["write_interval_seconds"] == 60


def test_invalid_write_interval_exit_code(monkeypatch):
    monkeypatch.setattr(main_module, "get_settings", _base)
    assert main(["--write-interval", "0"]) == EXIT_STARTUP_FAILURE


def test_bad_listen_address_exit_code(monkeypatch, tmp_path):
    metrics = tmp_path / "metrics.yaml"
    metrics.write_text(METRICS_YAML, encoding="utf-8")
    monkeypatch.setattr(main_module, "get_settings", _base)
    argv = [
        "--community", "public",
        "--hostname", HOSTNAME,
        "--metrics", str(metrics),
        "--datadir", str(tmp_path),
        "--prometheus-listen-address", "not-an-address",
        "--mock",
    ]
    assert main(argv) == EXIT_STARTUP_FAILURE
