"""Tests for Settings derived properties and required-setting checks."""
import pytest

from switch_telemetry.core.config import SAMPLE_INTERVAL_SECONDS, Settings


def _settings(**overrides) -> Settings:
    values = {
        "community": "public",
        "hostname": "mlab2-abc0t.mlab-sandbox.measurement-lab.org",
        "metrics": "config/metrics.yaml",
        "target": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestDerivedValues:
    def test_machine_is_short_hostname(self):
        assert _settings().machine == "mlab2"

    def test_target_defaults_to_site_switch(self):
        assert _settings().resolved_target == "s1-abc0t.measurement-lab.org"

    def test_explicit_target_wins(self):
        s = _settings(target="switch.example.net")
        assert s.resolved_target == "switch.example.net"

    def test_defaults(self):
        s = _settings()
        assert s.write_interval_seconds == 300
        assert s.prometheus_listen_address == ":9990"
        assert s.archive_failure_fatal is True
        assert SAMPLE_INTERVAL_SECONDS == 10


class TestValidateRequired:
    def test_complete_settings_have_no_problems(self):
        assert _settings().validate_required() == []

    @pytest.mark.parametrize(
        "field, fragment",
        [
            ("community", "community string"),
            ("hostname", "FQDN"),
            ("metrics", "Metrics file"),
        ],
    )
    def test_missing_value_is_reported(self, field, fragment):
        problems = _settings(**{field: ""}).validate_required()
        assert len(problems) == 1
        assert fragment in problems[0]

    def test_whitespace_community_is_missing(self):
        assert _settings(community="  \n").validate_required()

    def test_write_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            _settings(write_interval_seconds=0)
