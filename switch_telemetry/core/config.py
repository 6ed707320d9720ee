"""
Agent configuration using pydantic-settings.

All settings are loaded from environment variables or a .env file. Command
line flags (see ``switch_telemetry.main``) override them per process.

.env 範例::

    COMMUNITY=s3cret
    HOSTNAME=mlab2-abc0t.mlab-sandbox.measurement-lab.org
    METRICS=/etc/disco/metrics.yaml
    WRITE_INTERVAL_SECONDS=300
"""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Sampling period is fixed; only the archive period is operator-tunable.
SAMPLE_INTERVAL_SECONDS = 10


class Settings(BaseSettings):
    """Agent settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Device
    target: str = Field(
        default="",
        description="Switch FQDN to scrape. Derived from hostname when empty.",
    )
    community: str = Field(default="", description="SNMP v2c community string")
    snmp_port: int = Field(default=161, description="SNMP UDP port")
    snmp_timeout: float = Field(default=5.0, description="Per-request timeout (s)")
    snmp_retries: int = Field(default=1, description="Per-request retries")
    snmp_max_repetitions: int = Field(default=25, description="GETBULK max-repetitions")
    snmp_walk_timeout: float = Field(default=120.0, description="Whole-walk timeout (s)")
    snmp_mock: bool = Field(
        default=False,
        description="Use the in-process mock device instead of real SNMP.",
    )

    # Node identity
    hostname: str = Field(default="", description="FQDN of this node")

    # Metrics
    metrics_file: str = Field(
        default="",
        validation_alias="metrics",
        description="Path to YAML file defining metrics to scrape.",
    )
    prometheus_listen_address: str = Field(
        default=":9990",
        description="host:port for the Prometheus /metrics endpoint",
    )

    # Archive
    data_dir: str = Field(
        default="/var/spool/disco",
        validation_alias="datadir",
        description="Base directory where archive files are written.",
    )
    write_interval_seconds: int = Field(
        default=300,
        gt=0,
        description="Interval between archive flushes in seconds.",
    )
    archive_failure_fatal: bool = Field(
        default=True,
        description="Terminate the process when an archive write fails.",
    )

    # Process
    align_start: bool = Field(
        default=True,
        description="Start sampling on a clean 10s wall-clock boundary.",
    )
    log_level: str = Field(default="INFO", description="Root log level")

    @property
    def machine(self) -> str:
        """Short machine name used as the switch-port alias, e.g. ``mlab2``."""
        return self.hostname[:5]

    @property
    def resolved_target(self) -> str:
        """Switch address, falling back to the site switch for this node."""
        if self.target:
            return self.target
        return f"s1-{self.hostname[6:11]}.measurement-lab.org"

    def validate_required(self) -> list[str]:
        """Return human-readable problems with required settings (empty when OK)."""
        problems: list[str] = []
        if not self.community.strip():
            problems.append(
                "SNMP community string must be passed as arg or env variable."
            )
        if not self.hostname:
            problems.append(
                "Node's FQDN must be passed as an arg or env variable."
            )
        if not self.metrics_file:
            problems.append(
                "Metrics file must be passed as arg or env variable."
            )
        return problems


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance (Singleton pattern)."""
    return Settings()
