"""
Metric definition loader.

讀取 metrics YAML（一個 list，每筆一個 MetricDefinition），
任何未知欄位、缺欄位或空值都視為設定錯誤。
"""
from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from switch_telemetry.schemas.metric import MetricDefinition

logger = logging.getLogger(__name__)


class MetricsFileError(Exception):
    """Raised when the metrics YAML cannot be read or is invalid."""


def load_metric_definitions(path: str | Path) -> list[MetricDefinition]:
    """
    Load and validate metric definitions from a YAML file.

    Returns:
        Definitions in file order.

    Raises:
        MetricsFileError: file missing/unreadable, bad YAML, wrong shape,
            validation failure, duplicate names or an empty list.
    """
    config_path = Path(path)
    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        logger.error("Failed to read metrics file '%s': %s", config_path, e)
        raise MetricsFileError(f"cannot read {config_path}: {e}") from e
    except yaml.YAMLError as e:
        logger.error("Failed to parse metrics file '%s': %s", config_path, e)
        raise MetricsFileError(f"invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, list):
        raise MetricsFileError(
            f"{config_path}: expected a list of metrics, got {type(data).__name__}"
        )
    if not data:
        raise MetricsFileError(f"{config_path}: no metrics defined")

    definitions: list[MetricDefinition] = []
    for i, entry in enumerate(data):
        try:
            definitions.append(MetricDefinition.model_validate(entry))
        except ValidationError as e:
            raise MetricsFileError(
                f"{config_path}: metric #{i + 1} is invalid: {e}"
            ) from e

    seen: set[str] = set()
    for d in definitions:
        if d.name in seen:
            raise MetricsFileError(f"{config_path}: duplicate metric name {d.name!r}")
        seen.add(d.name)

    logger.info("Loaded %d metric definitions from %s", len(definitions), config_path)
    return definitions
