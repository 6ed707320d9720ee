"""Pydantic schemas for metric definitions and archive documents."""
from .archive import IntervalDocument, Sample
from .metric import MetricDefinition

__all__ = [
    "IntervalDocument",
    "MetricDefinition",
    "Sample",
]
