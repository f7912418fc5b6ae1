"""Raw metric signal types (framework-agnostic)."""

from evalmetrics.core.data.types import RawMetric, RawMetricMap

__all__ = ["RawMetric", "RawMetricMap"]
