"""OpenTelemetry 評価メトリクス定義"""

from __future__ import annotations

from opentelemetry import metrics

_meter = metrics.get_meter("flag_engine", version="0.1.0")

flag_evaluations_total = _meter.create_counter(
    name="flag_evaluations_total",
    description="Total number of feature flag evaluations",
    unit="1",
)

flag_evaluation_rejections_total = _meter.create_counter(
    name="flag_evaluation_rejections_total",
    description="Total number of evaluations rejected before the rule walk",
    unit="1",
)
