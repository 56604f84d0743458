"""Aggregation pipeline: engine, runner and scheduler."""

from __future__ import annotations

from fx_aggregator.pipeline.aggregator import aggregate, aggregate_all
from fx_aggregator.pipeline.runner import PipelineRunner, PipelineState, RunOutcome, RunReport
from fx_aggregator.pipeline.scheduler import HourlyScheduler

__all__ = [
    "HourlyScheduler",
    "PipelineRunner",
    "PipelineState",
    "RunOutcome",
    "RunReport",
    "aggregate",
    "aggregate_all",
]
