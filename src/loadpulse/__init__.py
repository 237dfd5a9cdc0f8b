"""loadpulse: drive a message API with a controlled GET/POST load."""

from __future__ import annotations

from loadpulse._internal.config import RunConfig, load_config
from loadpulse.engine.dispatcher import DispatchMode, Dispatcher, IntervalParams, QuotaParams
from loadpulse.engine.endpoint import EndpointSlot
from loadpulse.engine.executor import RequestExecutor
from loadpulse.engine.runner import LoadTestRunner, RunReport
from loadpulse.engine.shutdown import ShutdownReason, ShutdownSignal
from loadpulse.engine.workload import RequestKind, WorkItem, WorkloadGenerator
from loadpulse.metrics.models import AggregateStats, RequestOutcome
from loadpulse.metrics.recorder import ResultRecorder

__version__ = "0.1.0"

__all__ = [
    "AggregateStats",
    "DispatchMode",
    "Dispatcher",
    "EndpointSlot",
    "IntervalParams",
    "LoadTestRunner",
    "QuotaParams",
    "RequestExecutor",
    "RequestKind",
    "RequestOutcome",
    "ResultRecorder",
    "RunConfig",
    "RunReport",
    "ShutdownReason",
    "ShutdownSignal",
    "WorkItem",
    "WorkloadGenerator",
    "load_config",
]
