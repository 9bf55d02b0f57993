"""Engine access and execution orchestration."""

from dbquery.execution.engine import SubprocessEngine, parse_engine_output
from dbquery.execution.orchestrator import ExecutionOrchestrator, raise_for_response
from dbquery.execution.types import EngineResponse

__all__ = [
    "EngineResponse",
    "ExecutionOrchestrator",
    "SubprocessEngine",
    "parse_engine_output",
    "raise_for_response",
]
