"""
Structured JSON event logger for pipeline stages.

Emits one JSON line per stage event so a caller (status command, runner,
log shipper) can follow a generation request:
- stage start/complete/error/skip
- pipeline start/complete

Usage:
    events = StructuredLogger(run_id="abc123")
    with StageContext(events, "assess") as ctx:
        ...
        ctx.add_metadata("disabled_sections", 2)
"""

import json
import sys
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class EventType(str, Enum):
    """Pipeline event types."""
    STAGE_START = "stage_start"
    STAGE_COMPLETE = "stage_complete"
    STAGE_ERROR = "stage_error"
    STAGE_SKIP = "stage_skip"
    PIPELINE_START = "pipeline_start"
    PIPELINE_COMPLETE = "pipeline_complete"


class StageStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"
    PARTIAL = "partial"


@dataclass
class LogEvent:
    """One structured event; None fields are dropped on output."""
    timestamp: str
    event: str
    run_id: str
    stage: Optional[str] = None
    segment_type: Optional[str] = None
    status: Optional[str] = None
    duration_ms: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_json(self) -> str:
        data = {k: v for k, v in asdict(self).items() if v is not None}
        return json.dumps(data, default=str)


class StructuredLogger:
    """
    JSON-lines emitter for stage events.

    Args:
        run_id: Generation request id
        enabled: Emit events (tests usually pass False)
        stream: Output stream, stdout by default
    """

    def __init__(self, run_id: str, enabled: bool = True, stream=None):
        self.run_id = run_id
        self.enabled = enabled
        self._stream = stream
        self._stage_start_times: Dict[str, float] = {}

    def _emit(self, event: LogEvent) -> None:
        if self.enabled:
            print(event.to_json(), file=self._stream or sys.stdout, flush=True)

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    def _elapsed_ms(self, stage: str) -> Optional[int]:
        started = self._stage_start_times.pop(stage, None)
        if started is None:
            return None
        return int((time.time() - started) * 1000)

    def emit(
        self,
        event: str,
        stage: Optional[str] = None,
        segment_type: Optional[str] = None,
        status: Optional[str] = None,
        duration_ms: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> None:
        """Emit a custom event."""
        self._emit(LogEvent(
            timestamp=self._now(),
            event=event,
            run_id=self.run_id,
            stage=stage,
            segment_type=segment_type,
            status=status,
            duration_ms=duration_ms,
            metadata=metadata,
            error=error,
        ))

    def stage_start(self, stage: str) -> None:
        self._stage_start_times[stage] = time.time()
        self.emit(event=EventType.STAGE_START.value, stage=stage)

    def stage_complete(
        self,
        stage: str,
        duration_ms: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log stage success; duration is measured from stage_start when omitted."""
        if duration_ms is None:
            duration_ms = self._elapsed_ms(stage)
        self.emit(
            event=EventType.STAGE_COMPLETE.value,
            stage=stage,
            status=StageStatus.SUCCESS.value,
            duration_ms=duration_ms,
            metadata=metadata,
        )

    def stage_error(
        self,
        stage: str,
        error: str,
        segment_type: Optional[str] = None,
        duration_ms: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Log a stage failure.

        Args:
            stage: Stage name
            error: Error message
            segment_type: Segment the failure belongs to, if any
            duration_ms: Duration (measured from stage_start when omitted)
            metadata: Additional context
        """
        if duration_ms is None and segment_type is None:
            duration_ms = self._elapsed_ms(stage)
        self.emit(
            event=EventType.STAGE_ERROR.value,
            stage=stage,
            segment_type=segment_type,
            status=StageStatus.ERROR.value,
            duration_ms=duration_ms,
            error=error,
            metadata=metadata,
        )

    def stage_skip(self, stage: str, reason: str) -> None:
        self.emit(
            event=EventType.STAGE_SKIP.value,
            stage=stage,
            status=StageStatus.SKIPPED.value,
            metadata={"reason": reason},
        )

    def pipeline_start(self, metadata: Optional[Dict[str, Any]] = None) -> None:
        self.emit(event=EventType.PIPELINE_START.value, metadata=metadata)

    def pipeline_complete(
        self,
        status: str = "success",
        duration_ms: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Log the end of a request.

        Args:
            status: success, partial (degraded document) or error
            duration_ms: Total duration
            metadata: Summary (section counts, failed segments)
        """
        self.emit(
            event=EventType.PIPELINE_COMPLETE.value,
            status=status,
            duration_ms=duration_ms,
            metadata=metadata,
        )


class StageContext:
    """
    Context manager timing one stage.

    Exceptions are logged as stage_error and re-raised.
    """

    def __init__(self, logger: StructuredLogger, stage: str):
        self.logger = logger
        self.stage = stage
        self.metadata: Dict[str, Any] = {}
        self._start_time: float = 0

    def __enter__(self) -> "StageContext":
        self._start_time = time.time()
        self.logger.stage_start(self.stage)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        duration_ms = int((time.time() - self._start_time) * 1000)

        if exc_type is not None:
            self.logger.stage_error(
                self.stage,
                str(exc_val) or exc_type.__name__,
                duration_ms=duration_ms,
                metadata=self.metadata or None,
            )
            return False

        self.logger.stage_complete(self.stage, duration_ms, self.metadata or None)
        return False

    def add_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value


def get_structured_logger(run_id: str, enabled: bool = True) -> StructuredLogger:
    return StructuredLogger(run_id, enabled)
