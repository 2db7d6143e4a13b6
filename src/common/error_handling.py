"""
Error collection for the landing page pipeline.

Failures that do not abort a request (an optional segment that could not be
generated, an improvement or assessment call that failed open) are recorded
here so callers can report a degraded document instead of losing the error.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

SEVERITIES = ("critical", "high", "medium", "low")


@dataclass
class PipelineError:
    """
    Structured error information for one pipeline failure.

    A non-recoverable critical error means no document was produced.
    """

    stage: str  # e.g. "generate", "improve", "assess", "assemble"
    message: str
    severity: str = "medium"
    segment_type: Optional[str] = None
    recoverable: bool = True
    exception_type: Optional[str] = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> dict:
        return {
            "stage": self.stage,
            "message": self.message,
            "severity": self.severity,
            "segment_type": self.segment_type,
            "recoverable": self.recoverable,
            "exception_type": self.exception_type,
            "timestamp": self.timestamp,
        }


class ErrorCollector:
    """Collects PipelineErrors during one generation request."""

    def __init__(self):
        self.errors: List[PipelineError] = []

    def add(self, error: PipelineError) -> None:
        self.errors.append(error)

    def add_error(
        self,
        stage: str,
        message: str,
        severity: str = "medium",
        segment_type: Optional[str] = None,
        recoverable: bool = True,
        exception: Optional[BaseException] = None,
    ) -> PipelineError:
        """Record an error built from parameters and return it."""
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown severity: {severity}")
        error = PipelineError(
            stage=stage,
            message=message,
            severity=severity,
            segment_type=segment_type,
            recoverable=recoverable,
            exception_type=type(exception).__name__ if exception else None,
        )
        self.errors.append(error)
        return error

    def has_critical_errors(self) -> bool:
        """True when any critical, non-recoverable error occurred."""
        return any(e.severity == "critical" and not e.recoverable for e in self.errors)

    def for_segment(self, segment_type: str) -> List[PipelineError]:
        return [e for e in self.errors if e.segment_type == segment_type]

    def get_error_messages(self) -> List[str]:
        return [e.message for e in self.errors]

    def summary(self) -> Dict[str, object]:
        by_severity = {severity: 0 for severity in SEVERITIES}
        for error in self.errors:
            by_severity[error.severity] += 1
        return {
            "total": len(self.errors),
            "by_severity": by_severity,
            "recoverable": sum(1 for e in self.errors if e.recoverable),
            "non_recoverable": sum(1 for e in self.errors if not e.recoverable),
        }
