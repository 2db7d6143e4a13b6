"""
Exceptions raised by the landing page pipeline.

Every error carries the segment type and stage it belongs to, so the
orchestrator can record it as a PipelineError without parsing messages.
"""

from typing import List, Optional


class LandingPageError(Exception):
    """Base class for pipeline errors."""

    def __init__(
        self,
        message: str,
        segment_type: Optional[str] = None,
        stage: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.segment_type = getattr(segment_type, "value", segment_type)
        self.stage = stage

    def __str__(self) -> str:
        if self.segment_type:
            return f"[{self.segment_type}] {self.message}"
        return self.message


class ValidationError(LandingPageError):
    """A generated payload does not match its segment schema. Not retried."""

    def __init__(
        self,
        message: str,
        segment_type: Optional[str] = None,
        stage: Optional[str] = "validate",
        fields: Optional[List[str]] = None,
    ):
        super().__init__(message, segment_type=segment_type, stage=stage)
        self.fields = fields or []


class GenerationError(LandingPageError):
    """The text generation service timed out, failed or returned unusable output."""

    def __init__(
        self,
        message: str,
        segment_type: Optional[str] = None,
        stage: Optional[str] = "generate",
    ):
        super().__init__(message, segment_type=segment_type, stage=stage)


class AssemblyPreconditionError(LandingPageError):
    """A required section is missing or disabled at assembly time."""

    def __init__(
        self,
        message: str,
        segment_type: Optional[str] = None,
        section_name: Optional[str] = None,
    ):
        super().__init__(message, segment_type=segment_type, stage="assemble")
        self.section_name = section_name


class SourceDataError(LandingPageError):
    """The source record could not be fetched."""

    def __init__(self, message: str):
        super().__init__(message, stage="source_data")
