"""
Data types for the landing page pipeline.

These types represent the intermediate and final outputs of generation:
- Segment: One independently generated group of sections (with version)
- Section: Structured content plus the enabled flag and quality assessment
- QualityAssessment: Scores and justifications from the editorial review
- Document: The assembled landing page, built fresh on every assembly
- GenerationStatusTracker: Per-request progress of each segment
- GenerationOptions / GenerationResult: Orchestrator request and response

Segments, sections and documents are frozen: each stage returns new objects
instead of changing the ones it was given.
"""

import copy
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from src.common.config import Config
from src.common.error_handling import PipelineError
from src.landing_page.markdown import render_section_markdown


class SegmentType(str, Enum):
    """The closed set of independently generated segments."""

    IDENTITY = "identity"
    SERVICE_OFFERING = "service_offering"
    CREDIBILITY = "credibility"
    CONVERSION = "conversion"

    @classmethod
    def parse(cls, value: Any) -> "SegmentType":
        """Accept a member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown segment type: {value!r}")


class GenerationStatus(str, Enum):
    """Lifecycle of a segment within one request."""

    NOT_GENERATED = "not_generated"
    GENERATED = "generated"
    IMPROVED = "improved"
    ASSESSED = "assessed"
    FAILED = "failed"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]


_STATUS_RANK = {
    GenerationStatus.FAILED: -1,
    GenerationStatus.NOT_GENERATED: 0,
    GenerationStatus.GENERATED: 1,
    GenerationStatus.IMPROVED: 2,
    GenerationStatus.ASSESSED: 3,
}


class GenerationStatusTracker:
    """
    Tracks GenerationStatus per segment type for one request.

    Statuses only move forward through advance(), and a FAILED segment stays
    FAILED for the rest of the request; set() and mark_failed() overwrite
    unconditionally.
    """

    def __init__(self, segment_types: Optional[Iterable[SegmentType]] = None):
        types = segment_types if segment_types is not None else list(SegmentType)
        self._statuses: Dict[SegmentType, GenerationStatus] = {
            SegmentType.parse(t): GenerationStatus.NOT_GENERATED for t in types
        }

    def get(self, segment_type: SegmentType) -> GenerationStatus:
        return self._statuses.get(SegmentType.parse(segment_type), GenerationStatus.NOT_GENERATED)

    def set(self, segment_type: SegmentType, status: GenerationStatus) -> None:
        self._statuses[SegmentType.parse(segment_type)] = status

    def advance(self, segment_type: SegmentType, status: GenerationStatus) -> None:
        """Move to status unless the segment is already past it or failed."""
        current = self.get(segment_type)
        if current != GenerationStatus.FAILED and status.rank > current.rank:
            self.set(segment_type, status)

    def mark_failed(self, segment_type: SegmentType) -> None:
        self.set(segment_type, GenerationStatus.FAILED)

    def failed(self) -> List[SegmentType]:
        return [t for t, s in self._statuses.items() if s == GenerationStatus.FAILED]

    def snapshot(self) -> Dict[str, str]:
        return {t.value: s.value for t, s in self._statuses.items()}


@dataclass(frozen=True)
class QualityAssessment:
    """Editorial scores for one section (1-10 scale)."""

    quality_score: int
    quality_justification: str
    confidence_score: int
    confidence_justification: str
    combined_score: int
    suggested_improvement: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quality_score": self.quality_score,
            "quality_justification": self.quality_justification,
            "confidence_score": self.confidence_score,
            "confidence_justification": self.confidence_justification,
            "combined_score": self.combined_score,
            "suggested_improvement": self.suggested_improvement,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "QualityAssessment":
        return cls(
            quality_score=int(data["quality_score"]),
            quality_justification=data.get("quality_justification", ""),
            confidence_score=int(data["confidence_score"]),
            confidence_justification=data.get("confidence_justification", ""),
            combined_score=int(data["combined_score"]),
            suggested_improvement=data.get("suggested_improvement"),
        )


@dataclass(frozen=True)
class Section:
    """
    One named section of a segment.

    Sections are never absent: a section that should not be shown has
    enabled=False. quality is only set once the section has been assessed.
    """

    title: str
    content: Dict[str, Any]
    enabled: bool = True
    quality: Optional[QualityAssessment] = None

    def to_payload(self) -> Dict[str, Any]:
        """Content plus the enabled flag, as a schema-shaped payload."""
        return {**copy.deepcopy(self.content), "enabled": self.enabled}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "content": copy.deepcopy(self.content),
            "enabled": self.enabled,
            "quality": self.quality.to_dict() if self.quality else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Section":
        quality = data.get("quality")
        return cls(
            title=data["title"],
            content=copy.deepcopy(dict(data["content"])),
            enabled=bool(data.get("enabled", True)),
            quality=QualityAssessment.from_dict(quality) if quality else None,
        )


@dataclass(frozen=True)
class Segment:
    """
    A generated segment: versioned group of sections plus segment-level attributes.

    version increments every time the segment is regenerated; improvement and
    assessment keep it unchanged.
    """

    segment_type: SegmentType
    version: int
    generated_at: str
    sections: Dict[str, Section]
    attributes: Dict[str, Any] = field(default_factory=dict)

    def section(self, name: str) -> Optional[Section]:
        return self.sections.get(name)

    def with_sections(self, sections: Mapping[str, Section]) -> "Segment":
        """Copy of this segment with some sections replaced."""
        merged = dict(self.sections)
        merged.update(sections)
        return replace(self, sections=merged)

    def to_payload(self) -> Dict[str, Any]:
        """The raw schema-shaped payload this segment validates from."""
        payload = copy.deepcopy(self.attributes)
        for name, section in self.sections.items():
            payload[name] = section.to_payload()
        return payload

    def to_dict(self) -> Dict[str, Any]:
        return {
            "segment_type": self.segment_type.value,
            "version": self.version,
            "generated_at": self.generated_at,
            "attributes": copy.deepcopy(self.attributes),
            "sections": {name: s.to_dict() for name, s in self.sections.items()},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Segment":
        return cls(
            segment_type=SegmentType.parse(data["segment_type"]),
            version=int(data["version"]),
            generated_at=data["generated_at"],
            sections={
                name: Section.from_dict(section)
                for name, section in data["sections"].items()
            },
            attributes=copy.deepcopy(dict(data.get("attributes", {}))),
        )


@dataclass(frozen=True)
class Document:
    """
    The assembled landing page.

    section_order lists only the sections actually included, in canonical
    order; sections maps each of them to its rendered content.
    """

    title: str
    description: str
    section_order: Tuple[str, ...]
    sections: Dict[str, Dict[str, Any]]
    name: str = ""
    tagline: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "name": self.name,
            "tagline": self.tagline,
            "section_order": list(self.section_order),
            "sections": copy.deepcopy(self.sections),
        }

    def to_markdown(self) -> str:
        """Render the document as markdown, one block per included section."""
        lines = [f"# {self.title}", ""]
        if self.description:
            lines.extend([self.description, ""])
        if self.tagline:
            lines.extend([f"*{self.tagline}*", ""])

        for name in self.section_order:
            block = render_section_markdown(name, self.sections[name])
            if block:
                lines.extend([block, ""])

        return "\n".join(lines).rstrip() + "\n"


@dataclass(frozen=True)
class QualityThresholds:
    """
    Scores a section must reach to stay enabled after assessment.

    With the default quality/confidence minimums of 1, only the combined
    score gates.
    """

    min_combined_score: int = 7
    min_quality_score: int = 1
    min_confidence_score: int = 1

    def passes(self, assessment: QualityAssessment) -> bool:
        return (
            assessment.combined_score >= self.min_combined_score
            and assessment.quality_score >= self.min_quality_score
            and assessment.confidence_score >= self.min_confidence_score
        )

    @classmethod
    def from_config(cls) -> "QualityThresholds":
        return cls(
            min_combined_score=Config.MIN_COMBINED_SCORE,
            min_quality_score=Config.MIN_QUALITY_SCORE,
            min_confidence_score=Config.MIN_CONFIDENCE_SCORE,
        )


@dataclass(frozen=True)
class SourceRecord:
    """
    Profile data that seeds generation.

    Known brand fields are read from attributes when building prompts:
    tone, writing_style, core_values, target_audience, pain_points,
    desired_action, unique_value.
    """

    name: str
    tagline: str = ""
    description: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SourceRecord":
        if not data.get("name"):
            raise ValueError("Source record has no name")
        extra = {k: v for k, v in data.items() if k not in ("name", "tagline", "description")}
        return cls(
            name=str(data["name"]),
            tagline=str(data.get("tagline") or ""),
            description=str(data.get("description") or ""),
            attributes=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "tagline": self.tagline,
            "description": self.description,
            **copy.deepcopy(self.attributes),
        }


@dataclass
class GenerationOptions:
    """
    Options for one generate_document request.

    Attributes:
        segments_to_generate: Segments to (re)generate; None means all.
            Segments not listed are reused from the cache.
        regenerate_all: Bypass the cache for every generated segment
        skip_improvement: Skip the content improvement stage
        skip_assessment: Skip the quality assessment stage
        deadline_seconds: Overall deadline; exceeding it fails the request
    """

    segments_to_generate: Optional[List[SegmentType]] = None
    regenerate_all: bool = False
    skip_improvement: bool = False
    skip_assessment: bool = False
    deadline_seconds: Optional[float] = None

    def requested_segments(self) -> List[SegmentType]:
        if self.segments_to_generate is None:
            return list(SegmentType)
        requested = {SegmentType.parse(t) for t in self.segments_to_generate}
        return [t for t in SegmentType if t in requested]


@dataclass
class GenerationResult:
    """Outcome of a generation request: a document, or the errors that prevented one."""

    run_id: str
    document: Optional[Document] = None
    errors: List[PipelineError] = field(default_factory=list)
    segment_status: Dict[str, str] = field(default_factory=dict)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.document is not None

    @property
    def degraded(self) -> bool:
        """A document was produced but some segment or stage failed."""
        return self.document is not None and bool(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "success": self.success,
            "document": self.document.to_dict() if self.document else None,
            "errors": [e.to_dict() for e in self.errors],
            "segment_status": dict(self.segment_status),
            "duration_ms": self.duration_ms,
        }
