"""
Quality Assessment Stage.

Second half of the editorial review: scores every section and decides which
ones are shown.

Flow:
1. One aggregate prompt listing every section of every segment
2. Response validated into per-section assessments keyed by
   (segment_type, section_name)
3. Each assessed section gets its QualityAssessment; combined_score comes
   from the score combiner; enabled = all thresholds met
4. Required sections are forced enabled, always last

The call is retried on GenerationError. If it still fails, or the response
does not validate, sections keep their prior enabled flag and required sections are still enforced. Sections the response
leaves out keep their prior state.
"""

import math
from dataclasses import replace
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field

from src.common.llm_config import get_step_config
from src.common.logger import get_logger
from src.landing_page.cache import SegmentCache
from src.landing_page.llm_client import TextGenerationClient, complete_with_retry
from src.landing_page.prompts import ASSESSMENT_SYSTEM_PROMPT, build_assessment_user_prompt
from src.landing_page.schemas import REQUIRED_SECTIONS
from src.landing_page.types import (
    GenerationStatus,
    GenerationStatusTracker,
    QualityAssessment,
    QualityThresholds,
    Segment,
    SegmentType,
    SourceRecord,
)

SectionKey = Tuple[SegmentType, str]
ScoreCombiner = Callable[[int, int], int]


# Pydantic models for structured LLM assessment output
class SectionAssessment(BaseModel):
    """Assessment of one section."""
    segment_type: str = Field(description="Segment type exactly as given")
    section_name: str = Field(description="Section name exactly as given")
    quality_score: int = Field(ge=1, le=10, description="Copy quality 1-10")
    quality_justification: str = Field(default="", description="One sentence")
    confidence_score: int = Field(ge=1, le=10, description="Confidence the section belongs 1-10")
    confidence_justification: str = Field(default="", description="One sentence")
    suggested_improvement: Optional[str] = Field(default=None, description="One concrete fix")


class AssessmentResponse(BaseModel):
    """Structured response for the aggregate assessment."""
    assessments: List[SectionAssessment]


def mean_combiner(quality_score: int, confidence_score: int) -> int:
    """Arithmetic mean of the two scores, halves rounded up."""
    return math.floor((quality_score + confidence_score) / 2 + 0.5)


def enforce_required_sections(
    segments: Mapping[SegmentType, Segment],
    required_sections: Iterable[SectionKey] = REQUIRED_SECTIONS,
) -> Dict[SegmentType, Segment]:
    """
    Return a segment map with every required section enabled.

    Missing segments or sections are left for the assembler to report.
    """
    result = dict(segments)
    for segment_type, section_name in required_sections:
        segment = result.get(segment_type)
        if segment is None:
            continue
        section = segment.section(section_name)
        if section is None or section.enabled:
            continue
        result[segment_type] = segment.with_sections(
            {section_name: replace(section, enabled=True)}
        )
    return result


def index_assessments(
    response: AssessmentResponse,
    segments: Mapping[SegmentType, Segment],
) -> Dict[SectionKey, SectionAssessment]:
    """Key assessments by (segment_type, section_name), dropping unknown sections."""
    indexed: Dict[SectionKey, SectionAssessment] = {}
    for item in response.assessments:
        try:
            segment_type = SegmentType.parse(item.segment_type.strip())
        except ValueError:
            continue
        segment = segments.get(segment_type)
        section_name = item.section_name.strip()
        if segment is None or section_name not in segment.sections:
            continue
        indexed[(segment_type, section_name)] = item
    return indexed


class QualityAssessmentStage:
    """
    Scores and gates sections; fail-open.

    Args:
        client: Text generation client for the quality_assessment step
        cache: Segment cache to write assessed segments back to (optional)
        thresholds: Default gate (default: QualityThresholds.from_config())
        combiner: Combines quality and confidence into combined_score
        required_sections: Sections always enabled regardless of score
        max_retries: Retries after the first attempt (default: step config)
        backoff_seconds: Base of the exponential backoff between attempts
    """

    def __init__(
        self,
        client: TextGenerationClient,
        cache: Optional[SegmentCache] = None,
        thresholds: Optional[QualityThresholds] = None,
        combiner: ScoreCombiner = mean_combiner,
        required_sections: FrozenSet[SectionKey] = REQUIRED_SECTIONS,
        max_retries: Optional[int] = None,
        backoff_seconds: float = 1.0,
    ):
        self._logger = get_logger(__name__, stage="assess")
        self._client = client
        self._cache = cache
        self.thresholds = thresholds or QualityThresholds.from_config()
        self.combiner = combiner
        self.required_sections = frozenset(required_sections)
        if max_retries is None:
            max_retries = get_step_config("quality_assessment").max_retries
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds

    def _to_quality(self, item: SectionAssessment) -> QualityAssessment:
        return QualityAssessment(
            quality_score=item.quality_score,
            quality_justification=item.quality_justification,
            confidence_score=item.confidence_score,
            confidence_justification=item.confidence_justification,
            combined_score=self.combiner(item.quality_score, item.confidence_score),
            suggested_improvement=item.suggested_improvement,
        )

    def apply_assessments(
        self,
        segments: Mapping[SegmentType, Segment],
        assessments: Mapping[SectionKey, SectionAssessment],
        thresholds: QualityThresholds,
    ) -> Dict[SegmentType, Segment]:
        """Attach assessments and set enabled by threshold; unassessed sections are kept."""
        result: Dict[SegmentType, Segment] = {}
        for segment_type, segment in segments.items():
            updates = {}
            for name, section in segment.sections.items():
                item = assessments.get((segment_type, name))
                if item is None:
                    continue
                quality = self._to_quality(item)
                enabled = thresholds.passes(quality)
                updates[name] = replace(section, quality=quality, enabled=enabled)
                self._logger.debug(
                    f"{segment_type.value}.{name}: quality={quality.quality_score} "
                    f"confidence={quality.confidence_score} combined={quality.combined_score} "
                    f"-> {'enabled' if enabled else 'disabled'}"
                )
            result[segment_type] = segment.with_sections(updates) if updates else segment
        return result

    async def assess(
        self,
        segments: Mapping[SegmentType, Segment],
        thresholds: Optional[QualityThresholds] = None,
        status: Optional[GenerationStatusTracker] = None,
        source: Optional[SourceRecord] = None,
    ) -> Dict[SegmentType, Segment]:
        """
        Assess every section of every segment in one call.

        Returns:
            New segment map with quality attached and enabled flags gated
        """
        thresholds = thresholds or self.thresholds
        if not segments:
            return {}

        try:
            payload = await complete_with_retry(
                self._client,
                build_assessment_user_prompt(segments, source),
                AssessmentResponse,
                system=ASSESSMENT_SYSTEM_PROMPT,
                max_retries=self.max_retries,
                backoff_seconds=self.backoff_seconds,
                logger=self._logger,
            )
            response = AssessmentResponse.model_validate(payload)
        except Exception as e:
            self._logger.warning(
                f"Quality assessment failed: {e}. Keeping current section visibility."
            )
            return enforce_required_sections(segments, self.required_sections)

        assessments = index_assessments(response, segments)
        total = sum(len(s.sections) for s in segments.values())
        if len(assessments) < total:
            self._logger.warning(
                f"Assessment covered {len(assessments)}/{total} sections; "
                f"the rest keep their current state"
            )

        assessed = self.apply_assessments(segments, assessments, thresholds)
        assessed = enforce_required_sections(assessed, self.required_sections)

        assessed_types = {segment_type for segment_type, _ in assessments}
        for segment_type in [t for t in assessed if t in assessed_types]:
            if self._cache is not None:
                self._cache.put(segment_type, assessed[segment_type])
            if status is not None:
                status.advance(segment_type, GenerationStatus.ASSESSED)

        disabled = [
            f"{t.value}.{name}"
            for t, segment in assessed.items()
            for name, section in segment.sections.items()
            if not section.enabled
        ]
        self._logger.info(
            f"Assessed {len(assessments)} sections; disabled: {', '.join(disabled) or 'none'}"
        )
        return assessed
