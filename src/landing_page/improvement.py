"""
Content Improvement Stage.

First half of the editorial review. Each segment is sent back to the text
generation service with a request for clearer, more persuasive, more specific
copy in the same shape. Segments are improved concurrently.

Strategy:
1. Skip sections already assessed at 9+ (their content is kept)
2. Validate the rewrite against the segment schema
3. Replace section content only; enabled, version, generated_at and
   segment attributes carry over. A rewritten section drops its quality,
   which scored the old content
4. Transient failures are retried; once retries run out, or the rewrite is
   invalid, the segment is kept as it was (the stage never raises)

Usage:
    stage = ContentImprovementStage(client, cache)
    improved = await stage.improve(segments)
"""

import asyncio
from dataclasses import replace
from typing import Dict, Mapping, Optional

from src.common.llm_config import get_step_config
from src.common.logger import get_logger
from src.landing_page.cache import SegmentCache
from src.landing_page.llm_client import TextGenerationClient, complete_with_retry
from src.landing_page.prompts import IMPROVEMENT_SYSTEM_PROMPT, build_improvement_user_prompt
from src.landing_page.types import (
    GenerationStatus,
    GenerationStatusTracker,
    Segment,
    SegmentType,
    SourceRecord,
)
from src.landing_page.validator import SchemaValidator

# Sections assessed at or above this score are left alone
SKIP_IMPROVEMENT_SCORE = 9


class ContentImprovementStage:
    """
    Rewrites section content per segment; fail-open.

    Args:
        client: Text generation client for the content_improvement step
        cache: Segment cache to write improved segments back to (optional)
        validator: Schema validator (default: SchemaValidator())
        max_retries: Retries after the first attempt (default: step config)
        backoff_seconds: Base of the exponential backoff between attempts
    """

    def __init__(
        self,
        client: TextGenerationClient,
        cache: Optional[SegmentCache] = None,
        validator: Optional[SchemaValidator] = None,
        max_retries: Optional[int] = None,
        backoff_seconds: float = 1.0,
    ):
        self._logger = get_logger(__name__, stage="improve")
        self._client = client
        self._cache = cache
        self._validator = validator or SchemaValidator()
        if max_retries is None:
            max_retries = get_step_config("content_improvement").max_retries
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds

    @staticmethod
    def _needs_improvement(segment: Segment) -> bool:
        return any(
            section.quality is None or section.quality.quality_score < SKIP_IMPROVEMENT_SCORE
            for section in segment.sections.values()
        )

    async def improve_segment(
        self,
        segment: Segment,
        status: Optional[GenerationStatusTracker] = None,
        source: Optional[SourceRecord] = None,
    ) -> Segment:
        """Improve one segment; returns the input unchanged on any failure."""
        segment_type = segment.segment_type

        if not self._needs_improvement(segment):
            self._logger.info(f"Skipping {segment_type.value}: all sections already score 9+")
            return segment

        try:
            payload = await complete_with_retry(
                self._client,
                build_improvement_user_prompt(segment, source),
                self._validator.schema_for(segment_type),
                system=IMPROVEMENT_SYSTEM_PROMPT,
                max_retries=self.max_retries,
                backoff_seconds=self.backoff_seconds,
                logger=self._logger,
            )
            rewritten = self._validator.validate(
                segment_type,
                payload,
                version=segment.version,
                generated_at=segment.generated_at,
            )

            sections = {}
            for name, original in segment.sections.items():
                if (
                    original.quality is not None
                    and original.quality.quality_score >= SKIP_IMPROVEMENT_SCORE
                ):
                    sections[name] = original
                    continue
                new = rewritten.sections[name]
                sections[name] = replace(
                    original, title=new.title, content=new.content, quality=None
                )
        except Exception as e:
            self._logger.warning(
                f"Improvement of {segment_type.value} failed: {e}. Keeping original content."
            )
            return segment

        improved = replace(segment, sections=sections)
        if self._cache is not None:
            self._cache.put(segment_type, improved)
        if status is not None:
            status.advance(segment_type, GenerationStatus.IMPROVED)
        self._logger.info(f"Improved {segment_type.value} segment ({len(sections)} sections)")
        return improved

    async def improve(
        self,
        segments: Mapping[SegmentType, Segment],
        status: Optional[GenerationStatusTracker] = None,
        source: Optional[SourceRecord] = None,
    ) -> Dict[SegmentType, Segment]:
        """
        Improve every segment concurrently.

        Returns:
            New segment map with the same keys; failed segments are unchanged
        """
        keys = list(segments)
        results = await asyncio.gather(
            *(self.improve_segment(segments[key], status, source) for key in keys)
        )
        return dict(zip(keys, results))
