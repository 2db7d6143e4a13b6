"""
Segment Generator.

Produces one validated segment:
1. Return the cached segment unless regeneration is forced
2. Call the text generation service, retrying GenerationError with
   exponential backoff; re-attempts carry a retry notice in the prompt
3. Validate the payload, stamping version = previous version + 1; every
   section starts enabled whatever the payload says
4. Write the segment to the cache

A failed generation never touches the cache, so the previous copy (if any)
stays usable.

Usage:
    generator = SegmentGenerator(client, cache)
    segment = await generator.generate(SegmentType.IDENTITY, prompt)
"""

from dataclasses import replace
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel

from src.common.llm_config import get_step_config
from src.common.logger import get_logger
from src.common.utils import utc_now_iso
from src.landing_page.cache import SegmentCache
from src.landing_page.errors import GenerationError, LandingPageError
from src.landing_page.llm_client import TextGenerationClient, complete_with_retry
from src.landing_page.prompts import RETRY_NOTICE, SEGMENT_GENERATION_SYSTEM_PROMPT
from src.landing_page.types import (
    GenerationStatus,
    GenerationStatusTracker,
    Segment,
    SegmentType,
)
from src.landing_page.validator import SchemaValidator


def _all_sections_enabled(segment: Segment) -> Segment:
    """Fresh sections start enabled; only the review may disable them."""
    return segment.with_sections(
        {name: replace(section, enabled=True) for name, section in segment.sections.items()}
    )


class SegmentGenerator:
    """
    Generates, validates and caches one segment at a time.

    Args:
        client: Text generation client (anything with async complete())
        cache: Segment cache shared with the review stages
        validator: Schema validator (default: SchemaValidator())
        max_retries: Retries after the first attempt (default: step config, 2)
        backoff_seconds: Base of the exponential backoff between attempts
        system_prompt: System prompt sent with every generation call
    """

    def __init__(
        self,
        client: TextGenerationClient,
        cache: SegmentCache,
        validator: Optional[SchemaValidator] = None,
        max_retries: Optional[int] = None,
        backoff_seconds: float = 1.0,
        system_prompt: str = SEGMENT_GENERATION_SYSTEM_PROMPT,
    ):
        self._logger = get_logger(__name__, stage="generate")
        self._client = client
        self._cache = cache
        self._validator = validator or SchemaValidator()
        if max_retries is None:
            max_retries = get_step_config("segment_generation").max_retries
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.system_prompt = system_prompt

    @property
    def validator(self) -> SchemaValidator:
        return self._validator

    async def _complete_with_retry(
        self,
        prompt: str,
        schema: Type[BaseModel],
    ) -> Dict[str, Any]:
        return await complete_with_retry(
            self._client,
            prompt,
            schema,
            system=self.system_prompt,
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
            retry_notice=RETRY_NOTICE,
            logger=self._logger,
        )

    async def generate(
        self,
        segment_type: SegmentType,
        prompt: str,
        schema: Optional[Type[BaseModel]] = None,
        force_regenerate: bool = False,
        status: Optional[GenerationStatusTracker] = None,
    ) -> Segment:
        """
        Produce a segment, from cache when possible.

        Args:
            segment_type: Segment to produce
            prompt: Generation prompt
            schema: Schema override (default: the segment's registered schema)
            force_regenerate: Bypass the cache
            status: Request status tracker to update

        Returns:
            The cached or newly generated Segment

        Raises:
            GenerationError: The service kept failing after all retries
            ValidationError: The payload did not match the schema
        """
        segment_type = SegmentType.parse(segment_type)
        cached = self._cache.get(segment_type)

        if cached is not None and not force_regenerate:
            self._logger.info(f"Using cached {segment_type.value} segment v{cached.version}")
            if status is not None:
                status.advance(segment_type, GenerationStatus.GENERATED)
            return cached

        version = cached.version + 1 if cached is not None else 1
        schema = schema or self._validator.schema_for(segment_type)
        self._logger.info(f"Generating {segment_type.value} segment (v{version})")

        try:
            payload = await self._complete_with_retry(prompt, schema)
            segment = self._validator.validate(
                segment_type,
                payload,
                version=version,
                generated_at=utc_now_iso(),
                schema=schema,
            )
            segment = _all_sections_enabled(segment)
        except GenerationError as e:
            if status is not None:
                status.mark_failed(segment_type)
            self._logger.error(
                f"Generation of {segment_type.value} failed after "
                f"{self.max_retries + 1} attempt(s): {e.message}"
            )
            raise GenerationError(e.message, segment_type=segment_type) from e
        except LandingPageError as e:
            if status is not None:
                status.mark_failed(segment_type)
            self._logger.error(f"Generated {segment_type.value} segment rejected: {e}")
            raise

        self._cache.put(segment_type, segment)
        if status is not None:
            status.set(segment_type, GenerationStatus.GENERATED)
        self._logger.info(
            f"Generated {segment_type.value} segment v{segment.version} "
            f"({len(segment.sections)} sections)"
        )
        return segment
