"""
Landing Page Orchestrator.

Ties the pipeline stages together for one generation request:
1. Source data - fetch the profile that seeds generation (failure aborts)
2. Generate - requested segments concurrently, cached copies for the rest
3. Improve - rewrite section content per segment (fail-open)
4. Assess - score and gate sections (fail-open)
5. Assemble - required sections enforced, canonical order

A segment whose generation fails falls back to its cached copy when one
exists. Without one, the failure is fatal if the segment holds a required
section; otherwise the document is assembled without it. generate_document
never raises pipeline errors: it returns a GenerationResult holding either a
Document or the errors that prevented one.

Usage:
    orchestrator = PipelineOrchestrator(StaticSourceProvider({"name": "Jane Doe"}))
    result = await orchestrator.generate_document()
    if result.success:
        print(result.document.to_markdown())
"""

import asyncio
import inspect
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from src.common.config import Config
from src.common.error_handling import ErrorCollector
from src.common.logger import PipelineLogger, get_logger, setup_logging
from src.common.structured_logger import StageContext, StructuredLogger
from src.common.utils import new_run_id, run_async
from src.landing_page.assembler import DocumentAssembler
from src.landing_page.assessment import QualityAssessmentStage, enforce_required_sections
from src.landing_page.cache import SegmentCache
from src.landing_page.errors import (
    GenerationError,
    LandingPageError,
    SourceDataError,
)
from src.landing_page.improvement import ContentImprovementStage
from src.landing_page.llm_client import TextGenerationClient
from src.landing_page.prompts import build_segment_generation_user_prompt
from src.landing_page.schemas import CANONICAL_SECTION_ORDER, REQUIRED_SECTIONS, SEGMENT_SECTIONS
from src.landing_page.segment_generator import SegmentGenerator
from src.landing_page.types import (
    Document,
    GenerationOptions,
    GenerationResult,
    GenerationStatus,
    GenerationStatusTracker,
    QualityAssessment,
    QualityThresholds,
    Segment,
    SegmentType,
    SourceRecord,
)
from src.landing_page.validator import SchemaValidator

# Initialize logging
setup_logging(level=Config.LOG_LEVEL, format=Config.LOG_FORMAT)

SectionKey = Tuple[SegmentType, str]


class StaticSourceProvider:
    """Source provider returning a fixed record."""

    def __init__(self, record: Union[SourceRecord, Mapping[str, Any]]):
        self._record = record

    def get_source_data(self) -> Union[SourceRecord, Mapping[str, Any]]:
        return self._record


class PipelineOrchestrator:
    """
    Coordinates generation, review and assembly of the landing page.

    Requests on one orchestrator are serialized; it is the single writer of
    its cache.

    Args:
        source_provider: Object with get_source_data() (sync or async)
        client: Text generation client used by every step not given its own
        generation_client / improvement_client / assessment_client: Per-step clients
        cache: Segment cache (default: SegmentCache(Config.SEGMENT_CACHE_DIR))
        validator: Schema validator shared by generation and improvement
        thresholds: Quality gate (default: QualityThresholds.from_config())
        segment_types: Configured segment set (default: all); required
            sections of segments outside it are not enforced
        max_concurrency: Concurrent segment generations
        max_retries: Retries per text generation call in every step
            (default: each step's config)
        backoff_seconds: Base of the retry backoff
        emit_events: Emit JSON-lines stage events (default: Config.STRUCTURED_EVENTS)
    """

    def __init__(
        self,
        source_provider: Any,
        client: Optional[TextGenerationClient] = None,
        generation_client: Optional[TextGenerationClient] = None,
        improvement_client: Optional[TextGenerationClient] = None,
        assessment_client: Optional[TextGenerationClient] = None,
        cache: Optional[SegmentCache] = None,
        validator: Optional[SchemaValidator] = None,
        thresholds: Optional[QualityThresholds] = None,
        segment_types: Optional[Iterable[SegmentType]] = None,
        max_concurrency: Optional[int] = None,
        max_retries: Optional[int] = None,
        backoff_seconds: float = 1.0,
        emit_events: Optional[bool] = None,
    ):
        self._logger = get_logger(__name__)
        self._source_provider = source_provider

        if cache is None:
            cache = SegmentCache(Config.SEGMENT_CACHE_DIR or None)
        self._cache = cache
        self._validator = validator or SchemaValidator()

        if segment_types is None:
            self.segment_types: List[SegmentType] = list(SegmentType)
        else:
            configured = {SegmentType.parse(t) for t in segment_types}
            self.segment_types = [t for t in SegmentType if t in configured]
        self.required_sections = frozenset(
            key for key in REQUIRED_SECTIONS if key[0] in self.segment_types
        )

        self._generator = SegmentGenerator(
            generation_client or client or TextGenerationClient(step_name="segment_generation"),
            self._cache,
            validator=self._validator,
            max_retries=max_retries,
            backoff_seconds=backoff_seconds,
        )
        self._improvement = ContentImprovementStage(
            improvement_client or client or TextGenerationClient(step_name="content_improvement"),
            cache=self._cache,
            validator=self._validator,
            max_retries=max_retries,
            backoff_seconds=backoff_seconds,
        )
        self._assessment = QualityAssessmentStage(
            assessment_client or client or TextGenerationClient(step_name="quality_assessment"),
            cache=self._cache,
            thresholds=thresholds,
            required_sections=self.required_sections,
            max_retries=max_retries,
            backoff_seconds=backoff_seconds,
        )
        self._assembler = DocumentAssembler(required_sections=self.required_sections)

        self.max_concurrency = max_concurrency or Config.GENERATION_MAX_CONCURRENCY
        self.emit_events = Config.STRUCTURED_EVENTS if emit_events is None else emit_events

        self._lock = asyncio.Lock()
        self._status = GenerationStatusTracker(self.segment_types)
        self._last_result: Optional[GenerationResult] = None

        self._logger.info(
            f"PipelineOrchestrator initialized: segments={[t.value for t in self.segment_types]}, "
            f"max_concurrency={self.max_concurrency}"
        )

    @property
    def cache(self) -> SegmentCache:
        return self._cache

    @property
    def last_result(self) -> Optional[GenerationResult]:
        return self._last_result

    # ===== Public API =====

    async def generate_document(
        self,
        options: Optional[GenerationOptions] = None,
    ) -> GenerationResult:
        """
        Run the full pipeline.

        Args:
            options: Request options (default: generate missing segments,
                run both review stages, no deadline)

        Returns:
            GenerationResult with the Document, or with the errors that
            prevented one. Cancellation propagates.
        """
        options = options or GenerationOptions()

        async with self._lock:
            run_id = new_run_id()
            logger = self._logger.bind(run_id=run_id)
            events = StructuredLogger(run_id, enabled=self.emit_events)
            errors = ErrorCollector()
            status = GenerationStatusTracker(self.segment_types)
            self._status = status
            start_time = time.time()

            logger.info("=" * 60)
            logger.info("LANDING PAGE GENERATION: Starting pipeline")
            logger.info("=" * 60)
            events.pipeline_start(metadata={
                "segments_to_generate": [t.value for t in self._requested(options)],
                "regenerate_all": options.regenerate_all,
                "skip_improvement": options.skip_improvement,
                "skip_assessment": options.skip_assessment,
            })

            document: Optional[Document] = None
            try:
                run = self._run(options, status, errors, events, logger)
                if options.deadline_seconds is not None:
                    document = await asyncio.wait_for(run, timeout=options.deadline_seconds)
                else:
                    document = await run
            except asyncio.TimeoutError as e:
                logger.error(f"Deadline of {options.deadline_seconds}s exceeded")
                errors.add_error(
                    stage="pipeline",
                    message=f"Deadline of {options.deadline_seconds}s exceeded",
                    severity="critical",
                    recoverable=False,
                    exception=e,
                )
            except LandingPageError as e:
                logger.error(f"Pipeline failed at {e.stage or 'pipeline'}: {e}")
                # A failed required segment is already recorded
                if not errors.has_critical_errors():
                    errors.add_error(
                        stage=e.stage or "pipeline",
                        message=str(e),
                        severity="critical",
                        segment_type=e.segment_type,
                        recoverable=False,
                        exception=e,
                    )

            duration_ms = int((time.time() - start_time) * 1000)
            result = GenerationResult(
                run_id=run_id,
                document=document,
                errors=list(errors.errors),
                segment_status=status.snapshot(),
                duration_ms=duration_ms,
            )
            self._last_result = result

            outcome = "error" if document is None else ("partial" if errors.errors else "success")
            events.pipeline_complete(
                status=outcome,
                duration_ms=duration_ms,
                metadata={
                    "sections": list(document.section_order) if document else [],
                    "failed_segments": [t.value for t in status.failed()],
                    "errors": errors.summary(),
                },
            )
            logger.info("=" * 60)
            logger.info(f"LANDING PAGE GENERATION: {outcome} in {duration_ms}ms")
            if document is not None:
                logger.info(f"  Sections: {', '.join(document.section_order)}")
            for message in errors.get_error_messages():
                logger.info(f"  Error: {message}")
            logger.info("=" * 60)
            return result

    def generate_document_sync(self, options: Optional[GenerationOptions] = None) -> GenerationResult:
        """Synchronous wrapper for generate_document."""
        return run_async(self.generate_document(options))

    async def regenerate_sections(
        self,
        sections: Iterable[Union[SectionKey, Tuple[str, str]]],
        options: Optional[GenerationOptions] = None,
    ) -> GenerationResult:
        """
        Force regeneration of the segments owning the given sections.

        Generation is per segment, so every section of an affected segment is
        regenerated. Other segments are reused from the cache, and improvement,
        assessment and assembly run again.

        Raises:
            ValueError: Unknown segment type or section name
        """
        segment_types = []
        for segment_type, section_name in sections:
            segment_type = SegmentType.parse(segment_type)
            if section_name not in SEGMENT_SECTIONS[segment_type]:
                raise ValueError(f"{segment_type.value} has no section {section_name!r}")
            if segment_type not in segment_types:
                segment_types.append(segment_type)

        base = options or GenerationOptions()
        return await self.generate_document(GenerationOptions(
            segments_to_generate=segment_types,
            regenerate_all=True,
            skip_improvement=base.skip_improvement,
            skip_assessment=base.skip_assessment,
            deadline_seconds=base.deadline_seconds,
        ))

    async def regenerate_failed_segments(
        self,
        options: Optional[GenerationOptions] = None,
    ) -> GenerationResult:
        """Regenerate the segments that failed in the previous request."""
        failed = self._status.failed()
        if failed:
            self._logger.info(f"Regenerating failed segments: {', '.join(t.value for t in failed)}")
        else:
            self._logger.info("No failed segments to regenerate; reassembling from cache")

        base = options or GenerationOptions()
        return await self.generate_document(GenerationOptions(
            segments_to_generate=failed,
            regenerate_all=True,
            skip_improvement=base.skip_improvement,
            skip_assessment=base.skip_assessment,
            deadline_seconds=base.deadline_seconds,
        ))

    def get_quality_metrics(self) -> Dict[SectionKey, QualityAssessment]:
        """Quality assessments of every assessed section, read from the cache."""
        metrics: Dict[SectionKey, QualityAssessment] = {}
        cached = self._cache.get_all()
        for segment_type in self.segment_types:
            segment = cached.get(segment_type)
            if segment is None:
                continue
            for section_name, section in segment.sections.items():
                if section.quality is not None:
                    metrics[(segment_type, section_name)] = section.quality
        return metrics

    def get_generation_status(self) -> Dict[SegmentType, GenerationStatus]:
        """Status of each configured segment in the current or last request."""
        return {t: self._status.get(t) for t in self.segment_types}

    # ===== Pipeline =====

    def _requested(self, options: GenerationOptions) -> List[SegmentType]:
        return [t for t in options.requested_segments() if t in self.segment_types]

    async def _fetch_source(self) -> SourceRecord:
        try:
            data = self._source_provider.get_source_data()
            if inspect.isawaitable(data):
                data = await data
        except Exception as e:
            raise SourceDataError(f"Failed to fetch source data: {e}") from e

        if isinstance(data, SourceRecord):
            return data
        if isinstance(data, Mapping):
            try:
                return SourceRecord.from_mapping(data)
            except ValueError as e:
                raise SourceDataError(f"Invalid source data: {e}") from e
        raise SourceDataError(f"Source provider returned {type(data).__name__}")

    def _holds_required_section(self, segment_type: SegmentType) -> bool:
        return any(t == segment_type for t, _ in self.required_sections)

    async def _generate_segments(
        self,
        requested: Sequence[SegmentType],
        source: SourceRecord,
        force_regenerate: bool,
        status: GenerationStatusTracker,
        errors: ErrorCollector,
        logger: PipelineLogger,
    ) -> Dict[SegmentType, Segment]:
        """Generate requested segments concurrently and handle failures per segment."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def generate_with_limit(segment_type: SegmentType) -> Segment:
            async with semaphore:
                return await self._generator.generate(
                    segment_type,
                    build_segment_generation_user_prompt(segment_type, source),
                    force_regenerate=force_regenerate,
                    status=status,
                )

        results = await asyncio.gather(
            *(generate_with_limit(t) for t in requested),
            return_exceptions=True,
        )

        segments: Dict[SegmentType, Segment] = {}
        fatal: Optional[LandingPageError] = None
        for segment_type, outcome in zip(requested, results):
            if isinstance(outcome, Segment):
                segments[segment_type] = outcome
                continue
            if not isinstance(outcome, Exception):
                raise outcome

            if not isinstance(outcome, LandingPageError):
                logger.error(
                    f"Unexpected error generating {segment_type.value}: "
                    f"{type(outcome).__name__}: {outcome}"
                )
                status.mark_failed(segment_type)
                outcome = GenerationError(str(outcome), segment_type=segment_type)

            cached = self._cache.get(segment_type)
            if cached is not None:
                logger.warning(
                    f"[generate] {segment_type.value} failed, using cached v{cached.version}: {outcome}"
                )
                errors.add_error(
                    stage=outcome.stage or "generate",
                    message=f"{segment_type.value}: {outcome.message} (using cached v{cached.version})",
                    severity="high",
                    segment_type=segment_type.value,
                    exception=outcome,
                )
                segments[segment_type] = cached
            elif self._holds_required_section(segment_type):
                logger.error(f"[generate] required segment {segment_type.value} failed: {outcome}")
                errors.add_error(
                    stage=outcome.stage or "generate",
                    message=f"Required segment {segment_type.value} could not be generated: {outcome.message}",
                    severity="critical",
                    segment_type=segment_type.value,
                    recoverable=False,
                    exception=outcome,
                )
                fatal = fatal or outcome
            else:
                logger.warning(
                    f"[generate] optional segment {segment_type.value} failed, omitting it: {outcome}"
                )
                errors.add_error(
                    stage=outcome.stage or "generate",
                    message=f"{segment_type.value}: {outcome.message}",
                    severity="medium",
                    segment_type=segment_type.value,
                    exception=outcome,
                )

        if fatal is not None:
            raise GenerationError(
                f"Required segment {fatal.segment_type} could not be generated: {fatal.message}",
                segment_type=fatal.segment_type,
                stage=fatal.stage or "generate",
            )
        return segments

    async def _run(
        self,
        options: GenerationOptions,
        status: GenerationStatusTracker,
        errors: ErrorCollector,
        events: StructuredLogger,
        logger: PipelineLogger,
    ) -> Document:
        logger.info("Phase 1: Fetching source data...")
        with StageContext(events, "source_data"):
            source = await self._fetch_source()
        logger.info(f"  Source: {source.name}")

        requested = self._requested(options)
        logger.info(
            f"Phase 2: Generating segments: {', '.join(t.value for t in requested) or 'none'}"
            f"{' (forced)' if options.regenerate_all else ''}"
        )
        with StageContext(events, "generate") as ctx:
            generated = await self._generate_segments(
                requested, source, options.regenerate_all, status, errors, logger
            )
            ctx.add_metadata("generated", [t.value for t in generated])

        # Segments not requested are reused as cached
        segments: Dict[SegmentType, Segment] = {}
        for segment_type in self.segment_types:
            if segment_type in generated:
                segments[segment_type] = generated[segment_type]
                continue
            if segment_type in requested:
                continue
            cached = self._cache.get(segment_type)
            if cached is not None:
                segments[segment_type] = cached
                status.advance(segment_type, GenerationStatus.GENERATED)
        logger.info(f"  Segments available: {', '.join(t.value for t in segments)}")

        if options.skip_improvement:
            events.stage_skip("improve", "skip_improvement requested")
            logger.info("Phase 3: Improvement skipped")
        else:
            logger.info("Phase 3: Improving content...")
            with StageContext(events, "improve"):
                segments = await self._improvement.improve(segments, status=status, source=source)

        if options.skip_assessment:
            events.stage_skip("assess", "skip_assessment requested")
            logger.info("Phase 4: Assessment skipped")
        else:
            logger.info("Phase 4: Assessing quality...")
            with StageContext(events, "assess"):
                segments = await self._assessment.assess(segments, status=status, source=source)

        logger.info("Phase 5: Assembling document...")
        with StageContext(events, "assemble") as ctx:
            segments = enforce_required_sections(segments, self.required_sections)
            document = self._assembler.assemble(segments, CANONICAL_SECTION_ORDER)
            ctx.add_metadata("section_order", list(document.section_order))
        return document
