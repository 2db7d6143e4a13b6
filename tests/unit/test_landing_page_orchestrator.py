"""
Unit tests for src/landing_page/orchestrator.py

Tests the full pipeline with scripted generation clients:
- Idempotent reassembly from cache
- Quality gating end to end, scoped to the configured segments
- Failure handling: cached fallback, optional omission, required abort
- Targeted regeneration, status and quality metrics
- Source data failures, deadlines and the sync wrapper
"""

import asyncio
import json

import pytest

from src.landing_page.cache import SegmentCache
from src.landing_page.errors import GenerationError
from src.landing_page.orchestrator import PipelineOrchestrator, StaticSourceProvider
from src.landing_page.schemas import CANONICAL_SECTION_ORDER
from src.landing_page.types import (
    GenerationOptions,
    GenerationStatus,
    QualityThresholds,
    SegmentType,
)

ID = SegmentType.IDENTITY
SVC = SegmentType.SERVICE_OFFERING
CRED = SegmentType.CREDIBILITY
CONV = SegmentType.CONVERSION

NO_REVIEW = GenerationOptions(skip_improvement=True, skip_assessment=True)


# ===== FIXTURES =====

@pytest.fixture
def make_orchestrator(source_record):
    """Factory building an orchestrator with separate scripted clients per step."""

    def factory(generation, improvement=None, assessment=None, source=None, source_provider=None, **kwargs):
        kwargs.setdefault("cache", SegmentCache())
        kwargs.setdefault("max_retries", 0)
        kwargs.setdefault("backoff_seconds", 0)
        kwargs.setdefault("thresholds", QualityThresholds())
        kwargs.setdefault("emit_events", False)
        if source_provider is None:
            source_provider = StaticSourceProvider(source if source is not None else source_record)
        return PipelineOrchestrator(
            source_provider,
            generation_client=generation,
            improvement_client=improvement or generation,
            assessment_client=assessment or generation,
            **kwargs,
        )

    return factory


class SlowClient:
    """Client whose calls never finish within a short deadline."""

    def __init__(self):
        self.calls = 0

    async def complete(self, prompt, target_schema, system=None):
        self.calls += 1
        await asyncio.sleep(5)
        return {}


class FailingSourceProvider:
    def get_source_data(self):
        raise ConnectionError("profile store unreachable")


class AsyncSourceProvider:
    async def get_source_data(self):
        return {"name": "Jane Doe", "tagline": "Consultant", "tone": "direct"}


# ===== TESTS: Full pipeline =====

class TestFullPipeline:
    """Tests for a complete generation request."""

    @pytest.mark.asyncio
    async def test_generates_complete_document(
        self, generation_client_factory, scripted_client, assessment_factory, make_orchestrator
    ):
        """All segments pass: every section appears in canonical order."""
        generation = generation_client_factory()
        assessment = scripted_client({"AssessmentResponse": assessment_factory()})
        orchestrator = make_orchestrator(generation, assessment=assessment)

        result = await orchestrator.generate_document()

        assert result.success
        assert result.errors == []
        assert result.document.section_order == CANONICAL_SECTION_ORDER
        assert result.document.title == "Jane Doe | Strategy Consultant"
        assert result.segment_status == {t.value: "assessed" for t in SegmentType}
        assert result.run_id

    @pytest.mark.asyncio
    async def test_low_scoring_section_is_dropped(
        self, generation_client_factory, scripted_client, assessment_factory, make_orchestrator
    ):
        """A 6/6 expertise section is not in the document."""
        generation = generation_client_factory()
        assessment = scripted_client({
            "AssessmentResponse": assessment_factory(scores={(CRED, "expertise"): (6, 6)}),
        })
        orchestrator = make_orchestrator(generation, assessment=assessment)

        result = await orchestrator.generate_document()

        assert "expertise" not in result.document.section_order
        assert result.document.section_order == tuple(
            name for name in CANONICAL_SECTION_ORDER if name != "expertise"
        )

    @pytest.mark.asyncio
    async def test_low_scoring_required_section_is_kept(
        self, generation_client_factory, scripted_client, assessment_factory, make_orchestrator
    ):
        """hero scored 1/1 still appears."""
        generation = generation_client_factory()
        assessment = scripted_client({
            "AssessmentResponse": assessment_factory(scores={(ID, "hero"): (1, 1)}),
        })
        orchestrator = make_orchestrator(generation, assessment=assessment)

        result = await orchestrator.generate_document()

        assert result.document.section_order[0] == "hero"
        assert orchestrator.get_quality_metrics()[(ID, "hero")].combined_score == 1

    @pytest.mark.asyncio
    async def test_configured_segment_subset(
        self, generation_client_factory, scripted_client, assessment_factory, make_orchestrator
    ):
        """With identity and credibility configured, 4/5 case studies are dropped."""
        generation = generation_client_factory()
        assessment = scripted_client({
            "AssessmentResponse": assessment_factory(
                segment_types=[ID, CRED],
                scores={(CRED, "case_studies"): (4, 5)},
            ),
        })
        orchestrator = make_orchestrator(
            generation, assessment=assessment, segment_types=[CRED, ID]
        )

        result = await orchestrator.generate_document(GenerationOptions(skip_improvement=True))

        assert result.success
        assert result.document.section_order == ("hero", "problem_statement", "expertise", "about")
        assert result.document.name == "Jane Doe"
        assert result.document.tagline == "Consultant"
        assert generation.calls_for("ServiceOfferingSegment") == []
        assert set(result.segment_status) == {"identity", "credibility"}

    @pytest.mark.asyncio
    async def test_improvement_runs_between_generation_and_assessment(
        self, generation_client_factory, scripted_client, assessment_factory, payload_factory, make_orchestrator
    ):
        """Improved content reaches the document."""
        improved = payload_factory(CONV)
        improved["cta"]["subtitle"] = "Fifteen minutes, no slides."
        generation = generation_client_factory()
        improvement = generation_client_factory(ConversionSegment=improved)
        assessment = scripted_client({"AssessmentResponse": assessment_factory()})
        orchestrator = make_orchestrator(generation, improvement=improvement, assessment=assessment)

        result = await orchestrator.generate_document()

        assert result.document.sections["cta"]["subtitle"] == "Fifteen minutes, no slides."
        assert "Fifteen minutes, no slides." in assessment.calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_review_failures_are_fail_open(self, generation_client_factory, make_orchestrator):
        """Improvement and assessment failures still produce a document."""
        generation = generation_client_factory()
        broken = generation_client_factory(
            IdentitySegment=GenerationError("down"),
            ServiceOfferingSegment=GenerationError("down"),
            CredibilitySegment=GenerationError("down"),
            ConversionSegment=GenerationError("down"),
            AssessmentResponse=GenerationError("down"),
        )
        orchestrator = make_orchestrator(generation, improvement=broken, assessment=broken)

        result = await orchestrator.generate_document()

        assert result.success
        assert result.document.section_order == CANONICAL_SECTION_ORDER
        assert result.segment_status == {t.value: "generated" for t in SegmentType}

    @pytest.mark.asyncio
    async def test_generated_disabled_flag_is_ignored(
        self, generation_client_factory, scripted_client, payload_factory, make_orchestrator
    ):
        """A disabled flag in generated output does not hide a section when assessment fails."""
        generation = generation_client_factory(
            ServiceOfferingSegment=payload_factory(SVC, pricing={"tiers": [], "enabled": False}),
        )
        assessment = scripted_client({"AssessmentResponse": GenerationError("network down")})
        orchestrator = make_orchestrator(generation, assessment=assessment)

        result = await orchestrator.generate_document(GenerationOptions(skip_improvement=True))

        assert result.success
        assert "pricing" in result.document.section_order
        assert result.document.section_order == CANONICAL_SECTION_ORDER

    @pytest.mark.asyncio
    async def test_assessment_retried_after_transient_error(
        self, generation_client_factory, scripted_client, assessment_factory, make_orchestrator
    ):
        """A transient assessment error is retried and gating still applies."""
        generation = generation_client_factory()
        assessment = scripted_client({
            "AssessmentResponse": [
                GenerationError("transient"),
                assessment_factory(scores={(CONV, "faq"): (3, 3)}),
            ],
        })
        orchestrator = make_orchestrator(generation, assessment=assessment, max_retries=1)

        result = await orchestrator.generate_document(GenerationOptions(skip_improvement=True))

        assert len(assessment.calls) == 2
        assert "faq" not in result.document.section_order

    @pytest.mark.asyncio
    async def test_async_source_provider(self, generation_client_factory, make_orchestrator):
        """Awaitable source providers are supported and feed the prompts."""
        generation = generation_client_factory()
        orchestrator = make_orchestrator(generation, source_provider=AsyncSourceProvider())

        result = await orchestrator.generate_document(NO_REVIEW)

        assert result.success
        assert "direct" in generation.calls_for("IdentitySegment")[0]["prompt"]


# ===== TESTS: Idempotence =====

class TestIdempotence:
    """Tests for reassembly from cached segments."""

    @pytest.mark.asyncio
    async def test_second_run_reuses_cache(
        self, generation_client_factory, scripted_client, assessment_factory, make_orchestrator
    ):
        """A rerun with both review stages skipped yields an equal document without new calls."""
        generation = generation_client_factory()
        assessment = scripted_client({
            "AssessmentResponse": assessment_factory(scores={(CONV, "faq"): (3, 3)}),
        })
        orchestrator = make_orchestrator(generation, assessment=assessment)

        first = await orchestrator.generate_document()
        calls_after_first = len(generation.calls)
        second = await orchestrator.generate_document(NO_REVIEW)

        assert second.document == first.document
        assert len(generation.calls) == calls_after_first
        assert "faq" not in second.document.section_order

    @pytest.mark.asyncio
    async def test_persistent_cache_survives_new_orchestrator(
        self, tmp_path, generation_client_factory, make_orchestrator
    ):
        """A new orchestrator on the same cache directory reassembles without generating."""
        first = await make_orchestrator(
            generation_client_factory(), cache=SegmentCache(tmp_path)
        ).generate_document(NO_REVIEW)

        generation = generation_client_factory()
        second = await make_orchestrator(
            generation, cache=SegmentCache(tmp_path)
        ).generate_document(NO_REVIEW)

        assert second.document == first.document
        assert generation.calls == []


# ===== TESTS: Generation failures =====

class TestGenerationFailures:
    """Tests for per-segment failure handling."""

    @pytest.mark.asyncio
    async def test_required_segment_failure_returns_error(self, generation_client_factory, make_orchestrator):
        """A required segment without a cached copy aborts the request."""
        generation = generation_client_factory(IdentitySegment=GenerationError("timed out"))
        orchestrator = make_orchestrator(generation)

        result = await orchestrator.generate_document(NO_REVIEW)

        assert result.success is False
        assert result.document is None
        critical = [e for e in result.errors if e.severity == "critical"]
        assert len(critical) == 1
        assert critical[0].segment_type == "identity"
        assert critical[0].recoverable is False
        assert orchestrator.get_generation_status()[ID] == GenerationStatus.FAILED

    @pytest.mark.asyncio
    async def test_optional_segment_failure_degrades_document(self, generation_client_factory, make_orchestrator):
        """An optional segment without a cached copy is omitted."""
        generation = generation_client_factory(CredibilitySegment=GenerationError("rate limited"))
        orchestrator = make_orchestrator(generation)

        result = await orchestrator.generate_document(NO_REVIEW)

        assert result.success
        assert result.degraded
        assert result.document.section_order == (
            "hero", "problem_statement", "services", "process", "pricing", "faq", "cta", "footer",
        )
        assert result.errors[0].segment_type == "credibility"
        assert result.errors[0].severity == "medium"
        assert result.segment_status["credibility"] == "failed"

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_cached_copy(
        self, generation_client_factory, payload_factory, make_orchestrator
    ):
        """A failed regeneration uses the cached segment."""
        generation = generation_client_factory(
            IdentitySegment=[payload_factory(ID), GenerationError("service unavailable")],
        )
        orchestrator = make_orchestrator(generation)
        first = await orchestrator.generate_document(NO_REVIEW)

        second = await orchestrator.generate_document(
            GenerationOptions(regenerate_all=True, skip_improvement=True, skip_assessment=True)
        )

        assert second.success
        assert second.document == first.document
        assert [e.severity for e in second.errors] == ["high"]
        assert orchestrator.cache.get(ID).version == 1
        assert orchestrator.cache.get(SVC).version == 2

    @pytest.mark.asyncio
    async def test_validation_failure_is_handled_per_segment(
        self, generation_client_factory, payload_factory, make_orchestrator
    ):
        """A schema mismatch in an optional segment omits only that segment."""
        bad = payload_factory(CONV)
        del bad["footer"]
        generation = generation_client_factory(ConversionSegment=bad)
        orchestrator = make_orchestrator(generation)

        result = await orchestrator.generate_document(NO_REVIEW)

        assert result.success
        assert "faq" not in result.document.section_order
        assert result.errors[0].stage == "validate"

    @pytest.mark.asyncio
    async def test_retries_before_failing(self, generation_client_factory, payload_factory, make_orchestrator):
        """Transient errors are retried within the segment budget."""
        generation = generation_client_factory(
            ServiceOfferingSegment=[GenerationError("blip"), payload_factory(SVC)],
        )
        orchestrator = make_orchestrator(generation, max_retries=2)

        result = await orchestrator.generate_document(NO_REVIEW)

        assert result.errors == []
        assert len(generation.calls_for("ServiceOfferingSegment")) == 2

    @pytest.mark.asyncio
    async def test_source_failure_aborts(self, generation_client_factory, make_orchestrator):
        """A failing source provider returns an error without generating."""
        generation = generation_client_factory()
        orchestrator = make_orchestrator(generation, source_provider=FailingSourceProvider())

        result = await orchestrator.generate_document()

        assert result.document is None
        assert result.errors[0].stage == "source_data"
        assert "profile store unreachable" in result.errors[0].message
        assert generation.calls == []

    @pytest.mark.asyncio
    async def test_source_without_name_aborts(self, generation_client_factory, make_orchestrator):
        """A source record without a name is rejected."""
        orchestrator = make_orchestrator(generation_client_factory(), source={"tagline": "x"})

        result = await orchestrator.generate_document()

        assert result.document is None
        assert result.errors[0].stage == "source_data"

    @pytest.mark.asyncio
    async def test_deadline_exceeded(self, make_orchestrator):
        """A request past its deadline fails with a critical error."""
        orchestrator = make_orchestrator(SlowClient())

        result = await orchestrator.generate_document(GenerationOptions(deadline_seconds=0.05))

        assert result.document is None
        assert result.errors[0].stage == "pipeline"
        assert "Deadline" in result.errors[0].message


# ===== TESTS: Regeneration =====

class TestRegeneration:
    """Tests for targeted regeneration."""

    @pytest.mark.asyncio
    async def test_regenerate_sections_keeps_order(
        self, generation_client_factory, scripted_client, assessment_factory, make_orchestrator
    ):
        """Regenerating one section leaves the document order unchanged."""
        generation = generation_client_factory()
        assessment = scripted_client({"AssessmentResponse": assessment_factory()})
        orchestrator = make_orchestrator(generation, assessment=assessment)
        first = await orchestrator.generate_document(GenerationOptions(skip_improvement=True))

        second = await orchestrator.regenerate_sections(
            [(CRED, "expertise")], GenerationOptions(skip_improvement=True)
        )

        assert second.document.section_order == first.document.section_order
        assert orchestrator.cache.get(CRED).version == 2
        assert orchestrator.cache.get(ID).version == 1
        assert len(generation.calls_for("CredibilitySegment")) == 2
        assert len(generation.calls_for("IdentitySegment")) == 1

    @pytest.mark.asyncio
    async def test_regenerate_sections_accepts_strings(self, generation_client_factory, make_orchestrator):
        """Segment types may be given by value."""
        generation = generation_client_factory()
        orchestrator = make_orchestrator(generation)
        await orchestrator.generate_document(NO_REVIEW)

        await orchestrator.regenerate_sections([("conversion", "faq"), ("conversion", "cta")], NO_REVIEW)

        assert len(generation.calls_for("ConversionSegment")) == 2

    @pytest.mark.asyncio
    async def test_regenerate_unknown_section_raises(self, generation_client_factory, make_orchestrator):
        """Sections must belong to the named segment."""
        orchestrator = make_orchestrator(generation_client_factory())

        with pytest.raises(ValueError):
            await orchestrator.regenerate_sections([(ID, "services")])

    @pytest.mark.asyncio
    async def test_regenerate_failed_segments(
        self, generation_client_factory, payload_factory, make_orchestrator
    ):
        """Only the segments that failed last time are regenerated."""
        generation = generation_client_factory(
            CredibilitySegment=[GenerationError("down"), payload_factory(CRED)],
        )
        orchestrator = make_orchestrator(generation)
        first = await orchestrator.generate_document(NO_REVIEW)
        assert orchestrator.get_generation_status()[CRED] == GenerationStatus.FAILED

        second = await orchestrator.regenerate_failed_segments(NO_REVIEW)

        assert "case_studies" not in first.document.section_order
        assert second.document.section_order == CANONICAL_SECTION_ORDER
        assert second.errors == []
        assert len(generation.calls_for("IdentitySegment")) == 1
        assert len(generation.calls_for("CredibilitySegment")) == 2


# ===== TESTS: Status and metrics =====

class TestStatusAndMetrics:
    """Tests for the read-only views."""

    def test_status_before_any_request(self, generation_client_factory, make_orchestrator):
        """Every configured segment starts NOT_GENERATED."""
        orchestrator = make_orchestrator(generation_client_factory(), segment_types=[ID, CONV])

        assert orchestrator.get_generation_status() == {
            ID: GenerationStatus.NOT_GENERATED,
            CONV: GenerationStatus.NOT_GENERATED,
        }

    @pytest.mark.asyncio
    async def test_status_without_review(self, generation_client_factory, make_orchestrator):
        """Skipped review stages leave segments GENERATED."""
        orchestrator = make_orchestrator(generation_client_factory())

        await orchestrator.generate_document(NO_REVIEW)

        assert set(orchestrator.get_generation_status().values()) == {GenerationStatus.GENERATED}
        assert orchestrator.get_quality_metrics() == {}

    @pytest.mark.asyncio
    async def test_quality_metrics_cover_assessed_sections(
        self, generation_client_factory, scripted_client, assessment_factory, make_orchestrator
    ):
        """Metrics hold one assessment per assessed section."""
        generation = generation_client_factory()
        assessment = scripted_client({
            "AssessmentResponse": assessment_factory(scores={(SVC, "pricing"): (5, 9)}),
        })
        orchestrator = make_orchestrator(generation, assessment=assessment)

        await orchestrator.generate_document(GenerationOptions(skip_improvement=True))
        metrics = orchestrator.get_quality_metrics()

        assert len(metrics) == len(CANONICAL_SECTION_ORDER)
        assert metrics[(SVC, "pricing")].quality_score == 5
        assert metrics[(SVC, "pricing")].combined_score == 7
        assert orchestrator.last_result.success


# ===== TESTS: Events and sync wrapper =====

class TestEventsAndSync:
    """Tests for structured events and the synchronous entry point."""

    @pytest.mark.asyncio
    async def test_emits_stage_events(self, capsys, generation_client_factory, make_orchestrator):
        """JSON-lines events cover the pipeline and its stages."""
        orchestrator = make_orchestrator(generation_client_factory(), emit_events=True)

        await orchestrator.generate_document(NO_REVIEW)

        events = [
            json.loads(line)
            for line in capsys.readouterr().out.splitlines()
            if line.startswith("{")
        ]
        names = [(e["event"], e.get("stage")) for e in events]
        assert names[0] == ("pipeline_start", None)
        assert ("stage_complete", "generate") in names
        assert ("stage_skip", "improve") in names
        assert ("stage_skip", "assess") in names
        assert names[-1] == ("pipeline_complete", None)
        assert events[-1]["status"] == "success"

    def test_generate_document_sync(self, generation_client_factory, make_orchestrator):
        """The sync wrapper runs the pipeline."""
        orchestrator = make_orchestrator(generation_client_factory())

        result = orchestrator.generate_document_sync(NO_REVIEW)

        assert result.success
        assert result.to_dict()["document"]["section_order"][0] == "hero"
