"""
Unit tests for src/landing_page/segment_generator.py

Tests single-segment generation:
- Cache hits skip the client
- Fresh sections start enabled
- Version increments on regeneration
- Bounded retries with the retry notice
- Failures never write the cache
- Status tracking
"""

import json

import pytest

from src.landing_page.cache import SegmentCache
from src.landing_page.errors import GenerationError, ValidationError
from src.landing_page.llm_client import schema_to_json
from src.landing_page.prompts import RETRY_NOTICE
from src.landing_page.segment_generator import SegmentGenerator
from src.landing_page.types import GenerationStatus, GenerationStatusTracker, SegmentType


# ===== FIXTURES =====

@pytest.fixture
def cache():
    return SegmentCache()


@pytest.fixture
def status():
    return GenerationStatusTracker()


def make_generator(client, cache, max_retries=2):
    return SegmentGenerator(client, cache, max_retries=max_retries, backoff_seconds=0)


# ===== TESTS: Generation and cache =====

class TestGenerationAndCache:
    """Tests for the cache check and cache write."""

    @pytest.mark.asyncio
    async def test_generates_and_caches(self, scripted_client, payload_factory, cache, status):
        """A cache miss calls the client, validates and caches."""
        client = scripted_client({"IdentitySegment": payload_factory(SegmentType.IDENTITY)})
        generator = make_generator(client, cache)

        segment = await generator.generate(SegmentType.IDENTITY, "prompt", status=status)

        assert segment.version == 1
        assert cache.get(SegmentType.IDENTITY) is segment
        assert status.get(SegmentType.IDENTITY) == GenerationStatus.GENERATED
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_cache_hit_skips_client(self, scripted_client, payload_factory, cache, status):
        """A cached segment is returned without calling the client."""
        client = scripted_client({"IdentitySegment": payload_factory(SegmentType.IDENTITY)})
        generator = make_generator(client, cache)
        first = await generator.generate(SegmentType.IDENTITY, "prompt")

        second = await generator.generate(SegmentType.IDENTITY, "prompt", status=status)

        assert second is first
        assert len(client.calls) == 1
        assert status.get(SegmentType.IDENTITY) == GenerationStatus.GENERATED

    @pytest.mark.asyncio
    async def test_cache_hit_does_not_regress_status(self, scripted_client, payload_factory, cache, status):
        """A status already past GENERATED is kept on a cache hit."""
        client = scripted_client({"IdentitySegment": payload_factory(SegmentType.IDENTITY)})
        generator = make_generator(client, cache)
        await generator.generate(SegmentType.IDENTITY, "prompt")
        status.set(SegmentType.IDENTITY, GenerationStatus.ASSESSED)

        await generator.generate(SegmentType.IDENTITY, "prompt", status=status)

        assert status.get(SegmentType.IDENTITY) == GenerationStatus.ASSESSED

    @pytest.mark.asyncio
    async def test_force_regenerate_increments_version(self, scripted_client, payload_factory, cache):
        """Forced regeneration bypasses the cache and bumps the version."""
        client = scripted_client({"IdentitySegment": payload_factory(SegmentType.IDENTITY)})
        generator = make_generator(client, cache)
        await generator.generate(SegmentType.IDENTITY, "prompt")

        regenerated = await generator.generate(SegmentType.IDENTITY, "prompt", force_regenerate=True)

        assert regenerated.version == 2
        assert cache.get(SegmentType.IDENTITY).version == 2
        assert len(client.calls) == 2

    @pytest.mark.asyncio
    async def test_generated_sections_start_enabled(self, scripted_client, payload_factory, cache):
        """A disabled flag in the generated payload is overridden."""
        payload = payload_factory(SegmentType.SERVICE_OFFERING, pricing={"tiers": [], "enabled": False})
        client = scripted_client({"ServiceOfferingSegment": payload})
        generator = make_generator(client, cache)

        segment = await generator.generate(SegmentType.SERVICE_OFFERING, "prompt")

        assert segment.sections["pricing"].enabled is True
        assert cache.get(SegmentType.SERVICE_OFFERING).sections["pricing"].enabled is True

    def test_enabled_flag_not_in_generation_schema(self, scripted_client, cache):
        """The schema sent to the model does not offer a visibility flag."""
        generator = make_generator(scripted_client(), cache)
        schema_json = json.dumps(
            schema_to_json(generator.validator.schema_for(SegmentType.SERVICE_OFFERING))
        )
        assert '"enabled"' not in schema_json

    @pytest.mark.asyncio
    async def test_system_prompt_is_sent(self, scripted_client, payload_factory, cache):
        """Every call carries the generation system prompt."""
        client = scripted_client({"ConversionSegment": payload_factory(SegmentType.CONVERSION)})
        generator = make_generator(client, cache)

        await generator.generate(SegmentType.CONVERSION, "prompt")

        assert client.calls[0]["system"] == generator.system_prompt


# ===== TESTS: Retries =====

class TestRetries:
    """Tests for the bounded retry policy."""

    @pytest.mark.asyncio
    async def test_retries_generation_errors(self, scripted_client, payload_factory, cache):
        """GenerationError is retried and the retry notice is appended."""
        client = scripted_client({
            "IdentitySegment": [
                GenerationError("timeout"),
                payload_factory(SegmentType.IDENTITY),
            ],
        })
        generator = make_generator(client, cache)

        segment = await generator.generate(SegmentType.IDENTITY, "base prompt")

        assert segment.version == 1
        assert len(client.calls) == 2
        assert client.calls[0]["prompt"] == "base prompt"
        assert client.calls[1]["prompt"].startswith("base prompt")
        assert RETRY_NOTICE in client.calls[1]["prompt"]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, scripted_client, cache, status):
        """After max_retries + 1 attempts the error surfaces tagged with the segment."""
        client = scripted_client({"CredibilitySegment": GenerationError("service unavailable")})
        generator = make_generator(client, cache, max_retries=2)

        with pytest.raises(GenerationError) as exc_info:
            await generator.generate(SegmentType.CREDIBILITY, "prompt", status=status)

        assert len(client.calls) == 3
        assert exc_info.value.segment_type == "credibility"
        assert cache.get(SegmentType.CREDIBILITY) is None
        assert status.get(SegmentType.CREDIBILITY) == GenerationStatus.FAILED

    @pytest.mark.asyncio
    async def test_zero_retries(self, scripted_client, cache):
        """max_retries=0 makes a single attempt."""
        client = scripted_client({"CredibilitySegment": GenerationError("down")})
        generator = make_generator(client, cache, max_retries=0)

        with pytest.raises(GenerationError):
            await generator.generate(SegmentType.CREDIBILITY, "prompt")

        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_validation_error_is_not_retried(self, scripted_client, payload_factory, cache, status):
        """Schema mismatches fail immediately."""
        bad = payload_factory(SegmentType.CONVERSION)
        del bad["faq"]
        client = scripted_client({"ConversionSegment": bad})
        generator = make_generator(client, cache)

        with pytest.raises(ValidationError) as exc_info:
            await generator.generate(SegmentType.CONVERSION, "prompt", status=status)

        assert len(client.calls) == 1
        assert exc_info.value.segment_type == "conversion"
        assert status.get(SegmentType.CONVERSION) == GenerationStatus.FAILED

    @pytest.mark.asyncio
    async def test_failed_regeneration_keeps_cached_copy(self, scripted_client, payload_factory, cache):
        """A failed forced regeneration leaves the previous segment in the cache."""
        client = scripted_client({
            "IdentitySegment": [payload_factory(SegmentType.IDENTITY), GenerationError("down")],
        })
        generator = make_generator(client, cache, max_retries=1)
        original = await generator.generate(SegmentType.IDENTITY, "prompt")

        with pytest.raises(GenerationError):
            await generator.generate(SegmentType.IDENTITY, "prompt", force_regenerate=True)

        assert cache.get(SegmentType.IDENTITY) is original

    def test_negative_retries_rejected(self, scripted_client, cache):
        """max_retries must not be negative."""
        with pytest.raises(ValueError):
            SegmentGenerator(scripted_client(), cache, max_retries=-1)
