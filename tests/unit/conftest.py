"""
Global fixtures for all unit tests.

This conftest provides:
- Environment variable isolation (prevents credential leakage and real LLM calls)
- Segment payload builders matching the landing page schemas
- ScriptedClient, a fake text generation client that replays canned responses

These fixtures apply to ALL tests in tests/unit/.
"""

import copy
import os
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import pytest
from pydantic import BaseModel

# Set test environment BEFORE any imports to prevent Config from loading real values
os.environ["OPENAI_API_KEY"] = "sk-test-mock-key"
os.environ["USE_ANTHROPIC"] = "false"
os.environ["SEGMENT_CACHE_DIR"] = ""
os.environ["STRUCTURED_EVENTS"] = "false"
os.environ["DEBUG_MODE"] = "false"

from src.landing_page.schemas import SEGMENT_SECTIONS  # noqa: E402
from src.landing_page.types import SegmentType, SourceRecord  # noqa: E402


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """
    Isolate test environment from real credentials and configurations.

    This prevents:
    - Real API keys being used if tests accidentally call LLMs
    - Per-step overrides from the developer's shell leaking into tests
    - Segment files being written to a real cache directory
    """
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-mock-key")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test-mock-key")
    monkeypatch.setenv("USE_ANTHROPIC", "false")
    monkeypatch.delenv("SEGMENT_CACHE_DIR", raising=False)
    for key in list(os.environ):
        if key.startswith(("LLM_MODEL_", "LLM_TEMPERATURE_", "LLM_TIMEOUT_", "LLM_RETRIES_")):
            monkeypatch.delenv(key, raising=False)


# ===== PAYLOAD BUILDERS =====

IDENTITY_PAYLOAD: Dict[str, Any] = {
    "title": "Jane Doe | Strategy Consultant",
    "description": "Independent consultant helping founders turn strategy into execution.",
    "name": "Jane Doe",
    "tagline": "Consultant",
    "hero": {
        "headline": "Turn your strategy into shipped results",
        "subheading": "Hands-on consulting for founders who need execution, not slide decks.",
        "cta_text": "Book a call",
    },
    "problem_statement": {
        "title": "Strategy stalls in execution",
        "description": "Most plans never make it past the offsite.",
        "bullet_points": ["No clear owner", "No weekly cadence"],
    },
}

SERVICE_OFFERING_PAYLOAD: Dict[str, Any] = {
    "services": {
        "items": [
            {"title": "Strategy sprints", "description": "Two-week sprints that end with a plan the team owns."},
            {"title": "Operating cadence", "description": "Weekly rhythm that keeps the plan alive."},
        ],
    },
    "process": {
        "steps": [
            {"step": 1, "title": "Discovery", "description": "One call to map the problem."},
            {"step": 2, "title": "Sprint", "description": "Two weeks of focused work."},
        ],
    },
    "pricing": {"tiers": []},
}

CREDIBILITY_PAYLOAD: Dict[str, Any] = {
    "case_studies": {
        "items": [
            {
                "title": "Series A launch",
                "challenge": "Roadmap slipped two quarters.",
                "approach": "Reset priorities and ran weekly reviews.",
                "results": "Shipped in eight weeks.",
            },
        ],
    },
    "expertise": {"items": [{"title": "Operations"}, {"title": "Go-to-market"}, {"title": "Hiring"}]},
    "about": {"content": "I spent ten years running operations at startups."},
}

CONVERSION_PAYLOAD: Dict[str, Any] = {
    "faq": {
        "items": [
            {"question": "How long is an engagement?", "answer": "Usually six to twelve weeks."},
            {"question": "Do you work remotely?", "answer": "Yes."},
            {"question": "Who do you work with?", "answer": "Seed to Series B founders."},
        ],
    },
    "cta": {"subtitle": "A 30 minute call is enough to know if we fit."},
    "footer": {"copyright_text": "(c) Jane Doe"},
}

PAYLOADS: Dict[SegmentType, Dict[str, Any]] = {
    SegmentType.IDENTITY: IDENTITY_PAYLOAD,
    SegmentType.SERVICE_OFFERING: SERVICE_OFFERING_PAYLOAD,
    SegmentType.CREDIBILITY: CREDIBILITY_PAYLOAD,
    SegmentType.CONVERSION: CONVERSION_PAYLOAD,
}


def build_payload(segment_type: SegmentType, **overrides: Any) -> Dict[str, Any]:
    """Deep copy of the canned payload for a segment, with top-level overrides."""
    payload = copy.deepcopy(PAYLOADS[SegmentType.parse(segment_type)])
    payload.update(copy.deepcopy(overrides))
    return payload


def build_assessment(
    segment_types: Iterable[SegmentType] = tuple(SegmentType),
    scores: Optional[Mapping[Tuple[SegmentType, str], Tuple[int, int]]] = None,
    default: Tuple[int, int] = (8, 8),
    omit: Iterable[Tuple[SegmentType, str]] = (),
) -> Dict[str, Any]:
    """Assessment response covering every section of the given segments."""
    scores = scores or {}
    omitted = set(omit)
    items = []
    for segment_type in segment_types:
        for section_name in SEGMENT_SECTIONS[segment_type]:
            key = (segment_type, section_name)
            if key in omitted:
                continue
            quality, confidence = scores.get(key, default)
            items.append({
                "segment_type": segment_type.value,
                "section_name": section_name,
                "quality_score": quality,
                "quality_justification": f"quality {quality}",
                "confidence_score": confidence,
                "confidence_justification": f"confidence {confidence}",
                "suggested_improvement": None,
            })
    return {"assessments": items}


# ===== FAKE CLIENT =====

class ScriptedClient:
    """
    Fake TextGenerationClient replaying canned responses.

    Responses are keyed by the target schema's class name (e.g.
    "IdentitySegment", "AssessmentResponse"). A key maps to a list consumed in
    order; the last entry repeats once the list is exhausted. An entry can be
    a payload dict, an exception instance to raise, or a callable taking the
    prompt and returning either.
    """

    def __init__(self, responses: Optional[Mapping[str, Any]] = None):
        self.responses: Dict[str, List[Any]] = {}
        for key, value in (responses or {}).items():
            self.responses[key] = list(value) if isinstance(value, list) else [value]
        self.calls: List[Dict[str, Any]] = []

    def calls_for(self, schema_name: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["schema"] == schema_name]

    async def complete(self, prompt: str, target_schema: Any, system: Optional[str] = None) -> Dict[str, Any]:
        if isinstance(target_schema, type) and issubclass(target_schema, BaseModel):
            schema_name = target_schema.__name__
        else:
            schema_name = str(target_schema.get("title", "schema"))
        self.calls.append({"prompt": prompt, "schema": schema_name, "system": system})

        queue = self.responses.get(schema_name)
        if not queue:
            raise AssertionError(f"ScriptedClient has no response for {schema_name}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]

        if callable(item) and not isinstance(item, BaseException):
            item = item(prompt)
        if isinstance(item, BaseException):
            raise item
        return copy.deepcopy(item)


def generation_responses(**overrides: Any) -> Dict[str, Any]:
    """ScriptedClient responses producing every segment with the canned payloads."""
    responses = {
        "IdentitySegment": build_payload(SegmentType.IDENTITY),
        "ServiceOfferingSegment": build_payload(SegmentType.SERVICE_OFFERING),
        "CredibilitySegment": build_payload(SegmentType.CREDIBILITY),
        "ConversionSegment": build_payload(SegmentType.CONVERSION),
    }
    responses.update(overrides)
    return responses


# ===== FIXTURES =====

@pytest.fixture
def payload_factory() -> Callable[..., Dict[str, Any]]:
    return build_payload


@pytest.fixture
def assessment_factory() -> Callable[..., Dict[str, Any]]:
    return build_assessment


@pytest.fixture
def scripted_client() -> Callable[..., ScriptedClient]:
    """Factory: scripted_client({"IdentitySegment": payload, ...})"""
    return ScriptedClient


@pytest.fixture
def generation_client_factory() -> Callable[..., ScriptedClient]:
    """Factory for a client that generates every segment; keyword overrides per schema name."""
    def factory(**overrides: Any) -> ScriptedClient:
        return ScriptedClient(generation_responses(**overrides))
    return factory


@pytest.fixture
def source_record() -> SourceRecord:
    return SourceRecord(name="Jane Doe", tagline="Consultant")
