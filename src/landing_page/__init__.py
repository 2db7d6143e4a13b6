"""
Landing Page Generation Pipeline

Builds a landing page from independently generated segments, each holding
several named sections, and lets an automated editorial review decide which
optional sections are shown:

1. Segment Generator - Generate, validate and cache one segment per type
2. Content Improvement - Rewrite copy per segment (fail-open)
3. Quality Assessment - Score every section and gate it by threshold (fail-open)
4. Document Assembler - Combine enabled sections in canonical order
5. Orchestrator - Ties the stages together; selective regeneration

Key guarantees:
- Required sections (hero, services) are always shown
- Section order is canonical regardless of what was regenerated
- Review failures never remove content from the page
"""

from src.landing_page.assembler import DocumentAssembler, assemble_document
from src.landing_page.assessment import (
    QualityAssessmentStage,
    enforce_required_sections,
    mean_combiner,
)
from src.landing_page.cache import SegmentCache
from src.landing_page.errors import (
    AssemblyPreconditionError,
    GenerationError,
    LandingPageError,
    SourceDataError,
    ValidationError,
)
from src.landing_page.improvement import ContentImprovementStage
from src.landing_page.llm_client import TextGenerationClient
from src.landing_page.orchestrator import PipelineOrchestrator, StaticSourceProvider
from src.landing_page.schemas import (
    CANONICAL_SECTION_ORDER,
    REQUIRED_SECTIONS,
    SEGMENT_SCHEMAS,
    SEGMENT_SECTIONS,
)
from src.landing_page.segment_generator import SegmentGenerator
from src.landing_page.types import (
    Document,
    GenerationOptions,
    GenerationResult,
    GenerationStatus,
    GenerationStatusTracker,
    QualityAssessment,
    QualityThresholds,
    Section,
    Segment,
    SegmentType,
    SourceRecord,
)
from src.landing_page.validator import SchemaValidator

__all__ = [
    # Types
    "Document",
    "GenerationOptions",
    "GenerationResult",
    "GenerationStatus",
    "GenerationStatusTracker",
    "QualityAssessment",
    "QualityThresholds",
    "Section",
    "Segment",
    "SegmentType",
    "SourceRecord",
    # Schemas
    "CANONICAL_SECTION_ORDER",
    "REQUIRED_SECTIONS",
    "SEGMENT_SCHEMAS",
    "SEGMENT_SECTIONS",
    # Errors
    "AssemblyPreconditionError",
    "GenerationError",
    "LandingPageError",
    "SourceDataError",
    "ValidationError",
    # Components
    "SchemaValidator",
    "SegmentCache",
    "TextGenerationClient",
    "SegmentGenerator",
    "ContentImprovementStage",
    "QualityAssessmentStage",
    "enforce_required_sections",
    "mean_combiner",
    "DocumentAssembler",
    "assemble_document",
    # Orchestrator
    "PipelineOrchestrator",
    "StaticSourceProvider",
]
