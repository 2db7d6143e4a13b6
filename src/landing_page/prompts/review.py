"""
Editorial review prompts: content improvement and quality assessment.

Improvement runs once per segment and must return the segment in exactly the
shape it was given. Assessment runs once over every section of every segment.
"""

import json
from typing import Mapping, Optional

from src.landing_page.prompts.shared import GROUNDING_RULES, build_brand_guidelines
from src.landing_page.types import Segment, SegmentType, SourceRecord

IMPROVEMENT_SYSTEM_PROMPT = """You are a senior landing page editor.

You receive one segment of a landing page as JSON. Rewrite the copy so it is:
- clearer: one idea per sentence, plain words
- more persuasive: lead with the visitor's outcome, not the author's activity
- more specific: concrete services, audiences and results instead of generalities

Return the SAME JSON structure: same keys, same sections, same list shapes.
Do not add or remove sections. Keep links and image URLs as they are.

Answer with a single JSON object and nothing else."""

ASSESSMENT_SYSTEM_PROMPT = """You are a landing page quality reviewer.

For EVERY section you are shown, score two things on a 1-10 scale:
- quality_score: how clear, persuasive and specific the copy is
- confidence_score: how confident you are the section belongs on this page and
  is grounded in the profile (low when it is generic filler or unsupported)

Justify each score in one sentence. Suggest one concrete improvement when the
quality score is below 9.

SCORING GUIDE:
9-10: publish as is
7-8: good, minor polish
5-6: generic or thin
1-4: misleading, empty or off-topic

Answer with a single JSON object and nothing else."""


def build_improvement_user_prompt(segment: Segment, source: Optional[SourceRecord] = None) -> str:
    """Build the improvement prompt for one segment."""
    parts = [
        f"Improve the {segment.segment_type.value.replace('_', ' ')} segment below.",
        "=== CURRENT SEGMENT ===\n" + json.dumps(segment.to_payload(), indent=2),
    ]
    guidelines = build_brand_guidelines(source)
    if guidelines:
        parts.append(guidelines)
    parts.append(GROUNDING_RULES)
    return "\n\n".join(parts)


def build_assessment_user_prompt(
    segments: Mapping[SegmentType, Segment],
    source: Optional[SourceRecord] = None,
) -> str:
    """Build the aggregate assessment prompt listing every section of every segment."""
    blocks = []
    for segment_type, segment in segments.items():
        for section_name, section in segment.sections.items():
            blocks.append(
                f"--- segment_type: {segment_type.value} | section_name: {section_name} ---\n"
                + json.dumps(section.content, indent=2)
            )

    parts = [
        f"Assess each of the {len(blocks)} sections below. Return one assessment per "
        "section, identified by its segment_type and section_name exactly as given.",
        "\n\n".join(blocks),
    ]
    guidelines = build_brand_guidelines(source)
    if guidelines:
        parts.append("Judge the copy against these guidelines:\n" + guidelines)
    return "\n\n".join(parts)
