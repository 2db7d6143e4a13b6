"""
Shared prompt constants for landing page generation.

Single source of truth for text that appears in several prompts.
"""

from typing import Any, List, Optional

from src.landing_page.types import SourceRecord

RETRY_NOTICE = (
    "IMPORTANT: Previous generation attempt failed. "
    "Please ensure the response follows the required schema structure exactly."
)

GROUNDING_RULES = """=== CONTENT RULES ===

1. ONLY use facts (clients, numbers, credentials, services) present in the PROFILE
2. If the profile lacks a detail, write around it; NEVER invent one
3. Write in first person for an individual, first person plural for a business
4. Keep copy concise: short sentences, no filler, no buzzword chains"""


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def build_profile_block(source: SourceRecord) -> str:
    """Render the source record as a PROFILE block for prompts."""
    lines = [f"Name: {source.name}"]
    if source.tagline:
        lines.append(f"Tagline: {source.tagline}")
    if source.description:
        lines.append(f"Description: {source.description}")
    for key, value in source.attributes.items():
        if value in (None, "", [], {}):
            continue
        label = key.replace("_", " ").capitalize()
        if isinstance(value, (list, tuple)):
            lines.append(f"{label}: {', '.join(str(v) for v in value)}")
        else:
            lines.append(f"{label}: {value}")
    return "=== PROFILE ===\n" + "\n".join(lines)


def build_brand_guidelines(source: Optional[SourceRecord]) -> str:
    """
    Brand guidelines derived from the source record.

    Returns an empty string when the record carries no brand fields beyond
    name and tagline.
    """
    if source is None:
        return ""

    attrs = source.attributes
    parts = []

    tone = attrs.get("tone")
    personality = _as_list(attrs.get("personality"))
    if tone or personality:
        tone_line = f"Tone: {tone}." if tone else "Tone: professional."
        if personality:
            tone_line += f" Personality traits: {', '.join(personality)}."
        parts.append(tone_line)

    if attrs.get("writing_style"):
        parts.append(f"Style: {attrs['writing_style']}.")

    values = _as_list(attrs.get("core_values"))
    audience = _as_list(attrs.get("target_audience"))
    pain_points = _as_list(attrs.get("pain_points"))
    if values:
        parts.append(f"Core values: {', '.join(values)}.")
    if audience:
        parts.append(f"Target audience: {', '.join(audience)}.")
    if pain_points:
        parts.append(f"Pain points to address: {', '.join(pain_points)}.")
    if attrs.get("desired_action"):
        parts.append(f"Desired action: {attrs['desired_action']}.")

    if not parts:
        return ""

    return (
        "=== BRAND GUIDELINES ===\n"
        + "\n".join(parts)
        + f"\n\nNAME: {source.name}\nTAGLINE: {source.tagline or 'Not specified'}\n"
        + f"UNIQUE VALUE: {attrs.get('unique_value') or 'Not specified'}\n\n"
        + "Follow these brand guidelines consistently."
    )
