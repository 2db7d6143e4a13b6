"""
Segment generation prompts.

One prompt per segment type. The JSON schema of the segment is appended by
the TextGenerationClient, so these prompts describe intent, not structure.
"""

from typing import Dict

from src.landing_page.prompts.shared import (
    GROUNDING_RULES,
    build_brand_guidelines,
    build_profile_block,
)
from src.landing_page.types import SegmentType, SourceRecord

SEGMENT_GENERATION_SYSTEM_PROMPT = """You are an expert conversion copywriter building a professional landing page.

You write one part (segment) of the page at a time. Each segment is a JSON
object holding several named sections. Every section in the schema MUST be
present. When the profile gives you little for a section, keep it short and
factual; never fill it with invented details.

Answer with a single JSON object and nothing else."""

SEGMENT_INSTRUCTIONS: Dict[SegmentType, str] = {
    SegmentType.IDENTITY: """Write the IDENTITY segment: who this is and why a visitor should care.

- title: page title, under 60 characters
- description: meta description, one or two sentences
- name / tagline: from the profile
- hero: a headline that states the value delivered (not the job title), a one-sentence subheading, a call to action
- problem_statement: the problem the target audience has, with 3-5 bullet points""",
    SegmentType.SERVICE_OFFERING: """Write the SERVICE OFFERING segment: what is offered and how engagements run.

- services: 3-6 concrete services, each with a one or two sentence description
- process: 3-5 numbered steps from first contact to delivery
- pricing: packages ONLY if the profile mentions pricing; otherwise an empty tier list""",
    SegmentType.CREDIBILITY: """Write the CREDIBILITY segment: proof that the promise is real.

- case_studies: projects from the profile, each as challenge, approach, results
- expertise: 3-5 areas of expertise
- about: a short first-person story connecting background to the services""",
    SegmentType.CONVERSION: """Write the CONVERSION segment: turn interest into contact.

- faq: 3-7 questions a prospective client would actually ask, with direct answers
- cta: a closing call to action with a short subtitle
- footer: contact details and links from the profile, plus a copyright line""",
}


def build_segment_generation_user_prompt(
    segment_type: SegmentType,
    source: SourceRecord,
) -> str:
    """Build the user prompt for generating one segment from the source record."""
    segment_type = SegmentType.parse(segment_type)
    parts = [
        SEGMENT_INSTRUCTIONS[segment_type],
        build_profile_block(source),
    ]
    guidelines = build_brand_guidelines(source)
    if guidelines:
        parts.append(guidelines)
    parts.append(GROUNDING_RULES)
    return "\n\n".join(parts)
