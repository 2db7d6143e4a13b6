"""
Prompts for the landing page pipeline.

- segment_generation: Per-segment generation prompts
- review: Content improvement and quality assessment prompts
- shared: Profile block, brand guidelines, retry notice
"""

from src.landing_page.prompts.review import (
    ASSESSMENT_SYSTEM_PROMPT,
    IMPROVEMENT_SYSTEM_PROMPT,
    build_assessment_user_prompt,
    build_improvement_user_prompt,
)
from src.landing_page.prompts.segment_generation import (
    SEGMENT_GENERATION_SYSTEM_PROMPT,
    build_segment_generation_user_prompt,
)
from src.landing_page.prompts.shared import RETRY_NOTICE, build_brand_guidelines

__all__ = [
    "ASSESSMENT_SYSTEM_PROMPT",
    "IMPROVEMENT_SYSTEM_PROMPT",
    "SEGMENT_GENERATION_SYSTEM_PROMPT",
    "RETRY_NOTICE",
    "build_assessment_user_prompt",
    "build_brand_guidelines",
    "build_improvement_user_prompt",
    "build_segment_generation_user_prompt",
]
