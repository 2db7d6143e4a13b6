"""
Per-Step LLM Configuration.

Each pipeline step that calls the text generation service has its own model,
temperature, timeout and retry budget, overridable through environment
variables for experimentation.

Usage:
    from src.common.llm_config import get_step_config

    config = get_step_config("quality_assessment")
    print(config.temperature)  # 0.1

    # Environment variable overrides:
    # LLM_MODEL_quality_assessment=gpt-4o-mini
    # LLM_TEMPERATURE_content_improvement=0.2
    # LLM_TIMEOUT_segment_generation=300
    # LLM_RETRIES_segment_generation=4
"""

import logging
import os
from dataclasses import dataclass, replace
from typing import Dict, Optional

from src.common.config import Config

logger = logging.getLogger(__name__)


@dataclass
class StepConfig:
    """
    Configuration for one LLM-backed step.

    Attributes:
        model: Model override (None uses Config.get_default_model())
        temperature: Sampling temperature
        timeout_seconds: Per-call timeout enforced by the client
        max_retries: Retries after the first attempt for transient failures
    """

    model: Optional[str] = None
    temperature: float = Config.ANALYTICAL_TEMPERATURE
    timeout_seconds: int = Config.LLM_TIMEOUT_SECONDS
    max_retries: int = Config.LLM_MAX_RETRIES

    def get_model(self) -> str:
        return self.model or Config.get_default_model()


STEP_CONFIGS: Dict[str, StepConfig] = {
    "segment_generation": StepConfig(temperature=Config.CREATIVE_TEMPERATURE),
    "content_improvement": StepConfig(temperature=Config.EDITORIAL_TEMPERATURE),
    "quality_assessment": StepConfig(temperature=Config.ANALYTICAL_TEMPERATURE),
}


def _get_env_override(step_name: str, setting: str) -> Optional[str]:
    """Read LLM_{SETTING}_{step_name} from the environment."""
    env_var = f"LLM_{setting}_{step_name}"
    value = os.getenv(env_var)
    if value:
        logger.debug(f"Using env override {env_var}={value}")
    return value


def get_step_config(step_name: str) -> StepConfig:
    """
    Resolve the configuration for a step, applying environment overrides.

    Unknown steps get the default StepConfig. The registered config is
    copied, so overrides never leak between calls.
    """
    config = replace(STEP_CONFIGS.get(step_name, StepConfig()))

    model_override = _get_env_override(step_name, "MODEL")
    if model_override:
        config.model = model_override

    temperature_override = _get_env_override(step_name, "TEMPERATURE")
    if temperature_override:
        try:
            config.temperature = float(temperature_override)
        except ValueError:
            logger.warning(f"Invalid temperature override for {step_name}: {temperature_override}")

    timeout_override = _get_env_override(step_name, "TIMEOUT")
    if timeout_override:
        try:
            config.timeout_seconds = int(timeout_override)
        except ValueError:
            logger.warning(f"Invalid timeout override for {step_name}: {timeout_override}")

    retries_override = _get_env_override(step_name, "RETRIES")
    if retries_override:
        try:
            config.max_retries = int(retries_override)
        except ValueError:
            logger.warning(f"Invalid retries override for {step_name}: {retries_override}")

    return config
