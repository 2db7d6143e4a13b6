"""
LLM Factory Module.

Creates the LangChain chat model used by each pipeline step. All steps should
go through create_step_llm instead of instantiating ChatOpenAI/ChatAnthropic
directly, so provider selection and per-step settings stay in one place.

Usage:
    from src.common.llm_factory import create_step_llm

    llm = create_step_llm("quality_assessment")

    # Explicit overrides
    llm = create_step_llm("segment_generation", model="gpt-4o-mini", temperature=0.5)
"""

import logging
from typing import Any, Optional, Union

from langchain_anthropic import ChatAnthropic
from langchain_openai import ChatOpenAI

from src.common.config import Config
from src.common.llm_config import get_step_config

logger = logging.getLogger(__name__)


def create_llm(
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    timeout_seconds: Optional[float] = None,
    **kwargs: Any,
) -> Union[ChatOpenAI, ChatAnthropic]:
    """
    Create a chat model for the configured provider.

    Args:
        model: Model name (defaults to Config.get_default_model())
        temperature: Sampling temperature (defaults to analytical)
        timeout_seconds: Transport-level timeout
        **kwargs: Additional model parameters

    Returns:
        ChatAnthropic when Config selects Anthropic, ChatOpenAI otherwise
    """
    model = model or Config.get_default_model()
    if temperature is None:
        temperature = Config.ANALYTICAL_TEMPERATURE

    provider = Config.get_llm_provider()

    if provider == "anthropic":
        llm = ChatAnthropic(
            model=model,
            temperature=temperature,
            api_key=Config.ANTHROPIC_API_KEY,
            timeout=timeout_seconds,
            **kwargs,
        )
    else:
        llm = ChatOpenAI(
            model=model,
            temperature=temperature,
            api_key=Config.OPENAI_API_KEY,
            base_url=Config.get_llm_base_url(),
            timeout=timeout_seconds,
            **kwargs,
        )

    logger.debug(f"Created {provider} LLM: model={model}, temperature={temperature}")
    return llm


def create_step_llm(
    step_name: str,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    **kwargs: Any,
) -> Union[ChatOpenAI, ChatAnthropic]:
    """Create the chat model for a pipeline step using its StepConfig."""
    step_config = get_step_config(step_name)
    return create_llm(
        model=model or step_config.get_model(),
        temperature=temperature if temperature is not None else step_config.temperature,
        timeout_seconds=step_config.timeout_seconds,
        **kwargs,
    )
