"""
Text generation client.

Thin async wrapper around a LangChain chat model: sends a prompt plus the
JSON schema the answer must follow, and returns the parsed JSON object.
Timeouts, transport failures and unparseable output all surface as
GenerationError. complete_with_retry() wraps a call in bounded retries with
exponential backoff; every pipeline step goes through it.

Usage:
    client = TextGenerationClient(step_name="segment_generation")
    payload = await client.complete(prompt, IdentitySegment, system=SYSTEM_PROMPT)
"""

import asyncio
import json
from typing import Any, Dict, Mapping, Optional, Type, Union

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import BaseModel
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.common.json_utils import parse_llm_json
from src.common.llm_config import get_step_config
from src.common.llm_factory import create_step_llm
from src.common.logger import PipelineLogger, get_logger
from src.landing_page.errors import GenerationError

TargetSchema = Union[Type[BaseModel], Mapping[str, Any]]

DEFAULT_SYSTEM_PROMPT = (
    "You are a website copywriter. Answer with a single JSON object and nothing else."
)


def schema_to_json(target_schema: TargetSchema) -> Dict[str, Any]:
    """JSON schema of a pydantic model, or a JSON schema mapping as-is."""
    if isinstance(target_schema, type) and issubclass(target_schema, BaseModel):
        return target_schema.model_json_schema()
    return dict(target_schema)


def _response_text(response: Any) -> str:
    """Text of a chat model response; Anthropic returns a list of content blocks."""
    content = response.content if hasattr(response, "content") else response
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, Mapping) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return str(content)


class TextGenerationClient:
    """
    Structured-output client for one pipeline step.

    Args:
        llm: Chat model to use; created from the step config when omitted
        step_name: StepConfig name (segment_generation, content_improvement,
            quality_assessment)
        timeout_seconds: Per-call timeout (defaults to the step config)
    """

    def __init__(
        self,
        llm: Optional[Any] = None,
        step_name: str = "segment_generation",
        timeout_seconds: Optional[float] = None,
    ):
        self._logger = get_logger(__name__, stage=step_name)
        self.step_name = step_name
        step_config = get_step_config(step_name)
        self.timeout_seconds = timeout_seconds or step_config.timeout_seconds
        self._llm = llm if llm is not None else create_step_llm(step_name)

    def _build_messages(
        self,
        prompt: str,
        target_schema: TargetSchema,
        system: Optional[str],
    ) -> list:
        schema_json = json.dumps(schema_to_json(target_schema), indent=2)
        user_content = (
            f"{prompt}\n\n"
            "Return ONLY a JSON object that validates against this JSON schema:\n"
            f"{schema_json}"
        )
        return [
            SystemMessage(content=system or DEFAULT_SYSTEM_PROMPT),
            HumanMessage(content=user_content),
        ]

    async def complete(
        self,
        prompt: str,
        target_schema: TargetSchema,
        system: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Generate a structured payload.

        Args:
            prompt: User prompt
            target_schema: Pydantic model class or JSON schema the answer must follow
            system: System prompt override

        Returns:
            Parsed JSON object (not yet validated against the schema)

        Raises:
            GenerationError: Timeout, transport failure or unparseable output
        """
        messages = self._build_messages(prompt, target_schema, system)

        try:
            response = await asyncio.wait_for(
                self._llm.ainvoke(messages), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            self._logger.warning(f"Generation timed out after {self.timeout_seconds}s")
            raise GenerationError(
                f"Text generation timed out after {self.timeout_seconds}s", stage=self.step_name
            )
        except Exception as e:
            self._logger.warning(f"Generation call failed: {type(e).__name__}: {e}")
            raise GenerationError(
                f"Text generation failed: {e}", stage=self.step_name
            ) from e

        text = _response_text(response)
        try:
            return parse_llm_json(text)
        except ValueError as e:
            self._logger.warning(f"Unparseable generation output: {e}")
            raise GenerationError(
                f"Could not parse generated output as JSON: {e}", stage=self.step_name
            ) from e


async def complete_with_retry(
    client: Any,
    prompt: str,
    target_schema: TargetSchema,
    system: Optional[str] = None,
    max_retries: int = 2,
    backoff_seconds: float = 1.0,
    retry_notice: Optional[str] = None,
    logger: Optional[PipelineLogger] = None,
) -> Dict[str, Any]:
    """
    Call client.complete(), retrying GenerationError.

    Args:
        client: Anything with async complete(prompt, target_schema, system=...)
        prompt: User prompt
        target_schema: Schema the answer must follow
        system: System prompt
        max_retries: Retries after the first attempt
        backoff_seconds: Base of the exponential backoff between attempts
        retry_notice: Text appended to the prompt on re-attempts
        logger: Logger for retry warnings

    Raises:
        GenerationError: The last attempt failed
    """
    log = logger or get_logger(__name__)

    def log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        log.warning(
            f"Attempt {retry_state.attempt_number}/{max_retries + 1} "
            f"failed: {error}. Retrying..."
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=backoff_seconds, max=backoff_seconds * 8),
        retry=retry_if_exception_type(GenerationError),
        before_sleep=log_retry,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            attempt_prompt = prompt
            if retry_notice and attempt.retry_state.attempt_number > 1:
                attempt_prompt = f"{prompt}\n\n{retry_notice}"
            payload = await client.complete(attempt_prompt, target_schema, system=system)
    return payload
