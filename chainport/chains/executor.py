# chainport/chains/executor.py
"""
Chain Executor.

Runs a compiled chain's steps one after another against a chat model. The
output of each step becomes the input of the next. The first failing step
stops the run; the results of the steps that already finished are returned
with the error.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from chainport.chains.prompts import build_design_messages, build_step_messages
from chainport.errors import ChainportError, UpstreamError, ValidationError
from chainport.llm import COMPATIBLE_MODELS, extract_content, get_llm
from chainport.schema import ChainDefinition, ChainStep, ExecutionResult, StepResult

logger = logging.getLogger(__name__)

# Fed forward as the step result when the model returns no text.
# Masks an upstream problem as data; kept for compatibility with existing chains.
NO_RESPONSE_PLACEHOLDER = "Error: No response generated"


class ChainExecutor:
    def __init__(
        self,
        model: str = "gpt-3.5-turbo",
        temperature: float = 0.2,
        max_tokens: int = 1000,
        verify: bool = False,
        step_timeout: Optional[float] = 60.0,
        fallback_credential: Optional[str] = None,
        llm_factory: Callable = get_llm,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.verify = verify
        self.step_timeout = step_timeout
        self.fallback_credential = fallback_credential
        self.llm_factory = llm_factory

    async def run(
        self,
        chain: ChainDefinition,
        initial_input: str,
        verify: Optional[bool] = None,
    ) -> ExecutionResult:
        """
        Run every step of ``chain`` on ``initial_input``.

        Never raises for step failures: the returned result is marked failed
        and carries the partial trail.
        """
        verify = self.verify if verify is None else verify
        try:
            self._check_preconditions(chain, initial_input)
        except ValidationError as e:
            return self._failed(e, [])

        try:
            llm = self.llm_factory(self.model, chain.credential, self.temperature, self.max_tokens)
        except Exception as e:
            logger.error("Chain %s: could not create chat model: %s", chain.id, e)
            return self._failed(UpstreamError.from_exception(e), [], failed_step_id=chain.steps[0].id)

        current_input = initial_input
        trail: List[StepResult] = []

        for index, step in enumerate(chain.steps):
            logger.info("Chain %s: running step %d/%d (id=%s)", chain.id, index + 1, len(chain.steps), step.id)
            try:
                result = await self._run_step(llm, step, current_input, verify)
            except UpstreamError as e:
                logger.error("Chain %s: step %s failed: %s", chain.id, step.id, e)
                return self._failed(e, trail, failed_step_id=step.id)

            trail.append(StepResult(
                stepId=step.id,
                stepInstructions=step.instructions,
                input=current_input,
                result=result,
            ))
            current_input = result

        logger.info("Chain %s: completed %d steps", chain.id, len(trail))
        return ExecutionResult(success=True, finalResult=current_input, steps=trail)

    async def run_step(
        self,
        input_statement: str,
        instructions: str,
        required_output: str,
        credential: Optional[str] = None,
        model: Optional[str] = None,
    ) -> str:
        """
        Try one step before the chain is compiled.

        Uses the configured fallback credential when the caller supplies
        none. Raises ValidationError or UpstreamError.
        """
        model = model or self.model
        if model not in COMPATIBLE_MODELS:
            raise ValidationError(
                f"Model '{model}' is not compatible with the chat completions API. "
                "Please use a compatible model like gpt-3.5-turbo, gpt-4o, or gpt-4."
            )
        api_key = credential or self.fallback_credential
        if not api_key:
            raise ValidationError("OpenAI API key not set.")

        try:
            llm = self.llm_factory(model, api_key, self.temperature, self.max_tokens)
        except Exception as e:
            raise UpstreamError.from_exception(e) from e
        messages = build_design_messages(input_statement, instructions, required_output)
        response = await self._invoke(llm, messages)
        return extract_content(response) or "No result."

    def _check_preconditions(self, chain: ChainDefinition, initial_input: str) -> None:
        if not chain.credential:
            raise ValidationError("API key not found for this chain. The chain may be corrupted.")
        if not initial_input:
            raise ValidationError("Input is required")
        if not chain.steps:
            raise ValidationError("Chain has no steps")

    async def _run_step(self, llm, step: ChainStep, current_input: str, verify: bool) -> str:
        messages = build_step_messages(step.instructions, step.requiredOutput, current_input, verify=verify)
        response = await self._invoke(llm, messages)
        if not hasattr(response, "content"):
            raise UpstreamError(f"OpenAI API error: malformed response {type(response).__name__}")
        text = extract_content(response)
        if not text:
            logger.warning("Step %s produced no completion text; passing placeholder forward", step.id)
            return NO_RESPONSE_PLACEHOLDER
        return text

    async def _invoke(self, llm, messages):
        try:
            if self.step_timeout:
                return await asyncio.wait_for(llm.ainvoke(messages), timeout=self.step_timeout)
            return await llm.ainvoke(messages)
        except asyncio.TimeoutError:
            raise UpstreamError(
                f"OpenAI API error: no response within {self.step_timeout:g} seconds",
                reason="timeout",
            ) from None
        except ChainportError:
            raise
        except Exception as e:
            raise UpstreamError.from_exception(e) from e

    @staticmethod
    def _failed(error: ChainportError, trail: List[StepResult], failed_step_id: Optional[int] = None) -> ExecutionResult:
        return ExecutionResult(
            success=False,
            steps=trail,
            error=error.message,
            errorKind=getattr(error, "reason", error.kind),
            statusCode=error.status_code,
            failedStepId=failed_step_id,
        )
