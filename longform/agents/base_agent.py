"""Base class for Pydantic AI agents."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Generic, TypeVar, cast

from pydantic import BaseModel
from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError, UnexpectedModelBehavior

from longform.config import settings
from longform.core.exceptions import (
    InvalidOutputError,
    RateLimitedError,
    UnavailableError,
)

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)


class BaseAgent(ABC, Generic[InputT, OutputT]):
    """Abstract base class for Pydantic AI agents.

    Each agent should:
    1. Define the system_prompt property
    2. Define the output_type property
    3. Implement _build_prompt to construct the user prompt

    Provider failures surface as RateLimitedError, UnavailableError or
    InvalidOutputError; the agent never retries beyond pydantic-ai's own
    output validation retries.
    """

    # Model tier for environment-aware resolution (reasoning / standard / fast)
    model_tier: str = "standard"
    # Explicit model override at the class level (bypasses tier resolution)
    model: str | None = None
    temperature: float = 0.7
    max_retries: int = settings.llm_max_retries

    def __init__(self, model_override: str | None = None) -> None:
        """Initialize the agent.

        Model resolution priority:
        1. model_override parameter (explicit runtime override)
        2. model class attribute (if set by subclass)
        3. settings.get_model(self.model_tier) (environment-aware tier fallback)
        """
        if model_override:
            self._model = model_override
            model_source = "runtime_override"
        elif self.model:
            self._model = self.model
            model_source = "class_override"
        else:
            self._model = settings.get_model(self.model_tier)
            model_source = "tier_default"
        self._agent: Agent[None, OutputT] | None = None

        logger.info(
            "Agent initialized",
            extra={
                "agent": self.__class__.__name__,
                "model": self._model,
                "model_tier": self.model_tier,
                "model_source": model_source,
                "temperature": self.temperature,
            },
        )

    @property
    def agent(self) -> Agent[None, OutputT]:
        """Lazily initialize and return the Pydantic AI agent."""
        if self._agent is None:
            self._agent = cast(
                Agent[None, OutputT],
                Agent(
                    model=self._model,
                    output_type=self.output_type,
                    system_prompt=self.system_prompt,
                    retries=self.max_retries,
                    model_settings={"temperature": self.temperature},
                ),
            )
        return self._agent

    @property
    @abstractmethod
    def system_prompt(self) -> str:
        """System prompt for the agent."""
        pass

    @property
    @abstractmethod
    def output_type(self) -> type[OutputT]:
        """Pydantic model type for structured output."""
        pass

    @property
    def timeout_seconds(self) -> float:
        return float(settings.get_llm_timeout(self.model_tier))

    async def run(self, input_data: InputT) -> OutputT:
        """Run the agent with input data.

        Args:
            input_data: Pydantic model with input parameters.

        Returns:
            Structured output as defined by output_type.
        """
        agent_name = self.__class__.__name__
        prompt = self._build_prompt(input_data)
        logger.info(
            "Prompt built, sending to LLM",
            extra={
                "agent": agent_name,
                "input_type": type(input_data).__name__,
                "prompt_length": len(prompt),
                "model": self._model,
            },
        )

        t0 = time.perf_counter()
        try:
            result = await asyncio.wait_for(self.agent.run(prompt), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise UnavailableError(
                agent_name,
                f"no response within {self.timeout_seconds:.0f}s",
            ) from e
        except ModelHTTPError as e:
            logger.warning(
                "LLM provider returned an error",
                extra={"agent": agent_name, "status_code": e.status_code, "model": self._model},
            )
            if e.status_code == 429:
                raise RateLimitedError(agent_name) from e
            raise UnavailableError(agent_name, f"HTTP {e.status_code}") from e
        except UnexpectedModelBehavior as e:
            raise InvalidOutputError(agent_name, e.message) from e
        elapsed = time.perf_counter() - t0

        usage = result.usage()
        logger.info(
            "Agent run completed",
            extra={
                "agent": agent_name,
                "duration_s": round(elapsed, 2),
                "input_tokens": usage.input_tokens,
                "output_tokens": usage.output_tokens,
                "total_tokens": usage.total_tokens,
                "output_type": type(result.output).__name__,
            },
        )

        return result.output

    @abstractmethod
    def _build_prompt(self, input_data: InputT) -> str:
        """Build the user prompt from input data."""
        pass


def clamp_text(text: str, max_chars: int) -> str:
    """Trim text to ``max_chars`` characters, marking the cut."""
    if len(text) <= max_chars:
        return text
    return text[: max(max_chars - 1, 0)].rstrip() + "…"
