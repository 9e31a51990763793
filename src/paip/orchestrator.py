"""Runs one invocation: aggregate input, resolve config, call the provider."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, Mapping, Optional

from .config import AppConfig
from .inputs import InputAggregator, SourceSpec
from .llm.providers.base import ProviderClient
from .llm.registry import default_providers, get_provider
from .llm.types import ConfigError, GenerationRequest, GenerationResult, InputError
from .prompts import build_body, compose_prompt

logger = logging.getLogger(__name__)


class State(str, Enum):
    IDLE = "idle"
    AGGREGATING = "aggregating"
    RESOLVING = "resolving"
    REQUESTING = "requesting"
    DONE = "done"


class RequestOrchestrator:
    """Single-shot pipeline. Any failure ends the run; nothing is retried."""

    def __init__(
        self,
        config: AppConfig,
        aggregator: InputAggregator | None = None,
        providers: Mapping[str, ProviderClient] | None = None,
    ) -> None:
        self.config = config
        self.aggregator = aggregator or InputAggregator()
        self.providers = dict(providers if providers is not None else default_providers())
        self.state = State.IDLE

    def _enter(self, state: State) -> None:
        logger.debug("orchestrator: %s -> %s", self.state.value, state.value)
        self.state = state

    def _finish(self, result: GenerationResult) -> GenerationResult:
        self._enter(State.DONE)
        return result

    def run(
        self,
        sources: Iterable[SourceSpec],
        prompt_name: Optional[str] = None,
        message: Optional[str] = None,
    ) -> GenerationResult:
        self._enter(State.AGGREGATING)
        try:
            input_text = self.aggregator.aggregate(sources)
        except InputError as exc:
            return self._finish(GenerationResult.from_error(exc))

        self._enter(State.RESOLVING)
        try:
            params = self.config.resolve_provider(self.config.active_provider)
            instruction = self.config.resolve_prompt(prompt_name) if prompt_name is not None else None
            provider = get_provider(params.name, self.providers)
        except ConfigError as exc:
            return self._finish(GenerationResult.from_error(exc))

        request = GenerationRequest(
            body=build_body(input_text, message),
            params=params,
            instruction=instruction,
        )
        logger.debug(
            "provider=%s model=%s timeout_ms=%d prompt=%s",
            params.name,
            params.model or "default",
            params.timeout_ms,
            "-" if prompt_name is None else prompt_name,
        )
        logger.debug("--- Full Input to LLM ---\n%s\n-------------------------",
                     compose_prompt(request.instruction, request.body))

        self._enter(State.REQUESTING)
        result = provider.generate(request)
        if result.ok:
            logger.debug(
                "response: %d chars, tokens_in=%d tokens_out=%d latency_ms=%d",
                len(result.text or ""),
                result.tokens_in,
                result.tokens_out,
                result.latency_ms,
            )
        return self._finish(result)
