"""LLM provider interface."""

from __future__ import annotations

from typing import Protocol

from ..types import GenerationRequest, GenerationResult


class ProviderClient(Protocol):
    name: str

    def generate(self, request: GenerationRequest) -> GenerationResult:
        """Sends one blocking request bounded by request.params.timeout_ms.

        Failures come back as a failure result with a classified ErrorKind,
        never as backend-specific exceptions.
        """
        ...
