"""Shared LLM data structures and the error taxonomy."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..config import ProviderConfig


class ErrorKind(str, Enum):
    INPUT = "input"
    CONFIG = "config"
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    MALFORMED = "malformed"
    NETWORK = "network"
    BACKEND = "backend"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class PaipError(RuntimeError):
    """Base class for every classified failure."""

    kind: ErrorKind = ErrorKind.BACKEND

    def describe(self) -> str:
        return f"{self.kind.label} error: {self}"


class InputError(PaipError):
    """A source could not be opened or fully read."""

    kind = ErrorKind.INPUT

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"cannot read '{source}': {reason}")
        self.source = source
        self.reason = reason


class ConfigError(PaipError):
    """Provider, prompt or credential missing from the loaded configuration."""

    kind = ErrorKind.CONFIG

    NOT_FOUND = "not_found"
    MISSING_CREDENTIAL = "missing_credential"
    INVALID = "invalid"

    def __init__(self, message: str, name: Optional[str] = None, reason: str = INVALID) -> None:
        super().__init__(message)
        self.name = name
        self.reason = reason


class ProviderError(PaipError):
    """Provider failed to return a valid generation."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


@dataclass(frozen=True)
class GenerationRequest:
    body: str
    params: "ProviderConfig"
    instruction: Optional[str] = None


@dataclass
class GenerationResult:
    text: Optional[str] = None
    kind: Optional[ErrorKind] = None
    message: str = ""
    provider: str = ""
    model: str = ""
    tokens_in: int = 0
    tokens_out: int = 0
    latency_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.kind is None

    @classmethod
    def success(cls, text: str, **meta) -> "GenerationResult":
        return cls(text=text, **meta)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "GenerationResult":
        return cls(kind=kind, message=message)

    @classmethod
    def from_error(cls, exc: PaipError) -> "GenerationResult":
        return cls.failure(exc.kind, exc.describe())
