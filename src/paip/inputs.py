"""Collects input text from files and stdin, cat-style but fully buffered."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, TextIO, Union

from .llm.types import InputError

logger = logging.getLogger(__name__)

STDIN_ARG = "-"
STDIN_LABEL = "<stdin>"


@dataclass(frozen=True)
class FileSource:
    path: Path

    def __str__(self) -> str:
        return str(self.path)


class _StdinSentinel:
    _instance: Optional["_StdinSentinel"] = None

    def __new__(cls) -> "_StdinSentinel":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "STDIN"

    def __str__(self) -> str:
        return STDIN_LABEL


STDIN = _StdinSentinel()

SourceSpec = Union[FileSource, _StdinSentinel]


def parse_sources(args: Iterable[str]) -> List[SourceSpec]:
    """Maps command-line arguments to sources; a bare '-' always means stdin."""
    sources: List[SourceSpec] = []
    for arg in args:
        if str(arg) == STDIN_ARG:
            sources.append(STDIN)
        else:
            sources.append(FileSource(Path(arg)))
    return sources


class StdinReader:
    """Single-use reader over the process stdin.

    The first read consumes the stream to EOF. Every later read returns an
    empty string instead of re-reading or failing (drain-once).
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream
        self.drained = False

    def read(self) -> str:
        if self.drained:
            logger.debug("stdin already drained; contributing empty input")
            return ""
        stream = self._stream if self._stream is not None else sys.stdin
        try:
            text = stream.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise InputError(STDIN_LABEL, str(exc)) from exc
        finally:
            self.drained = True
        return text


def _read_file(path: Path) -> str:
    try:
        with path.open("r", encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError as exc:
        raise InputError(str(path), "no such file") from exc
    except PermissionError as exc:
        raise InputError(str(path), "permission denied") from exc
    except IsADirectoryError as exc:
        raise InputError(str(path), "is a directory") from exc
    except UnicodeDecodeError as exc:
        raise InputError(str(path), f"not valid UTF-8 text ({exc.reason})") from exc
    except OSError as exc:
        raise InputError(str(path), exc.strerror or str(exc)) from exc


class InputAggregator:
    def __init__(self, stdin: Optional[TextIO] = None) -> None:
        self._stdin = StdinReader(stdin)

    def aggregate(self, sources: Iterable[SourceSpec]) -> str:
        """Concatenates every source in order, with no separator.

        An empty list reads stdin. Any failing source raises InputError and
        nothing read so far is returned.
        """
        ordered = list(sources) or [STDIN]
        chunks: List[str] = []
        for source in ordered:
            if source is STDIN:
                text = self._stdin.read()
            else:
                text = _read_file(source.path)
            logger.debug("read %d chars from %s", len(text), source)
            chunks.append(text)
        return "".join(chunks)


def aggregate(sources: Iterable[SourceSpec], stdin: Optional[TextIO] = None) -> str:
    return InputAggregator(stdin=stdin).aggregate(sources)
