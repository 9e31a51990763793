"""Entrypoint: aggregate input and send it to the configured LLM."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv

from . import __version__
from .config import init_default_config, load_config
from .inputs import InputAggregator, parse_sources
from .llm.types import ConfigError, ErrorKind
from .orchestrator import RequestOrchestrator

EXIT_CODES = {
    ErrorKind.INPUT: 3,
    ErrorKind.CONFIG: 4,
    ErrorKind.AUTH: 5,
    ErrorKind.RATE_LIMITED: 6,
    ErrorKind.TIMEOUT: 7,
    ErrorKind.MALFORMED: 8,
    ErrorKind.NETWORK: 9,
    ErrorKind.BACKEND: 10,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="paip",
        description="Send files or stdin to an LLM, optionally with a predefined prompt.",
    )
    parser.add_argument(
        "files",
        nargs="*",
        metavar="FILES",
        help="Files to process. Reads from stdin if no files are provided. "
        "Use '-' to read from stdin within a list of files.",
    )
    parser.add_argument("-p", "--prompt", help="Use a predefined prompt from the configuration file.")
    parser.add_argument("-m", "--message", help="Additional message to include after input.")
    parser.add_argument("-c", "--config", help="Path to the configuration file.")
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Create a default configuration file if it doesn't exist.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output for debugging.")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="[%(levelname)s] %(name)s - %(message)s",
    )
    logging.getLogger().setLevel(level)
    logging.getLogger("urllib3").setLevel(level)


def _fail(kind: ErrorKind, message: str) -> int:
    # One diagnostic line, even when the backend message spans several.
    print(f"paip: {' '.join(message.splitlines())}", file=sys.stderr)
    return EXIT_CODES[kind]


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv(find_dotenv(usecwd=True))
    args = _build_parser().parse_args(argv)
    _setup_logging(args.verbose)
    logger = logging.getLogger("paip.cli")

    if args.init_config:
        try:
            path, created = init_default_config(args.config)
        except ConfigError as exc:
            return _fail(exc.kind, exc.describe())
        if created:
            print(f"Default config file created at: {path}")
            print("Please edit the config file with your LLM provider details.")
        else:
            print(f"Config file already exists at: {path}")
        return 0

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        return _fail(exc.kind, exc.describe())
    logger.debug("Loaded configuration from %s", config.path or "defaults")

    orchestrator = RequestOrchestrator(config, aggregator=InputAggregator())
    result = orchestrator.run(parse_sources(args.files), prompt_name=args.prompt, message=args.message)
    if not result.ok:
        return _fail(result.kind, result.message)

    sys.stdout.write(result.text or "")
    sys.stdout.flush()
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
