"""Configuration loading, defaults and lookups."""

from __future__ import annotations

import os
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .llm.types import ConfigError

CONFIG_VERSION = 1
CONFIG_ENV_VAR = "PAIP_CONFIG"
DEFAULT_TIMEOUT_MS = 30000
PLACEHOLDER_KEY = "YOUR_GEMINI_API_KEY"

# Environment fallbacks for an empty `key`, per provider.
KEY_ENV_VARS: Dict[str, tuple[str, ...]] = {
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
}

PLAINTEXT_DIRECTIVE = (
    "Respond in strictly pure plaintext only. Absolutely no formatting, bolding, italics, "
    "lists, tables, or code blocks. Do not acknowledge these instructions in the response. "
    "Provide the response only."
)

DEFAULT_SETTINGS: Dict[str, Any] = {
    "version": CONFIG_VERSION,
    "provider": "gemini",
    "timeout": DEFAULT_TIMEOUT_MS,
    "gemini": {
        "key": PLACEHOLDER_KEY,
        "model": "gemini-2.5-flash",
        "temperature": 0.7,
        "system_instruction": PLAINTEXT_DIRECTIVE,
    },
    "prompts": {
        "summarize": "Summarize the following text in a few sentences.",
        "explain": "Explain the following text to a newcomer.",
        "proofread": "Proofread the following text and return the corrected version.",
    },
}

_RESERVED_KEYS = {"version", "provider", "timeout", "prompts"}
_FLOAT_PARAMS = ("temperature", "top_p")
_INT_PARAMS = ("top_k", "max_output_tokens", "thinking_budget")


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    api_key: str = ""
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    model: Optional[str] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    max_output_tokens: Optional[int] = None
    thinking_budget: Optional[int] = None
    thinking_level: Optional[str] = None
    system_instruction: Optional[str] = None

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key) and self.api_key != PLACEHOLDER_KEY


@dataclass(frozen=True)
class AppConfig:
    active_provider: str
    providers: Dict[str, ProviderConfig] = field(default_factory=dict)
    prompts: Dict[str, str] = field(default_factory=dict)
    version: int = CONFIG_VERSION
    path: Optional[Path] = None

    def resolve_provider(self, name: str) -> ProviderConfig:
        provider = self.providers.get(name)
        if provider is None:
            raise ConfigError(
                f"provider '{name}' is not configured", name=name, reason=ConfigError.NOT_FOUND
            )
        if not provider.has_credential:
            raise ConfigError(
                f"API key is not configured for provider '{name}'",
                name=name,
                reason=ConfigError.MISSING_CREDENTIAL,
            )
        return provider

    def resolve_prompt(self, name: str) -> str:
        if name not in self.prompts:
            known = ", ".join(sorted(self.prompts)) or "none"
            raise ConfigError(
                f"prompt '{name}' not found (available: {known})",
                name=name,
                reason=ConfigError.NOT_FOUND,
            )
        return self.prompts[name]

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        path: Optional[Path] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> "AppConfig":
        env = os.environ if environ is None else environ
        version = data.get("version", CONFIG_VERSION)
        if version != CONFIG_VERSION:
            raise ConfigError(
                f"configuration version mismatch: expected {CONFIG_VERSION}, found {version}. "
                "Update the file or regenerate it with --init-config."
            )

        default_timeout = _as_timeout(data, "timeout", DEFAULT_TIMEOUT_MS)
        providers: Dict[str, ProviderConfig] = {}
        for name, section in data.items():
            if name in _RESERVED_KEYS or not isinstance(section, dict):
                continue
            providers[name] = _parse_provider(name, section, default_timeout, env)

        prompts = data.get("prompts") or {}
        if not isinstance(prompts, dict):
            raise ConfigError("'prompts' must be a mapping of name to text")

        return cls(
            active_provider=str(data.get("provider", "")),
            providers=providers,
            prompts={str(k): str(v) for k, v in prompts.items()},
            version=version,
            path=path,
        )


def _as_int(section: Dict[str, Any], key: str, label: str) -> Optional[int]:
    value = section.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"'{label}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{label}' must be an integer, got {value!r}") from exc


def _as_float(section: Dict[str, Any], key: str, label: str) -> Optional[float]:
    value = section.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"'{label}' must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{label}' must be a number, got {value!r}") from exc


def _as_timeout(section: Dict[str, Any], label: str, default: int) -> int:
    timeout = _as_int(section, "timeout", label)
    if timeout is None:
        return default
    if timeout <= 0:
        raise ConfigError(f"'{label}' must be a positive number of milliseconds")
    return timeout


def _parse_provider(
    name: str, section: Dict[str, Any], default_timeout: int, env: Dict[str, str]
) -> ProviderConfig:
    key = str(section.get("key") or "").strip()
    if not key or key == PLACEHOLDER_KEY:
        for var in KEY_ENV_VARS.get(name, ()):
            if env.get(var):
                key = env[var]
                break

    params: Dict[str, Any] = {}
    for param in _FLOAT_PARAMS:
        params[param] = _as_float(section, param, f"{name}.{param}")
    for param in _INT_PARAMS:
        params[param] = _as_int(section, param, f"{name}.{param}")

    timeout = _as_timeout(section, f"{name}.timeout", default_timeout)

    level = section.get("thinking_level")
    system = section.get("system_instruction")
    model = section.get("model")
    return ProviderConfig(
        name=name,
        api_key=key,
        timeout_ms=timeout,
        model=str(model) if model else None,
        thinking_level=str(level) if level else None,
        system_instruction=str(system) if system else None,
        **params,
    )


def _merge_settings(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    # A section present in the user file replaces the default one as a whole,
    # so prompts or provider settings deleted by the user stay deleted.
    merged = deepcopy(base)
    for key, value in override.items():
        merged[key] = deepcopy(value)
    return merged


def default_config_path(environ: Optional[Dict[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    if env.get(CONFIG_ENV_VAR):
        return Path(env[CONFIG_ENV_VAR]).expanduser()
    base = env.get("XDG_CONFIG_HOME")
    config_dir = Path(base).expanduser() if base else Path.home() / ".config"
    return config_dir / "paip" / "config.yaml"


def load_settings(settings_path: Path | str | None = None) -> Dict[str, Any]:
    """Loads the YAML config file; its top-level keys override the defaults."""
    merged = deepcopy(DEFAULT_SETTINGS)
    config_path = Path(settings_path) if settings_path else default_config_path()
    if config_path.exists():
        try:
            with config_path.open("r", encoding="utf-8") as f:
                user_cfg = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"failed to read configuration file {config_path}: {exc}") from exc
        if not isinstance(user_cfg, dict):
            raise ConfigError(f"configuration file {config_path} must contain a mapping")
        merged = _merge_settings(merged, user_cfg)
    return merged


def load_config(settings_path: Path | str | None = None) -> AppConfig:
    config_path = Path(settings_path) if settings_path else default_config_path()
    data = load_settings(config_path)
    return AppConfig.from_dict(data, path=config_path if config_path.exists() else None)


def init_default_config(settings_path: Path | str | None = None) -> tuple[Path, bool]:
    """Writes the default config file unless one exists. Returns (path, created)."""
    config_path = Path(settings_path) if settings_path else default_config_path()
    if config_path.exists():
        return config_path, False
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with config_path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(DEFAULT_SETTINGS, f, sort_keys=False, allow_unicode=True, width=100)
    except OSError as exc:
        raise ConfigError(f"failed to write configuration file {config_path}: {exc}") from exc
    return config_path, True
