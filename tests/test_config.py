import pytest
import yaml

from paip.config import (
    DEFAULT_SETTINGS,
    PLACEHOLDER_KEY,
    AppConfig,
    default_config_path,
    init_default_config,
    load_config,
    load_settings,
)
from paip.llm.types import ConfigError, ErrorKind


def _config(**gemini):
    section = {"key": "k-123", "model": "gemini-2.5-flash"}
    section.update(gemini)
    return AppConfig.from_dict(
        {
            "version": 1,
            "provider": "gemini",
            "timeout": 5000,
            "gemini": section,
            "prompts": {"summarize": "Summarize this."},
        },
        environ={},
    )


def test_provider_section_is_parsed():
    cfg = _config(temperature=0.2, top_p="0.9", top_k=40, max_output_tokens=256, thinking_budget=0)
    params = cfg.resolve_provider("gemini")

    assert params.api_key == "k-123"
    assert params.timeout_ms == 5000
    assert params.timeout_seconds == 5.0
    assert params.temperature == 0.2
    assert params.top_p == 0.9
    assert params.top_k == 40
    assert params.max_output_tokens == 256
    assert params.thinking_budget == 0


def test_provider_timeout_overrides_top_level_timeout():
    assert _config(timeout=1200).resolve_provider("gemini").timeout_ms == 1200


def test_unknown_prompt_is_not_found():
    cfg = _config()
    assert cfg.resolve_prompt("summarize") == "Summarize this."

    with pytest.raises(ConfigError) as info:
        cfg.resolve_prompt("nope")
    assert info.value.reason == ConfigError.NOT_FOUND
    assert info.value.name == "nope"
    assert info.value.kind is ErrorKind.CONFIG


def test_unknown_provider_is_not_found():
    with pytest.raises(ConfigError) as info:
        _config().resolve_provider("openai")
    assert info.value.reason == ConfigError.NOT_FOUND
    assert info.value.name == "openai"


@pytest.mark.parametrize("key", ["", PLACEHOLDER_KEY])
def test_missing_key_is_missing_credential(key):
    with pytest.raises(ConfigError) as info:
        _config(key=key).resolve_provider("gemini")
    assert info.value.reason == ConfigError.MISSING_CREDENTIAL


def test_key_falls_back_to_environment():
    data = {"provider": "gemini", "gemini": {"key": PLACEHOLDER_KEY}}
    cfg = AppConfig.from_dict(data, environ={"GOOGLE_API_KEY": "env-key"})
    assert cfg.resolve_provider("gemini").api_key == "env-key"


def test_invalid_values_are_rejected():
    with pytest.raises(ConfigError, match="version mismatch"):
        AppConfig.from_dict({"version": 2, "provider": "gemini"}, environ={})
    with pytest.raises(ConfigError, match="gemini.temperature"):
        _config(temperature="warm")
    with pytest.raises(ConfigError, match="gemini.timeout"):
        _config(timeout=-1)
    with pytest.raises(ConfigError, match="gemini.timeout"):
        _config(timeout=0)
    with pytest.raises(ConfigError, match="'timeout'"):
        AppConfig.from_dict({"provider": "gemini", "timeout": 0}, environ={})


def test_user_sections_replace_default_sections(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "provider: gemini\n"
        "gemini:\n"
        "  key: abc\n"
        "  temperature: 0.1\n"
        "prompts:\n"
        "  tldr: Give a one-line summary.\n",
        encoding="utf-8",
    )

    merged = load_settings(path)
    assert merged["gemini"]["key"] == "abc"
    assert merged["gemini"]["temperature"] == 0.1
    assert "model" not in merged["gemini"]
    assert "system_instruction" not in merged["gemini"]
    assert merged["prompts"] == {"tldr": "Give a one-line summary."}
    assert merged["timeout"] == DEFAULT_SETTINGS["timeout"]

    cfg = load_config(path)
    assert cfg.path == path
    assert cfg.resolve_prompt("tldr") == "Give a one-line summary."


def test_default_prompt_removed_by_user_is_not_found(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "provider: gemini\ngemini:\n  key: abc\nprompts:\n  summarize: Summarize this.\n",
        encoding="utf-8",
    )
    cfg = load_config(path)

    assert cfg.resolve_prompt("summarize") == "Summarize this."
    with pytest.raises(ConfigError) as info:
        cfg.resolve_prompt("explain")
    assert info.value.reason == ConfigError.NOT_FOUND


def test_unparsable_yaml_is_config_error(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("gemini: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(path)

    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_settings(path)


def test_default_config_path_honors_environment(tmp_path):
    assert default_config_path({"PAIP_CONFIG": str(tmp_path / "x.yaml")}) == tmp_path / "x.yaml"
    assert default_config_path({"XDG_CONFIG_HOME": str(tmp_path)}) == tmp_path / "paip" / "config.yaml"


def test_init_default_config_writes_once(tmp_path):
    path = tmp_path / "nested" / "config.yaml"

    written, created = init_default_config(path)
    assert created is True
    assert written == path
    assert yaml.safe_load(path.read_text(encoding="utf-8")) == DEFAULT_SETTINGS

    path.write_text("provider: gemini\n", encoding="utf-8")
    _, created = init_default_config(path)
    assert created is False
    assert path.read_text(encoding="utf-8") == "provider: gemini\n"
