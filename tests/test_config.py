"""Tests for Config env loading and the JSON config store."""

from __future__ import annotations

import json

import pytest

from sightline.config import (
    Config,
    ConfigStore,
    coerce_field,
    is_valid_api_key_format,
    sanitize_model,
)


class TestConfigFromEnv:
    def test_gemini_key_from_env(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "gem-key-1234567890")
        monkeypatch.delenv("SIGHTLINE_PROVIDER", raising=False)
        config = Config.from_env()
        assert config.llm_provider == "gemini"
        assert config.api_key == "gem-key-1234567890"
        assert config.has_api_key()

    def test_openai_provider_uses_openai_key_and_models(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        config = Config.from_env(llm_provider="openai")
        assert config.api_key == "sk-test"
        assert config.solution_model == "gpt-4o-mini"

    def test_model_override_applies_to_every_phase(self, monkeypatch):
        monkeypatch.delenv("SIGHTLINE_SOLUTION_MODEL", raising=False)
        config = Config.from_env(api_key="k", model="gemini-2.5-pro")
        assert config.extraction_model == config.solution_model == "gemini-2.5-pro"
        assert config.reasoning_model == config.debugging_model == "gemini-2.5-pro"

    def test_numeric_env_values(self, monkeypatch):
        monkeypatch.setenv("SIGHTLINE_TRUNCATION_RETRIES", "4")
        monkeypatch.setenv("SIGHTLINE_REQUEST_TIMEOUT", "12.5")
        config = Config.from_env(api_key="k")
        assert config.truncation_retries == 4
        assert config.request_timeout == 12.5

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValueError):
            Config.from_env(llm_provider="nope")

    def test_ollama_needs_no_key(self):
        assert Config(llm_provider="ollama").has_api_key()
        assert not Config(api_key="   ").has_api_key()

    def test_public_dict_masks_key(self):
        data = Config(api_key="AIzaSyA-very-secret-key").public_dict()
        assert data["api_key"] == "AIza...-key"
        assert Config(api_key="short").public_dict()["api_key"] == "***"
        assert Config().public_dict()["api_key"] == ""

    def test_derived_settings(self):
        config = Config(temperature=0.3, max_output_tokens=1024, solution_model="a", reasoning_model="b")
        assert config.generation_settings().max_output_tokens == 1024
        assert config.generation_settings().temperature == 0.3
        assert config.model_tiers().fast == "a"
        assert config.model_tiers().deep == "b"


class TestConfigStore:
    def test_creates_file_with_defaults(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        store = ConfigStore(path)
        assert path.exists()
        assert store.load() == Config()

    def test_update_persists_and_notifies(self, tmp_path):
        store = ConfigStore(tmp_path / "config.json")
        seen: list[Config] = []
        store.subscribe(seen.append)
        config = store.update(api_key="abcdefghijklmnop", language="cpp")
        assert config.language == "cpp"
        assert ConfigStore(tmp_path / "config.json").load().api_key == "abcdefghijklmnop"
        assert len(seen) == 1 and seen[0].language == "cpp"

    def test_no_notification_without_change(self, tmp_path):
        store = ConfigStore(tmp_path / "config.json")
        seen: list[Config] = []
        store.subscribe(seen.append)
        store.update(language="python")
        assert seen == []

    def test_unsubscribe(self, tmp_path):
        store = ConfigStore(tmp_path / "config.json")
        seen: list[Config] = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        store.update(language="go")
        assert seen == []

    def test_update_sanitizes_gemini_models(self, tmp_path):
        store = ConfigStore(tmp_path / "config.json")
        config = store.update(solution_model="gemini-1.0-ultra", reasoning_model="gemini-2.5-pro")
        assert config.solution_model == "gemini-2.5-flash"
        assert config.reasoning_model == "gemini-2.5-pro"

    def test_update_rejects_unknown_fields(self, tmp_path):
        store = ConfigStore(tmp_path / "config.json")
        with pytest.raises(ValueError):
            store.update(opacity=0.5)
        with pytest.raises(ValueError):
            store.update(llm_provider="azure")

    def test_load_ignores_unknown_keys_and_sanitizes(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"api_key": "k" * 20, "opacity": 0.4, "extraction_model": "bogus"}))
        config = ConfigStore(path).load()
        assert config.api_key == "k" * 20
        assert config.extraction_model == "gemini-2.5-flash"

    def test_corrupt_file_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        assert ConfigStore(path).load() == Config()

    def test_update_coerces_field_types(self, tmp_path):
        store = ConfigStore(tmp_path / "config.json")
        config = store.update(api_key=123456789012345, truncation_retries="3", temperature="0.5")
        assert config.api_key == "123456789012345"
        assert config.truncation_retries == 3
        assert config.temperature == 0.5
        assert config.public_dict()["api_key"] == "1234...2345"
        saved = json.loads((tmp_path / "config.json").read_text())
        assert saved["truncation_retries"] == 3

    @pytest.mark.parametrize("changes", [
        {"truncation_retries": "two"},
        {"truncation_retries": 1.5},
        {"max_output_tokens": True},
        {"language": ["python"]},
        {"api_key": None},
    ])
    def test_update_rejects_unconvertible_values(self, tmp_path, changes):
        path = tmp_path / "config.json"
        store = ConfigStore(path)
        before = path.read_text()
        with pytest.raises(ValueError):
            store.update(**changes)
        assert path.read_text() == before

    def test_load_coerces_and_drops_bad_values(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"truncation_retries": "2", "top_k": "many", "api_key": 12345678901}))
        config = ConfigStore(path).load()
        assert config.truncation_retries == 2
        assert config.top_k == Config().top_k
        assert config.api_key == "12345678901"

    def test_default_path_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SIGHTLINE_CONFIG", str(tmp_path / "env.json"))
        store = ConfigStore()
        assert store.path == tmp_path / "env.json"
        assert store.path.exists()


def test_config_constructor_coerces():
    config = Config(truncation_retries="2", request_timeout=30)
    assert config.truncation_retries == 2
    assert isinstance(config.request_timeout, float)
    with pytest.raises(ValueError):
        Config(top_p="high")
    assert coerce_field("language", "go") == "go"


def test_api_key_format():
    assert is_valid_api_key_format("0123456789")
    assert not is_valid_api_key_format("   short  ")


def test_sanitize_model_passthrough_for_openai():
    assert sanitize_model("openai", "gpt-4.1") == "gpt-4.1"
