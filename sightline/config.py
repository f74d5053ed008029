"""Configuration for Sightline: environment loading and the on-disk config store."""

from __future__ import annotations

import json
import os
import sys
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Callable, get_type_hints

from sightline.models import GenerationSettings, ModelTiers

DEFAULT_GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_OLLAMA_URL = "http://localhost:11434/v1"

PROVIDERS = ("gemini", "openai", "ollama")

# Per-provider model allow-lists; an empty tuple accepts any model name.
ALLOWED_MODELS: dict[str, tuple[str, ...]] = {
    "gemini": ("gemini-2.5-pro", "gemini-2.5-flash"),
    "openai": (),
    "ollama": (),
}
FALLBACK_MODEL: dict[str, str] = {
    "gemini": "gemini-2.5-flash",
    "openai": "gpt-4o-mini",
    "ollama": "llava",
}

_MODEL_FIELDS = ("extraction_model", "solution_model", "reasoning_model", "debugging_model")
_SECRET_FIELDS = ("api_key",)


@dataclass
class Config:
    api_key: str = ""
    llm_provider: str = "gemini"  # "gemini", "openai" or "ollama"
    extraction_model: str = "gemini-2.5-flash"
    solution_model: str = "gemini-2.5-flash"
    reasoning_model: str = "gemini-2.5-pro"
    debugging_model: str = "gemini-2.5-flash"
    language: str = "python"
    temperature: float = 0.1
    max_output_tokens: int = 8192
    top_p: float = 0.8
    top_k: int = 40
    safety_threshold: str = "BLOCK_ONLY_HIGH"
    request_timeout: float = 60.0  # seconds
    truncation_retries: int = 2
    gemini_base_url: str = DEFAULT_GEMINI_URL
    ollama_base_url: str = DEFAULT_OLLAMA_URL

    def __post_init__(self) -> None:
        for name in _FIELD_TYPES:
            setattr(self, name, coerce_field(name, getattr(self, name)))

    def has_api_key(self) -> bool:
        if self.llm_provider == "ollama":
            return True
        return bool(self.api_key and self.api_key.strip())

    def generation_settings(self) -> GenerationSettings:
        return GenerationSettings(
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
            top_p=self.top_p,
            top_k=self.top_k,
            safety_threshold=self.safety_threshold,
        )

    def model_tiers(self) -> ModelTiers:
        return ModelTiers(fast=self.solution_model, deep=self.reasoning_model)

    def public_dict(self) -> dict:
        """Return the config as a dict with secrets masked."""
        data = asdict(self)
        for name in _SECRET_FIELDS:
            value = str(data.get(name) or "")
            data[name] = f"{value[:4]}...{value[-4:]}" if len(value) > 12 else ("***" if value else "")
        return data

    @classmethod
    def from_env(cls, **overrides) -> Config:
        provider = overrides.pop("llm_provider", None) or os.environ.get("SIGHTLINE_PROVIDER", "gemini")
        if provider not in PROVIDERS:
            raise ValueError(f"Unknown provider {provider!r}; expected one of {', '.join(PROVIDERS)}")
        key_var = "OPENAI_API_KEY" if provider == "openai" else "GEMINI_API_KEY"
        api_key = overrides.pop("api_key", None) or os.environ.get(key_var, "")
        kwargs: dict = {"api_key": api_key, "llm_provider": provider}
        if provider != "gemini":
            fallback = FALLBACK_MODEL[provider]
            for name in _MODEL_FIELDS:
                kwargs[name] = fallback
        model = overrides.pop("model", None)
        if model:
            for name in _MODEL_FIELDS:
                kwargs[name] = model
        env_map: dict[str, tuple[str, type]] = {
            "SIGHTLINE_LANGUAGE": ("language", str),
            "SIGHTLINE_EXTRACTION_MODEL": ("extraction_model", str),
            "SIGHTLINE_SOLUTION_MODEL": ("solution_model", str),
            "SIGHTLINE_REASONING_MODEL": ("reasoning_model", str),
            "SIGHTLINE_DEBUGGING_MODEL": ("debugging_model", str),
            "SIGHTLINE_MAX_OUTPUT_TOKENS": ("max_output_tokens", int),
            "SIGHTLINE_REQUEST_TIMEOUT": ("request_timeout", float),
            "SIGHTLINE_TRUNCATION_RETRIES": ("truncation_retries", int),
            "GEMINI_BASE_URL": ("gemini_base_url", str),
            "OLLAMA_BASE_URL": ("ollama_base_url", str),
        }
        for env_var, (field_name, conv) in env_map.items():
            val = os.environ.get(env_var)
            if val is not None:
                kwargs[field_name] = conv(val)
        kwargs.update(overrides)
        return cls(**kwargs)


_FIELD_TYPES: dict[str, type] = get_type_hints(Config)


def coerce_field(name: str, value: object) -> object:
    """Convert a raw config value to the field's declared type, raising ValueError."""
    expected = _FIELD_TYPES[name]
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Invalid value for {name}: {value!r}")
    if expected is str:
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str):
            return value
        raise ValueError(f"Invalid value for {name}: expected a string, got {value!r}")
    try:
        if expected is int:
            if isinstance(value, float) and not value.is_integer():
                raise ValueError
            return int(value)
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(
            f"Invalid value for {name}: expected {expected.__name__}, got {value!r}"
        ) from None


def is_valid_api_key_format(api_key: str) -> bool:
    return len(api_key.strip()) >= 10


def sanitize_model(provider: str, model: str) -> str:
    """Replace a model the provider does not offer with the provider's default."""
    allowed = ALLOWED_MODELS.get(provider, ())
    if allowed and model not in allowed:
        fallback = FALLBACK_MODEL[provider]
        print(f"Invalid {provider} model {model!r}; using {fallback}", file=sys.stderr)
        return fallback
    return model


def default_config_path() -> Path:
    env_path = os.environ.get("SIGHTLINE_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".sightline" / "config.json"


class ConfigStore:
    """JSON-file backed configuration with change notifications.

    Subscribers are called with the new ``Config`` whenever an update changes a field.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else default_config_path()
        self._subscribers: list[Callable[[Config], None]] = []
        if not self.path.exists():
            self.save(Config())

    def load(self) -> Config:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return Config()
        except (OSError, json.JSONDecodeError) as exc:
            print(f"Could not read config {self.path}: {exc}; using defaults", file=sys.stderr)
            return Config()
        if not isinstance(raw, dict):
            return Config()
        known = {f.name for f in fields(Config)}
        values = {}
        for key, value in raw.items():
            if key not in known:
                continue
            try:
                values[key] = coerce_field(key, value)
            except ValueError as exc:
                print(f"{exc} in {self.path}; using the default", file=sys.stderr)
        config = Config(**values)
        if config.llm_provider not in PROVIDERS:
            config.llm_provider = "gemini"
        for name in _MODEL_FIELDS:
            setattr(config, name, sanitize_model(config.llm_provider, getattr(config, name)))
        return config

    def save(self, config: Config) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(asdict(config), indent=2), encoding="utf-8")

    def update(self, **changes) -> Config:
        """Apply a partial update, persist it and notify subscribers if anything changed."""
        known = {f.name for f in fields(Config)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ValueError(f"Unknown config field(s): {', '.join(unknown)}")
        if "llm_provider" in changes and changes["llm_provider"] not in PROVIDERS:
            raise ValueError(f"Unknown provider {changes['llm_provider']!r}")

        current = self.load()
        provider = changes.get("llm_provider", current.llm_provider)
        for name in _MODEL_FIELDS:
            if name in changes:
                changes[name] = sanitize_model(provider, changes[name])
        updated = replace(current, **changes)
        self.save(updated)

        if updated != current:
            for callback in list(self._subscribers):
                callback(updated)
        return updated

    def has_api_key(self) -> bool:
        return self.load().has_api_key()

    def subscribe(self, callback: Callable[[Config], None]) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe
