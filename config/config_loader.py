"""Load config.yaml into typed dataclasses. Validates provider entries at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.claude/cc-goto-work/config.yaml")

DEFAULT_TIMEOUT_SEC = 30
DEFAULT_WAIT_SEC = 30
DEFAULT_TAIL_BYTES = 10 * 1024
DEFAULT_MAX_RECORDS = 20

STRATEGIES = ("heuristic", "hybrid", "ai")

SAMPLE_CONFIG = """\
providers:
  - api_base: https://api.openai.com/v1
    api_key: your-api-key-here
    models:
      - gpt-4o-mini
timeout: 30  # optional
"""


class ConfigError(Exception):
    """Raised when the config file is missing or malformed."""


@dataclass(frozen=True)
class EndpointConfig:
    """One (endpoint, credential, model) tuple the ensemble sends a request to."""

    provider: str
    api_base: str
    api_key: str
    model: str
    timeout_sec: int


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    api_base: str
    api_key: str
    models: tuple[str, ...]
    timeout_sec: int
    api_key_env: str | None = None

    def endpoints(self) -> list[EndpointConfig]:
        return [
            EndpointConfig(
                provider=self.name,
                api_base=self.api_base,
                api_key=self.api_key,
                model=model,
                timeout_sec=self.timeout_sec,
            )
            for model in self.models
        ]


@dataclass(frozen=True)
class AppConfig:
    providers: tuple[ProviderConfig, ...] = ()
    timeout_sec: int = DEFAULT_TIMEOUT_SEC
    debug: bool = False
    system_prompt: str | None = None
    strategy: str = "hybrid"
    wait_seconds: int = DEFAULT_WAIT_SEC
    fail_open: bool = True
    tail_bytes: int = DEFAULT_TAIL_BYTES
    max_records: int = DEFAULT_MAX_RECORDS
    source_path: Path | None = None
    available_providers: frozenset[str] = field(default_factory=frozenset)

    def endpoints(self) -> list[EndpointConfig]:
        """All endpoints of providers that have a usable API key."""
        return [
            endpoint
            for provider in self.providers
            if provider.name in self.available_providers
            for endpoint in provider.endpoints()
        ]


def expand_path(path: str | Path) -> Path:
    return Path(os.path.expanduser(str(path)))


def _as_int(raw: dict, key: str, default: int, *, minimum: int) -> int:
    value = raw.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigError(f"'{key}' must be >= {minimum}, got {value}")
    return value


def _as_bool(raw: dict, key: str, default: bool) -> bool:
    value = raw.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be true or false, got {value!r}")
    return value


def _parse_provider(index: int, provider_raw: object, default_timeout: int) -> ProviderConfig:
    if not isinstance(provider_raw, dict):
        raise ConfigError(f"providers[{index}] must be a mapping")

    name = str(provider_raw.get("name") or f"provider-{index + 1}")
    api_base = provider_raw.get("api_base")
    if not api_base or not isinstance(api_base, str):
        raise ConfigError(f"Provider '{name}' is missing 'api_base'")

    models_raw = provider_raw.get("models")
    if models_raw is None and "model" in provider_raw:
        models_raw = [provider_raw["model"]]
    if isinstance(models_raw, str):
        models_raw = [models_raw]
    if not models_raw or not isinstance(models_raw, list):
        raise ConfigError(f"Provider '{name}' needs at least one entry in 'models'")

    api_key_env = provider_raw.get("api_key_env")
    if api_key_env:
        api_key = os.environ.get(str(api_key_env), "").strip()
    else:
        api_key = str(provider_raw.get("api_key") or "").strip()

    return ProviderConfig(
        name=name,
        api_base=api_base.rstrip("/"),
        api_key=api_key,
        models=tuple(str(m) for m in models_raw),
        timeout_sec=_as_int(provider_raw, "timeout", default_timeout, minimum=1),
        api_key_env=str(api_key_env) if api_key_env else None,
    )


def load_config(config_path: str | Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Load and validate configuration from config.yaml.

    Raises ConfigError if the file is missing, unreadable or malformed.
    Logs providers without an API key but does not raise; callers check
    available_providers.
    """
    path = expand_path(config_path)
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Top level of {path} must be a mapping")

    timeout_sec = _as_int(raw, "timeout", DEFAULT_TIMEOUT_SEC, minimum=1)

    providers_raw = raw.get("providers")
    if providers_raw is None and "api_base" in raw:
        # Single-provider layout written by older installers
        providers_raw = [{k: raw[k] for k in ("api_base", "api_key", "api_key_env", "model") if k in raw}]
    if providers_raw is None:
        providers_raw = []
    if not isinstance(providers_raw, list):
        raise ConfigError("'providers' must be a list")

    providers = tuple(
        _parse_provider(i, provider_raw, timeout_sec)
        for i, provider_raw in enumerate(providers_raw)
    )
    names = [p.name for p in providers]
    if len(set(names)) != len(names):
        raise ConfigError(f"Duplicate provider names: {names}")

    available: set[str] = set()
    for provider in providers:
        if provider.api_key:
            available.add(provider.name)
            logger.info("Provider available: %s (%s)", provider.name, ", ".join(provider.models))
        else:
            logger.info(
                "Provider skipped (no API key): %s, set api_key or %s",
                provider.name,
                provider.api_key_env or "api_key_env",
            )

    strategy = str(raw.get("strategy", "hybrid")).lower()
    if strategy not in STRATEGIES:
        raise ConfigError(f"'strategy' must be one of {', '.join(STRATEGIES)}, got {strategy!r}")

    system_prompt = raw.get("system_prompt")
    if system_prompt is not None and not isinstance(system_prompt, str):
        raise ConfigError("'system_prompt' must be a string")

    return AppConfig(
        providers=providers,
        timeout_sec=timeout_sec,
        debug=_as_bool(raw, "debug", False),
        system_prompt=(system_prompt or "").strip() or None,
        strategy=strategy,
        wait_seconds=_as_int(raw, "wait_seconds", DEFAULT_WAIT_SEC, minimum=0),
        fail_open=_as_bool(raw, "fail_open", True),
        tail_bytes=_as_int(raw, "tail_bytes", DEFAULT_TAIL_BYTES, minimum=1),
        max_records=_as_int(raw, "max_records", DEFAULT_MAX_RECORDS, minimum=1),
        source_path=path,
        available_providers=frozenset(available),
    )
