"""Load settings.yaml into typed dataclasses, with DEEPSEEK_* env overrides."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

DEFAULT_BASE_URL = "https://api.deepseek.com"
DEFAULT_MODEL = "deepseek-chat"
DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TIMEOUT_SEC = 180


class ConfigLoadError(Exception):
    """Raised when settings or environment values cannot be read."""


@dataclass(frozen=True)
class ClientConfig:
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    timeout_sec: int = DEFAULT_TIMEOUT_SEC


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    initial_backoff_sec: float = 0.5
    multiplier: float = 2.0


@dataclass(frozen=True)
class NegotiationConfig:
    max_questions: int = 3
    max_rounds: int = 5


@dataclass(frozen=True)
class InboxConfig:
    dir: Path = Path("./inbox")
    archive_dir: Path = Path("./inbox/archive")
    concurrency: int = 2   # task files negotiated at once


@dataclass(frozen=True)
class AppConfig:
    client: ClientConfig
    retry: RetryConfig = field(default_factory=RetryConfig)
    negotiation: NegotiationConfig = field(default_factory=NegotiationConfig)
    inbox: InboxConfig = field(default_factory=InboxConfig)
    output_dir: Path = Path("./output")


# env var -> (section key, converter)
_ENV_OVERRIDES: dict[str, tuple[str, type]] = {
    "DEEPSEEK_BASE_URL": ("base_url", str),
    "DEEPSEEK_MODEL": ("model", str),
    "DEEPSEEK_MAX_TOKENS": ("max_tokens", int),
    "DEEPSEEK_TEMPERATURE": ("temperature", float),
    "DEEPSEEK_TIMEOUT": ("timeout_sec", int),
}


def _client_from(raw: dict) -> ClientConfig:
    values = {
        "base_url": str(raw.get("base_url", DEFAULT_BASE_URL)),
        "model": str(raw.get("model", DEFAULT_MODEL)),
        "max_tokens": int(raw.get("max_tokens", DEFAULT_MAX_TOKENS)),
        "temperature": float(raw.get("temperature", DEFAULT_TEMPERATURE)),
        "timeout_sec": int(raw.get("timeout_sec", DEFAULT_TIMEOUT_SEC)),
    }

    for env_name, (key, convert) in _ENV_OVERRIDES.items():
        env_value = os.environ.get(env_name, "").strip()
        if not env_value:
            continue
        try:
            values[key] = convert(env_value)
        except ValueError as exc:
            raise ConfigLoadError(f"{env_name} must be a valid number, got {env_value!r}") from exc
        logger.debug("Config override from %s", env_name)

    api_key_env = str(raw.get("api_key_env", "DEEPSEEK_API_KEY"))
    api_key = os.environ.get(api_key_env, "").strip()
    if not api_key:
        logger.info("No API key found — set %s in .env", api_key_env)

    return ClientConfig(api_key=api_key, **values)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load configuration from settings.yaml, applying environment overrides.

    Raises FileNotFoundError if the settings file is missing and
    ConfigLoadError if an override is not a number or inbox.concurrency is
    below 1. Client range checks are left to the dispatcher, which rejects
    bad values before the first request.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    client = _client_from(raw.get("client", {}))

    retry_raw = raw.get("retry", {})
    retry = RetryConfig(
        max_attempts=int(retry_raw.get("max_attempts", 3)),
        initial_backoff_sec=float(retry_raw.get("initial_backoff_sec", 0.5)),
        multiplier=float(retry_raw.get("multiplier", 2.0)),
    )

    negotiation_raw = raw.get("negotiation", {})
    negotiation = NegotiationConfig(
        max_questions=int(negotiation_raw.get("max_questions", 3)),
        max_rounds=int(negotiation_raw.get("max_rounds", 5)),
    )

    inbox_raw = raw.get("inbox", {})
    inbox = InboxConfig(
        dir=Path(inbox_raw.get("dir", "./inbox")),
        archive_dir=Path(inbox_raw.get("archive_dir", "./inbox/archive")),
        concurrency=int(inbox_raw.get("concurrency", 2)),
    )

    if inbox.concurrency < 1:
        raise ConfigLoadError(f"inbox.concurrency must be at least 1, got {inbox.concurrency}")

    return AppConfig(
        client=client,
        retry=retry,
        negotiation=negotiation,
        inbox=inbox,
        output_dir=Path(raw.get("output_dir", "./output")),
    )
