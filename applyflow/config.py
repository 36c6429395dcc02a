"""Load candidate profile and env configuration."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from applyflow.errors import ConfigError
from applyflow.log import get_logger

log = get_logger(__name__)

load_dotenv()

PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = PROJECT_ROOT / "config"
PROFILE_PATH: Path = CONFIG_DIR / "profile.yaml"
OUTPUT_DIR: Path = PROJECT_ROOT / "output"

DEFAULT_MODEL = "gpt-5-mini"

_OPENAI_KEY_VARS = ("OPENAI_API_KEY", "AI_INTEGRATIONS_OPENAI_API_KEY", "OPENAI_KEY")
_OPENAI_URL_VARS = ("OPENAI_BASE_URL", "AI_INTEGRATIONS_OPENAI_BASE_URL")

# Settings attribute -> env var named in error messages
_CREDENTIALS: dict[str, str] = {
    "serper_api_key": "SERPER_API_KEY",
    "jina_api_key": "JINA_API_KEY",
    "openai_api_key": "OPENAI_API_KEY",
}


def get_env(key: str, default: str = "", environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    return (env.get(key) or default).strip()


def env_any(keys: tuple[str, ...], environ: Mapping[str, str] | None = None) -> str:
    for key in keys:
        value = get_env(key, environ=environ)
        if value:
            return value
    return ""


def _int_env(key: str, default: int, minimum: int, environ: Mapping[str, str] | None) -> int:
    raw = get_env(key, environ=environ)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    serper_api_key: str = ""
    jina_api_key: str = ""
    openai_api_key: str = ""
    openai_base_url: str | None = None
    openai_model: str = DEFAULT_MODEL
    concurrency: int = 2
    retries: int = 3
    max_results: int = 40
    output_dir: Path = OUTPUT_DIR

    def require(self, *names: str) -> None:
        """Raise one ConfigError listing every missing credential in *names*."""
        missing = [_CREDENTIALS.get(n, n) for n in names if not getattr(self, n, "")]
        if missing:
            raise ConfigError(f"{', '.join(missing)} is missing")


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Read and validate settings once, at startup."""
    output = get_env("OUTPUT_DIR", environ=environ)
    settings = Settings(
        serper_api_key=get_env("SERPER_API_KEY", environ=environ),
        jina_api_key=get_env("JINA_API_KEY", environ=environ),
        openai_api_key=env_any(_OPENAI_KEY_VARS, environ),
        openai_base_url=env_any(_OPENAI_URL_VARS, environ) or None,
        openai_model=get_env("OPENAI_MODEL", DEFAULT_MODEL, environ=environ),
        concurrency=_int_env("BATCH_CONCURRENCY", 2, 1, environ),
        retries=_int_env("BATCH_RETRIES", 3, 0, environ),
        max_results=_int_env("SEARCH_MAX_RESULTS", 40, 1, environ),
        output_dir=Path(output) if output else OUTPUT_DIR,
    )
    log.debug(
        "Settings loaded: model=%s concurrency=%d retries=%d rerank=%s",
        settings.openai_model,
        settings.concurrency,
        settings.retries,
        "on" if settings.jina_api_key else "off",
    )
    return settings


def load_profile(path: Path | None = None) -> dict[str, Any]:
    """Candidate profile: resume path, search keywords, location, selection."""
    path = path or PROFILE_PATH
    data: Any = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name} must contain a mapping")

    # Older profiles kept keywords as a list
    keywords = data.get("keywords")
    if isinstance(keywords, list):
        data["keywords"] = " ".join(str(k) for k in keywords)

    data.setdefault("keywords", "")
    data.setdefault("location", "")
    data.setdefault("select_top", 2)
    data.setdefault("min_match", 0)
    return data
