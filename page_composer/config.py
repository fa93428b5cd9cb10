from __future__ import annotations

import json
import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Dict, Any, Mapping, Optional

from dotenv import load_dotenv
from loguru import logger

from page_composer.errors import SettingsLoadError, SettingsPersistFailed


APP_NAME = "page-composer"

USER_AGENT = "PageComposer/0.1 (+https://example.com)"
EXTRACT_TIMEOUT = 15.0
COMPOSE_TIMEOUT = 55.0
DEFAULT_MAX_ITEMS = 10
MAX_BODY_BYTES = 4 * 1024 * 1024
MAX_ERROR_BODY_BYTES = 1 << 20

ENV_BASE_URL = ("PAGE_COMPOSER_LLM_BASE_URL", "PAGE_COMPOSER_LLM_ENDPOINT")
ENV_MODEL = ("PAGE_COMPOSER_LLM_MODEL",)
ENV_API_KEY = ("PAGE_COMPOSER_LLM_API_KEY",)
ENV_USE_LLM = "PAGE_COMPOSER_USE_LLM"
ENV_SETTINGS_PATH = "PAGE_COMPOSER_SETTINGS_PATH"

_TRUTHY = {"1", "true", "yes", "on"}


def default_settings_path() -> Path:
    override = os.getenv(ENV_SETTINGS_PATH, "").strip()
    if override:
        return Path(override)
    base = os.getenv("XDG_CONFIG_HOME", "").strip()
    config_dir = Path(base) if base else Path.home() / ".config"
    return config_dir / APP_NAME / "settings.json"


@dataclass
class Settings:
    base_url: str = ""
    model: str = ""
    api_key: str = ""
    prefer_composed: bool = False

    def normalized(self) -> "Settings":
        return Settings(
            base_url=self.base_url.strip(),
            model=self.model.strip(),
            api_key=self.api_key.strip(),
            prefer_composed=bool(self.prefer_composed),
        )


@dataclass(frozen=True)
class ComposerConfig:
    base_url: str = ""
    model: str = ""
    api_key: str = ""
    timeout: float = COMPOSE_TIMEOUT

    @classmethod
    def from_settings(
        cls, settings: Settings, timeout: float = COMPOSE_TIMEOUT
    ) -> "ComposerConfig":
        return cls(
            base_url=settings.base_url.strip(),
            model=settings.model.strip(),
            api_key=settings.api_key.strip(),
            timeout=timeout if timeout > 0 else COMPOSE_TIMEOUT,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)


class SettingsStore:
    """JSON-file persistence for composer settings.

    A missing file loads as empty settings. Writes go through a temporary
    file so a crash never leaves a half-written store behind.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else default_settings_path()

    def load(self) -> Settings:
        if not self.path.exists():
            return Settings()

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise SettingsLoadError(f"read settings {self.path}: {exc}") from exc

        if not isinstance(raw, dict):
            raise SettingsLoadError(f"decode settings {self.path}: expected an object")

        known = {f.name for f in fields(Settings)}
        data = {k: v for k, v in raw.items() if k in known}
        return Settings(**{**asdict(Settings()), **data}).normalized()

    def save(self, settings: Settings) -> None:
        data: Dict[str, Any] = asdict(settings.normalized())
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8"
            )
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise SettingsPersistFailed(f"save settings: {exc}") from exc
        logger.debug("Saved settings to {}", self.path)


def _first_non_empty(*values: Optional[str]) -> str:
    for value in values:
        if value and value.strip():
            return value.strip()
    return ""


def parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUTHY


def apply_environment(
    stored: Settings, environ: Optional[Mapping[str, str]] = None
) -> Settings:
    """Overlay non-empty environment values on top of persisted settings."""
    env = os.environ if environ is None else environ

    base_url = _first_non_empty(*(env.get(k) for k in ENV_BASE_URL), stored.base_url)
    model = _first_non_empty(*(env.get(k) for k in ENV_MODEL), stored.model)
    api_key = _first_non_empty(*(env.get(k) for k in ENV_API_KEY), stored.api_key)

    prefer = stored.prefer_composed
    override = (env.get(ENV_USE_LLM) or "").strip()
    if override:
        prefer = parse_bool(override)

    return Settings(
        base_url=base_url, model=model, api_key=api_key, prefer_composed=prefer
    )


def resolve_startup_settings(
    store: Optional[SettingsStore],
    environ: Optional[Mapping[str, str]] = None,
    dotenv: bool = True,
) -> Settings:
    """Settings for a fresh session: persisted values with environment overrides."""
    if dotenv and environ is None:
        load_dotenv()

    stored = Settings()
    if store is not None:
        try:
            stored = store.load()
        except SettingsLoadError as exc:
            logger.warning("Unable to load settings: {}", exc)

    return apply_environment(stored, environ)
