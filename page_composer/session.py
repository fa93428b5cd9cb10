from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from page_composer.composer import ComposerClient
from page_composer.config import ComposerConfig, Settings


class RenderMode(str, Enum):
    COMPOSED = "composed"
    TEMPLATE = "template"


@dataclass(frozen=True)
class SessionSnapshot:
    """Consistent copy of the session fields taken under one lock hold."""

    composer_config: ComposerConfig
    composer: ComposerClient
    prefer_composed: bool
    sticky_mode: Optional[RenderMode]
    last_source_url: str

    @property
    def composer_available(self) -> bool:
        return self.composer.available()


class SessionState:
    """Mutable state shared between the UI and background workers.

    The lock is held only to copy or replace fields, never across I/O.
    ``sticky_mode`` is ``None`` until the first request records a mode.
    """

    def __init__(
        self,
        composer: ComposerClient,
        prefer_composed: bool = False,
    ) -> None:
        self._lock = threading.Lock()
        self._composer = composer
        self._composer_config = composer.config
        self._prefer_composed = prefer_composed
        self._sticky_mode: Optional[RenderMode] = None
        self._last_source_url = ""

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                composer_config=self._composer_config,
                composer=self._composer,
                prefer_composed=self._prefer_composed,
                sticky_mode=self._sticky_mode,
                last_source_url=self._last_source_url,
            )

    @property
    def composer(self) -> ComposerClient:
        with self._lock:
            return self._composer

    @property
    def sticky_mode(self) -> Optional[RenderMode]:
        with self._lock:
            return self._sticky_mode

    @property
    def last_source_url(self) -> str:
        with self._lock:
            return self._last_source_url

    def record_mode(self, mode: RenderMode) -> None:
        with self._lock:
            self._sticky_mode = mode

    def record_source(self, source_url: str) -> None:
        with self._lock:
            self._last_source_url = (source_url or "").strip()

    def replace_composer(self, composer: ComposerClient, prefer_composed: bool) -> ComposerClient:
        """Swap client, config and preference together; returns the old client."""
        with self._lock:
            previous = self._composer
            self._composer = composer
            self._composer_config = composer.config
            self._prefer_composed = prefer_composed
            return previous

    def settings(self) -> Settings:
        with self._lock:
            config = self._composer_config
            return Settings(
                base_url=config.base_url,
                model=config.model,
                api_key=config.api_key,
                prefer_composed=self._prefer_composed,
            )
