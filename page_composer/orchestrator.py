"""Request orchestration.

Every request runs on its own background thread: extract, optionally compose,
otherwise fall back to the reader template. UI updates are only ever
scheduled through the dispatcher. Concurrent requests are not serialized
against each other; whichever finishes last owns the visible render.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

from page_composer.composer import ComposerClient, is_rate_limited
from page_composer.config import (
    COMPOSE_TIMEOUT,
    ComposerConfig,
    Settings,
    SettingsStore,
    resolve_startup_settings,
)
from page_composer.dispatch import UIDispatcher
from page_composer.errors import ComposerError, PageComposerError, SettingsPersistFailed
from page_composer.extractor import ExtractedDocument, Extractor
from page_composer.navigation import resolve_target
from page_composer.session import RenderMode, SessionState
from page_composer.surface import RenderSurface
from page_composer.template import render_template

STATUS_SCRAPING = "Scraping..."
STATUS_DONE = "Done"
STATUS_ERROR = "Error"
STATUS_RATE_LIMITED = "Composer rate limited, showing reader view"
STATUS_CONFIGURED = "Composer configured"
STATUS_DISABLED = "Composer disabled"
STATUS_PREFERENCE_UNAVAILABLE = "Compose preference saved but endpoint unavailable"

OUTCOME_RENDERED = "rendered"
OUTCOME_FAILED = "failed"
OUTCOME_CANCELLED = "cancelled"

ComposerFactory = Callable[[ComposerConfig], ComposerClient]


@dataclass(frozen=True)
class RequestOutcome:
    """Result of one fetch sequence, as seen by the worker."""

    status: str
    mode: RenderMode
    html: str = ""
    document: Optional[ExtractedDocument] = None
    error: Optional[BaseException] = None
    fell_back: bool = False


class Orchestrator:
    def __init__(
        self,
        extractor: Extractor,
        session: SessionState,
        dispatcher: UIDispatcher,
        surface: RenderSurface,
        store: Optional[SettingsStore] = None,
        composer_factory: Optional[ComposerFactory] = None,
        compose_timeout: float = COMPOSE_TIMEOUT,
    ) -> None:
        self.extractor = extractor
        self.session = session
        self.dispatcher = dispatcher
        self.surface = surface
        self.store = store
        self.composer_factory: ComposerFactory = composer_factory or ComposerClient
        self.compose_timeout = compose_timeout
        self._shutdown = threading.Event()
        self._workers_lock = threading.Lock()
        self._workers: set = set()
        # replaced clients, closed once no worker started before the swap remains
        self._retired: list = []

        surface.on_navigate(self.handle_navigation)

    # -- mode decisions -------------------------------------------------

    def composer_available(self) -> bool:
        return self.session.composer.available()

    def default_mode(self) -> RenderMode:
        snap = self.session.snapshot()
        if snap.prefer_composed and snap.composer_available:
            return RenderMode.COMPOSED
        return RenderMode.TEMPLATE

    def navigation_mode(self) -> RenderMode:
        """Mode for a link navigation; records the attempted mode as sticky.

        An unavailable composer demotes the effective mode to template for
        this request only.
        """
        snap = self.session.snapshot()
        if snap.sticky_mode is not None:
            attempted = snap.sticky_mode
        elif snap.prefer_composed:
            attempted = RenderMode.COMPOSED
        else:
            attempted = RenderMode.TEMPLATE

        self.session.record_mode(attempted)
        if attempted is RenderMode.COMPOSED and not snap.composer_available:
            return RenderMode.TEMPLATE
        return attempted

    # -- entry points (UI thread) ---------------------------------------

    def request(self, url: str, mode: RenderMode) -> Optional[threading.Thread]:
        """Explicit user action: the action names the mode."""
        target = (url or "").strip()
        if not target:
            self._schedule(lambda: self.surface.set_status("Please provide a URL"))
            return None
        self.session.record_mode(mode)
        return self._start(target, mode)

    def submit(self, url: str) -> Optional[threading.Thread]:
        """Default action (Enter in the address bar)."""
        return self.request(url, self.default_mode())

    def handle_navigation(self, target: str) -> bool:
        """Intercept an in-page navigation attempt.

        Returns ``True`` when a new request was started and the surface
        should suppress its own navigation.
        """
        resolved = resolve_target(target, self.session.last_source_url)
        if resolved is None:
            return False

        self._schedule(lambda: self.surface.set_location(resolved))
        self._start(resolved, self.navigation_mode())
        return True

    def _start(self, url: str, mode: RenderMode) -> Optional[threading.Thread]:
        if self._shutdown.is_set():
            return None
        self._schedule(lambda: self.surface.set_status(STATUS_SCRAPING))
        worker = threading.Thread(
            target=self._run_worker, args=(url, mode), name="page-composer-fetch", daemon=True
        )
        with self._workers_lock:
            self._workers.add(worker)
        worker.start()
        return worker

    def _run_worker(self, url: str, mode: RenderMode) -> None:
        try:
            self.run_request(url, mode)
        finally:
            with self._workers_lock:
                self._workers.discard(threading.current_thread())
                retired = self._take_retired()
            for client in retired:
                client.close()

    def _take_retired(self) -> list:
        # caller holds _workers_lock
        if self._workers:
            return []
        retired, self._retired = self._retired, []
        return retired

    def _retire(self, client: ComposerClient) -> None:
        with self._workers_lock:
            self._retired.append(client)
            retired = self._take_retired()
        for old in retired:
            old.close()

    def busy(self) -> bool:
        with self._workers_lock:
            return bool(self._workers)

    # -- fetch sequence (worker thread) ----------------------------------

    def run_request(self, url: str, mode: RenderMode) -> RequestOutcome:
        self._schedule(lambda: self.surface.set_busy(True))
        try:
            return self._fetch_and_render(url, mode)
        except Exception as exc:
            logger.exception("Request for {} failed unexpectedly", url)
            return self._fail(mode, f"Unexpected failure: {exc}", exc)
        finally:
            self._schedule(lambda: self.surface.set_busy(False))

    def _fetch_and_render(self, url: str, mode: RenderMode) -> RequestOutcome:
        try:
            document = self.extractor.fetch(url)
        except PageComposerError as exc:
            return self._fail(mode, f"Scrape failed: {exc}", exc)

        self.session.record_source(document.source_url)

        if self._shutdown.is_set():
            return RequestOutcome(status=OUTCOME_CANCELLED, mode=mode, document=document)

        fell_back = False
        composer = self.session.composer
        if mode is RenderMode.COMPOSED and composer.available():
            try:
                html = composer.compose(document)
            except ComposerError as exc:
                if not is_rate_limited(exc):
                    return self._fail(mode, f"Composer failed: {exc}", exc, document)
                logger.warning("Composer rate limited; falling back to reader view: {}", exc)
                self.session.record_mode(RenderMode.TEMPLATE)
                self._schedule(lambda: self.surface.set_status(STATUS_RATE_LIMITED))
                fell_back = True
            else:
                return self._render(mode, html, document)

        if self._shutdown.is_set():
            return RequestOutcome(status=OUTCOME_CANCELLED, mode=mode, document=document)

        html = render_template(document)
        return self._render(RenderMode.TEMPLATE, html, document, fell_back)

    def _render(
        self,
        mode: RenderMode,
        html: str,
        document: ExtractedDocument,
        fell_back: bool = False,
    ) -> RequestOutcome:
        if self._shutdown.is_set():
            return RequestOutcome(status=OUTCOME_CANCELLED, mode=mode, document=document)

        base_uri = document.source_url

        def paint() -> None:
            self.surface.render_html(html, base_uri)
            self.surface.set_status(STATUS_DONE)

        self._schedule(paint)
        logger.info("Rendered {} ({})", document.source_url, mode.value)
        return RequestOutcome(
            status=OUTCOME_RENDERED,
            mode=mode,
            html=html,
            document=document,
            fell_back=fell_back,
        )

    def _fail(
        self,
        mode: RenderMode,
        message: str,
        error: BaseException,
        document: Optional[ExtractedDocument] = None,
    ) -> RequestOutcome:
        logger.error(message)

        def report() -> None:
            self.surface.show_error("Something went wrong", message)
            self.surface.set_status(STATUS_ERROR)

        self._schedule(report)
        return RequestOutcome(
            status=OUTCOME_FAILED, mode=mode, document=document, error=error
        )

    # -- settings --------------------------------------------------------

    def settings_snapshot(self) -> Settings:
        return self.session.settings()

    def update_settings(self, settings: Settings) -> None:
        """Apply new composer settings, then persist them.

        The in-memory change stands even when persisting fails; the failure
        is re-raised as ``SettingsPersistFailed`` after the UI is updated.
        """
        settings = settings.normalized()
        config = ComposerConfig.from_settings(settings, self.compose_timeout)
        client = self.composer_factory(config)

        previous = self.session.replace_composer(client, settings.prefer_composed)
        self._retire(previous)
        logger.info(
            "Composer settings updated (endpoint={}, model={}, prefer_composed={})",
            client.endpoint or "<disabled>",
            config.model or "<default>",
            settings.prefer_composed,
        )

        available = client.available()
        if settings.prefer_composed and not available:
            status = STATUS_PREFERENCE_UNAVAILABLE
        elif available:
            status = STATUS_CONFIGURED
        else:
            status = STATUS_DISABLED
        self._schedule(lambda: self.surface.set_status(status))

        if self.store is None:
            return
        try:
            self.store.save(settings)
        except SettingsPersistFailed as exc:
            logger.error("Settings not persisted: {}", exc)
            self._schedule(lambda: self.surface.set_status(f"Settings not saved: {exc}"))
            raise

    # -- lifecycle -------------------------------------------------------

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Cancel every in-flight request and release HTTP sessions."""
        self._shutdown.set()
        if timeout is not None:
            with self._workers_lock:
                workers = list(self._workers)
            for worker in workers:
                worker.join(timeout)
        with self._workers_lock:
            retired, self._retired = self._retired, []
        for client in retired:
            client.close()
        self.extractor.close()
        self.session.composer.close()

    def _schedule(self, callback: Callable[[], None]) -> None:
        self.dispatcher.schedule(callback)


def create_orchestrator(
    surface: RenderSurface,
    dispatcher: UIDispatcher,
    store: Optional[SettingsStore] = None,
    settings: Optional[Settings] = None,
    extractor: Optional[Extractor] = None,
) -> Orchestrator:
    """Wire an orchestrator from persisted settings and environment overrides."""
    if settings is None:
        settings = resolve_startup_settings(store)
    config = ComposerConfig.from_settings(settings)
    session = SessionState(ComposerClient(config), prefer_composed=settings.prefer_composed)
    return Orchestrator(
        extractor=extractor or Extractor(),
        session=session,
        dispatcher=dispatcher,
        surface=surface,
        store=store,
    )
