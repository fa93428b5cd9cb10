"""Rendering surface collaborator.

A surface displays raw HTML and reports navigation attempts made from inside
the rendered page. Each surface owns its own navigation handler.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Protocol, Tuple

from bs4 import BeautifulSoup
from loguru import logger

NavigationHandler = Callable[[str], bool]


class RenderSurface(Protocol):
    def render_html(self, content: str, base_uri: str) -> None:
        ...

    def show_error(self, title: str, message: str) -> None:
        ...

    def set_status(self, text: str) -> None:
        ...

    def set_busy(self, busy: bool) -> None:
        ...

    def set_location(self, url: str) -> None:
        ...

    def on_navigate(self, handler: NavigationHandler) -> None:
        ...


class BaseSurface:
    """Holds the navigation handler registration for one surface instance."""

    def __init__(self) -> None:
        self._navigation_handler: Optional[NavigationHandler] = None

    def on_navigate(self, handler: NavigationHandler) -> None:
        self._navigation_handler = handler

    def navigate(self, target: str) -> bool:
        """Report a navigation attempt; ``True`` means suppress the default."""
        if self._navigation_handler is None:
            return False
        intercepted = self._navigation_handler(target)
        logger.debug("Navigation to {} intercepted={}", target, intercepted)
        return intercepted


class MemorySurface(BaseSurface):
    """Keeps the latest UI-visible state in plain attributes.

    Used by UIs that repaint from state on each frame (Streamlit reruns).
    """

    def __init__(self) -> None:
        super().__init__()
        self.html = ""
        self.base_uri = ""
        self.status = "Ready"
        self.busy = False
        self.location = ""
        self.error: Optional[Tuple[str, str]] = None

    def render_html(self, content: str, base_uri: str) -> None:
        self.html = content
        self.base_uri = base_uri
        self.error = None

    def show_error(self, title: str, message: str) -> None:
        self.error = (title, message)

    def set_status(self, text: str) -> None:
        self.status = text

    def set_busy(self, busy: bool) -> None:
        self.busy = busy

    def set_location(self, url: str) -> None:
        self.location = url


def anchor_targets(html: str) -> List[Tuple[str, str]]:
    """``(text, raw href)`` for each anchor in rendered HTML, in document order.

    Lets surfaces that cannot intercept clicks offer the page's links as
    navigation attempts instead.
    """
    if not html:
        return []
    soup = BeautifulSoup(html, "html.parser")
    targets: List[Tuple[str, str]] = []
    for anchor in soup.find_all("a", href=True):
        href = (anchor.get("href") or "").strip()
        if not href:
            continue
        targets.append((anchor.get_text().strip() or href, href))
    return targets
