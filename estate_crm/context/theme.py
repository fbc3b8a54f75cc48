"""Theme state: light, dark or follow the operating system."""

from __future__ import annotations

import logging
from typing import Callable, Mapping

from .storage import THEME_KEY, PreferenceStore

logger = logging.getLogger(__name__)

THEMES = ("light", "dark", "system")
CLIENT_HINT_HEADER = "sec-ch-prefers-color-scheme"

Listener = Callable[[bool], None]


class SystemColorScheme:
    """The OS dark-mode preference plus change notifications."""

    def __init__(self, prefers_dark: bool = False):
        self._prefers_dark = prefers_dark
        self._listeners: list[Listener] = []

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> SystemColorScheme:
        hint = (headers.get(CLIENT_HINT_HEADER) or "").strip().strip('"').lower()
        return cls(prefers_dark=hint == "dark")

    @property
    def prefers_dark(self) -> bool:
        return self._prefers_dark

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def change(self, prefers_dark: bool) -> None:
        if prefers_dark == self._prefers_dark:
            return
        self._prefers_dark = prefers_dark
        for listener in list(self._listeners):
            listener(prefers_dark)


class ThemeState:
    """Current theme for one browser session.

    Reads the stored preference on construction, falling back to "system".
    While the theme is "system" it listens to the OS preference and
    re-resolves on change; ``unmount`` drops that subscription.
    """

    def __init__(self, store: PreferenceStore, system: SystemColorScheme | None = None):
        self._store = store
        self._system = system or SystemColorScheme()
        self._unsubscribe: Callable[[], None] | None = None

        stored = store.get(THEME_KEY)
        if stored is not None and stored not in THEMES:
            logger.debug("Ignoring stored theme %r", stored)
            stored = None
        self._theme = stored or "system"
        self._resolved = self._resolve()
        self._sync_subscription()

    @property
    def theme(self) -> str:
        return self._theme

    @property
    def resolved_theme(self) -> str:
        return self._resolved

    @property
    def root_classes(self) -> list[str]:
        return ["dark"] if self._resolved == "dark" else ["light"]

    @property
    def subscribed(self) -> bool:
        return self._unsubscribe is not None

    def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme!r}")
        self._theme = theme
        self._store.set(THEME_KEY, theme)
        self._resolved = self._resolve()
        self._sync_subscription()

    def unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _resolve(self) -> str:
        if self._theme == "system":
            return "dark" if self._system.prefers_dark else "light"
        return self._theme

    def _on_system_change(self, prefers_dark: bool) -> None:
        if self._theme == "system":
            self._resolved = "dark" if prefers_dark else "light"

    def _sync_subscription(self) -> None:
        if self._theme == "system" and self._unsubscribe is None:
            self._unsubscribe = self._system.subscribe(self._on_system_change)
        elif self._theme != "system":
            self.unmount()
