"""Persisted UI preferences (theme, language)."""

from __future__ import annotations

from typing import Mapping, Protocol

THEME_KEY = "aurix-theme"
LANGUAGE_KEY = "aurix-language"
PREFERENCE_MAX_AGE = 365 * 86400


class PreferenceStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryPreferenceStore:
    """Dict-backed store, used by tests and the CLI."""

    def __init__(self, initial: Mapping[str, str] | None = None):
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def clear(self) -> None:
        self._values.clear()


class CookiePreferenceStore:
    """Reads preferences from request cookies and queues writes for the response."""

    def __init__(self, cookies: Mapping[str, str], *, secure: bool = False):
        self._cookies = dict(cookies)
        self._secure = secure
        self.pending: dict[str, str | None] = {}

    def get(self, key: str) -> str | None:
        if key in self.pending:
            return self.pending[key]
        return self._cookies.get(key) or None

    def set(self, key: str, value: str) -> None:
        self.pending[key] = value

    def remove(self, key: str) -> None:
        self.pending[key] = None

    def apply(self, response) -> None:
        """Write queued changes onto a Starlette response."""
        for key, value in self.pending.items():
            if value is None:
                response.delete_cookie(key, path="/")
                continue
            # Readable by page scripts, like the old localStorage values.
            response.set_cookie(
                key=key,
                value=value,
                max_age=PREFERENCE_MAX_AGE,
                httponly=False,
                secure=self._secure,
                samesite="lax",
                path="/",
            )
        self.pending.clear()
