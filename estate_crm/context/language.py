"""Interface language and text direction."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .storage import LANGUAGE_KEY, PreferenceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Language:
    code: str
    label: str
    flag: str
    dir: str


LANGUAGES = (
    Language("en", "English", "🇺🇸", "ltr"),
    Language("es", "Español", "🇪🇸", "ltr"),
    Language("ar", "العربية", "🇦🇪", "rtl"),
)
LANGUAGE_CODES = tuple(lang.code for lang in LANGUAGES)
DEFAULT_LANGUAGE = "en"


def get_language(code: str) -> Language | None:
    for lang in LANGUAGES:
        if lang.code == code:
            return lang
    return None


class LanguageState:
    def __init__(self, store: PreferenceStore):
        self._store = store
        stored = store.get(LANGUAGE_KEY)
        if stored is not None and get_language(stored) is None:
            logger.debug("Ignoring stored language %r", stored)
            stored = None
        self._language = stored or DEFAULT_LANGUAGE

    @property
    def language(self) -> str:
        return self._language

    @property
    def current(self) -> Language:
        return get_language(self._language)

    @property
    def is_rtl(self) -> bool:
        return self.current.dir == "rtl"

    @property
    def direction(self) -> str:
        return self.current.dir

    @property
    def document_lang(self) -> str:
        return self._language

    @property
    def options(self) -> tuple[Language, ...]:
        return LANGUAGES

    def set_language(self, code: str) -> None:
        if get_language(code) is None:
            raise ValueError(f"Unsupported language: {code!r}")
        self._language = code
        self._store.set(LANGUAGE_KEY, code)
