"""
Languages a story can be translated and narrated in.
"""

from enum import Enum


class LanguageCode(str, Enum):
    ENGLISH = "en"
    SPANISH = "es"
    HINDI = "hi"

    @classmethod
    def from_code(cls, code: str) -> "LanguageCode | None":
        """Case-insensitive lookup by ISO 639-1 code."""
        try:
            return cls(code.lower())
        except ValueError:
            return None

    @classmethod
    def from_locale(cls, locale: str) -> "LanguageCode | None":
        """Lookup from a locale identifier such as 'es_ES' or 'hi-IN'."""
        return cls.from_code(locale[:2])
