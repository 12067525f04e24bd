"""Supported site languages and code/display-name mapping."""

from __future__ import annotations

from dataclasses import dataclass


SOURCE_LANGUAGE = "en"


@dataclass(frozen=True, slots=True)
class Language:
    """One selectable site language."""

    code: str
    name: str


SUPPORTED_LANGUAGES: tuple[Language, ...] = (
    Language(code="en", name="English"),
    Language(code="ja", name="日本語"),
)

_CODE_BY_DISPLAY_NAME = {language.name: language.code for language in SUPPORTED_LANGUAGES}


def get_language_display_name(code: str) -> str:
    """Return the display name for a code, defaulting to `English`."""

    for language in SUPPORTED_LANGUAGES:
        if language.code == code:
            return language.name
    return "English"


def resolve_language_code(value: str) -> str:
    """Accept either a display name or a code and return a language code.

    Unknown values are passed through unchanged so callers can target any
    language the endpoint accepts.
    """

    return _CODE_BY_DISPLAY_NAME.get(value, value)
