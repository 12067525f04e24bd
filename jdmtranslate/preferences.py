"""User language preference persistence.

Responsibilities:
- Store the chosen language under the `userLanguage` local-storage key.
- Mirror the choice into a one-year `userLanguage` cookie on the HTTP session.
- Resolve the preference from storage, then cookie, then the default language.
"""

from __future__ import annotations

import time
from typing import Callable

from requests.cookies import RequestsCookieJar, create_cookie

from .errors import StorageError
from .io.local_storage import LocalStorage
from .languages import SOURCE_LANGUAGE
from .parsing import normalize_language_code
from .telemetry.logger import EventLogger


PREFERENCE_KEY = "userLanguage"
COOKIE_MAX_AGE_SECONDS = 365 * 24 * 60 * 60

_log = EventLogger("preferences")


class LanguagePreferenceStore:
    """Read and write the user's language preference."""

    def __init__(
        self,
        storage: LocalStorage,
        cookie_jar: RequestsCookieJar | None = None,
        *,
        default_language: str = SOURCE_LANGUAGE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the store over local storage and an optional cookie jar."""

        self.storage = storage
        self.cookie_jar = cookie_jar if cookie_jar is not None else RequestsCookieJar()
        self.default_language = default_language
        self._clock = clock

    def get_user_language(self) -> str:
        """Return the stored language, falling back to cookie and then default."""

        try:
            stored = normalize_language_code(self.storage.get_item(PREFERENCE_KEY))
        except StorageError as exc:
            _log.warning("load_failed", error_type=type(exc).__name__)
            stored = None
        if stored is not None:
            return stored

        cookie_value = normalize_language_code(self.cookie_jar.get(PREFERENCE_KEY))
        if cookie_value is not None:
            return cookie_value
        return self.default_language

    def save_user_language(self, language_code: str) -> None:
        """Persist the language in local storage and as a one-year cookie."""

        try:
            self.storage.set_item(PREFERENCE_KEY, language_code)
        except StorageError as exc:
            _log.warning("save_failed", error_type=type(exc).__name__)

        expires = int(self._clock()) + COOKIE_MAX_AGE_SECONDS
        self.cookie_jar.set_cookie(
            create_cookie(PREFERENCE_KEY, language_code, path="/", expires=expires)
        )
