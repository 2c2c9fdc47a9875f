"""Session helpers: flash messages and the selected language.

The session itself is Starlette's signed cookie session, installed by
``create_app``.
"""

from fastapi import Request

from plainwiki.core.i18n import available_languages, negotiate_language, translate

FLASH_KEY = "_flashes"
LANGUAGE_KEY = "language"


def flash(request: Request, message: str, category: str = "success") -> None:
    """Queue a message for the next rendered page."""
    request.session.setdefault(FLASH_KEY, []).append([category, message])


def pop_flashes(request: Request) -> list[tuple[str, str]]:
    """Remove and return the queued messages as (category, message) pairs."""
    return [tuple(item) for item in request.session.pop(FLASH_KEY, [])]


def current_language(request: Request) -> str:
    """Language stored in the session, or negotiated from the request."""
    language = request.session.get(LANGUAGE_KEY)
    available = available_languages()
    if language in available:
        return language
    default = request.app.state.wiki.settings.default_language
    return negotiate_language(
        request.headers.get("accept-language"), available, default
    )


def set_language(request: Request, language: str) -> bool:
    """Store a language in the session. Returns False for unknown codes."""
    if language not in available_languages():
        return False
    request.session[LANGUAGE_KEY] = language
    return True


def translator(request: Request):
    """Bind translate() to the request's language."""
    language = current_language(request)

    def _(key: str, n: int | None = None, **params) -> str:
        return translate(language, key, n, **params)

    return _
