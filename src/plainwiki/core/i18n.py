"""Translation catalogs and language negotiation.

Catalogs live in ``plainwiki/locales/<code>.yaml`` and map message keys to
``str.format`` templates. A plural message is a mapping of plural category
(``one``, ``few``, ``many``, ``other``) to template.
"""

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from babel import Locale, UnknownLocaleError
from werkzeug.datastructures import LanguageAccept
from werkzeug.http import parse_accept_header

logger = logging.getLogger(__name__)

LOCALES_PATH = Path(__file__).parent.parent / "locales"
FALLBACK_LANGUAGE = "en"


@lru_cache(maxsize=None)
def load_catalog(language: str) -> dict:
    """Load the catalog for a language. Unknown languages give an empty one."""
    path = LOCALES_PATH / f"{language}.yaml"
    if not path.is_file():
        return {}
    try:
        with path.open(encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        logger.exception("Cannot load translation catalog %s", path)
        return {}


def available_languages() -> list[str]:
    """Language codes that have a catalog, sorted."""
    return sorted(p.stem for p in LOCALES_PATH.glob("*.yaml"))


def plural_category(language: str, n: int) -> str:
    """CLDR plural category of n in a language (English rules if unknown)."""
    try:
        locale = Locale.parse(language)
    except (UnknownLocaleError, ValueError):
        locale = Locale.parse(FALLBACK_LANGUAGE)
    return locale.plural_form(n)


def _lookup(language: str, key: str) -> str | dict | None:
    message = load_catalog(language).get(key)
    if message is None and language != FALLBACK_LANGUAGE:
        message = load_catalog(FALLBACK_LANGUAGE).get(key)
    return message


def translate(language: str, key: str, n: int | None = None, **params) -> str:
    """Translate a message key, falling back to English, then to the key.

    Args:
        language: Language code.
        key: Message key.
        n: Count selecting the plural form; also available as ``{n}``.
        **params: Values substituted into the message.
    """
    message = _lookup(language, key)
    if message is None:
        return key
    if isinstance(message, dict):
        count = n if n is not None else 0
        message = message.get(plural_category(language, count)) or message.get(
            "other", key
        )
        params["n"] = count
    try:
        return str(message).format(**params)
    except (KeyError, IndexError, ValueError):
        logger.warning("Bad parameters for message %r in %r", key, language)
        return str(message)


def negotiate_language(
    accept_language: str | None, available: list[str], default: str
) -> str:
    """Pick the best available language for an Accept-Language header.

    Quality values are honoured and a regional tag such as ``ru-RU`` falls
    back to its primary language.
    """
    if not accept_language:
        return default
    accepted = parse_accept_header(accept_language, LanguageAccept)
    return accepted.best_match(available, default=default)
