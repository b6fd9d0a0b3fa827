from babel import Locale

import logging
import re
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "default"
VALUES_DIR = "values"
VALUES_PREFIX = "values-"

_BCP47_MARKER = "b+"
_LANGUAGE_CODE_PATTERN = re.compile(r"^[A-Za-z]{2,3}$")


def locale_from_values_dir(dir_name: str) -> Optional[str]:
    """
    Derive the locale identifier for an Android ``values`` directory.

    The qualified directory name is kept whole so that region and script
    variants sharing a language stay distinct in the table and the export.

    Examples:
      - "values"           -> "default"
      - "values-fr"        -> "values-fr"
      - "values-b+es+419"  -> "values-b+es+419"
      - "values-"          -> None
      - "res-fr"           -> None

    Args:
        dir_name: Name of the directory holding a strings.xml file

    Returns:
        The locale identifier, or None when the name is not a valid qualifier
    """
    trimmed = dir_name.strip()
    if trimmed == VALUES_DIR:
        return DEFAULT_LOCALE
    if trimmed.startswith(VALUES_PREFIX) and trimmed[len(VALUES_PREFIX):]:
        return trimmed
    return None


def extract_language_code(locale: str) -> Optional[str]:
    """
    Extract the translation service language code from a locale identifier.

    The qualifier prefix and an optional BCP 47 ``b+`` marker are removed and
    the text up to the first ``-`` or ``+`` is taken. This is a best-effort
    heuristic and not a BCP 47 parser: "values-zh-rTW" yields "zh".

    Returns:
        A lowercase two or three letter code, or None if none can be found
    """
    if not locale.startswith(VALUES_PREFIX):
        return None

    qualifier = locale[len(VALUES_PREFIX):]
    if qualifier.startswith(_BCP47_MARKER):
        qualifier = qualifier[len(_BCP47_MARKER):]

    code = re.split(r"[-+]", qualifier, maxsplit=1)[0]
    if not _LANGUAGE_CODE_PATTERN.match(code):
        logger.debug(f"No language code could be extracted from '{locale}'")
        return None
    return code.lower()


def sort_locales(locales: Iterable[str]) -> List[str]:
    """Order locales with "default" first and the rest lexicographically."""
    return sorted(set(locales), key=lambda loc: (loc != DEFAULT_LOCALE, loc))


def get_language_name(locale: str) -> str:
    """
    Get an English display name for a locale identifier using Babel.

    Accepts both the full directory form ("values-pt-rBR", "values-b+sr+Latn")
    and bare qualifiers ("pt-rBR"). Returns the original token if Babel cannot
    parse it.
    """
    if locale == DEFAULT_LOCALE:
        return "Default"

    try:
        normalized = re.sub(r"^values-", "", locale)
        normalized = re.sub(r"^b\+", "", normalized)
        normalized = re.sub(r"-r", "_", normalized)
        normalized = re.sub(r"[-+]", "_", normalized)
        return Locale.parse(normalized).get_display_name(locale="en")
    except Exception as e:
        logger.warning(f"Could not determine language name for locale '{locale}': {e}")
        return locale
