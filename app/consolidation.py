#!/usr/bin/env python3
"""
Consolidated key x locale view of a module's string resources and the
missing-translation analysis built on top of it.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Set

from errors import ConfigurationError
from locale_utils import (
    DEFAULT_LOCALE,
    extract_language_code,
    get_language_name,
    sort_locales,
)

logger = logging.getLogger(__name__)


class ConsolidationTable:
    """
    Mapping of resource key -> locale -> string value for one module.

    A cell that is absent means "not translated"; an empty string is a real
    value. Every locale used in a row is part of ``locales``. The table is
    filled by the resource collector and by translation write-back only.
    """

    def __init__(self) -> None:
        self._rows: Dict[str, Dict[str, str]] = {}
        self._locales: Set[str] = set()
        self._documents: Dict[str, Path] = {}
        self._untranslatable: Set[str] = set()

    def __contains__(self, key: str) -> bool:
        return key in self._rows

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._rows))

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def locales(self) -> frozenset:
        return frozenset(self._locales)

    @property
    def documents(self) -> Mapping[str, Path]:
        return MappingProxyType(self._documents)

    @property
    def untranslatable(self) -> frozenset:
        return frozenset(self._untranslatable)

    def keys(self) -> List[str]:
        return sorted(self._rows)

    def sorted_locales(self) -> List[str]:
        return sort_locales(self._locales)

    def get(self, key: str) -> Mapping[str, str]:
        """Return a read-only view of the values recorded for ``key``."""
        return MappingProxyType(self._rows.get(key, {}))

    def value(self, key: str, locale: str) -> Optional[str]:
        return self._rows.get(key, {}).get(locale)

    def entries_for(self, locale: str) -> Dict[str, str]:
        """Return key -> value for every key that has a cell in ``locale``."""
        return {
            key: values[locale]
            for key, values in sorted(self._rows.items())
            if locale in values
        }

    def add_document(self, locale: str, document: Path, entries: Iterable) -> int:
        """
        Merge the entries of one strings.xml file into the table.

        ``entries`` yields ``(name, value)`` pairs or ``StringEntry`` tuples.
        Entries with an empty key or a missing value are skipped.

        Returns:
            The number of entries recorded
        """
        self._locales.add(locale)
        self._documents[locale] = Path(document)

        count = 0
        for entry in entries:
            name, value = entry[0], entry[1]
            if not name or value is None:
                logger.debug(f"Skipping malformed entry in {document}")
                continue
            self.record(name, locale, value)
            if (
                locale == DEFAULT_LOCALE
                and len(entry) > 2
                and not entry[2]
            ):
                self._untranslatable.add(name)
            count += 1
        return count

    def record(self, key: str, locale: str, value: str) -> None:
        """Store one cell, registering the locale if it is new."""
        if not key:
            raise ValueError("Resource key must not be empty")
        if value is None:
            raise ValueError(f"Value for '{key}' in '{locale}' must not be None")
        self._locales.add(locale)
        self._rows.setdefault(key, {})[locale] = value


@dataclass(frozen=True)
class TranslationGap:
    """A baseline string that has no value in one target locale."""

    key: str
    source_value: str
    target_locale: str
    language_code: str
    document: Optional[Path]


def find_translation_gaps(
    table: ConsolidationTable,
    baseline: str = DEFAULT_LOCALE,
    include_untranslatable: bool = False,
) -> List[TranslationGap]:
    """
    Find every (key, locale) pair present in the baseline but missing elsewhere.

    Only locales that had at least one document become targets. Gaps are
    ordered by key, then by locale order (default first, then lexicographic).
    Locales without an extractable language code are skipped with a warning.

    Args:
        table: The consolidated table of the module
        baseline: Locale whose keys define what is expected
        include_untranslatable: Also report keys marked translatable="false"

    Returns:
        The list of gaps, possibly empty

    Raises:
        ConfigurationError: If the baseline locale has no strings at all
    """
    baseline_values = table.entries_for(baseline)
    if not baseline_values:
        raise ConfigurationError(
            f"No {baseline} strings.xml found or it is empty; cannot determine missing translations."
        )

    targets: List[str] = []
    language_codes: Dict[str, str] = {}
    for locale in table.sorted_locales():
        if locale == baseline:
            continue
        code = extract_language_code(locale)
        if code is None:
            logger.warning(
                f"Skipping locale '{locale}': no language code can be derived from it"
            )
            continue
        targets.append(locale)
        language_codes[locale] = code

    gaps: List[TranslationGap] = []
    for key, source_value in baseline_values.items():
        if not include_untranslatable and key in table.untranslatable:
            continue
        translated = table.get(key)
        for locale in targets:
            if locale in translated:
                continue
            gaps.append(
                TranslationGap(
                    key=key,
                    source_value=source_value,
                    target_locale=locale,
                    language_code=language_codes[locale],
                    document=table.documents.get(locale),
                )
            )

    logger.debug(f"Found {len(gaps)} missing translations across {len(targets)} locales")
    return gaps


def summarize_gaps(gaps: List[TranslationGap]) -> str:
    """Build the confirmation text listing every string that will be translated."""
    lines = ["The following strings will be translated:", ""]
    for gap in gaps:
        lines.append(f"Key: {gap.key}")
        lines.append(f"  Default Value: {gap.source_value}")
        lines.append(
            f"  Target Language: {gap.target_locale} ({gap.language_code}, "
            f"{get_language_name(gap.target_locale)})"
        )
        lines.append("")
    lines.append(
        f"Proceed with the translation of {len(gaps)} strings? (Translation may incur costs)"
    )
    return "\n".join(lines)


def format_missing_report(gaps: List[TranslationGap]) -> List[str]:
    """Group gaps by locale into one log line per locale."""
    by_locale: Dict[str, List[str]] = {}
    for gap in gaps:
        by_locale.setdefault(gap.target_locale, []).append(gap.key)

    return [
        f"  [{locale}]: missing strings: {', '.join(by_locale[locale])}"
        for locale in sort_locales(by_locale)
    ]
