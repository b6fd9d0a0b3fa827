#!/usr/bin/env python3
"""
Translate missing strings and write the results back into strings.xml files.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from consolidation import ConsolidationTable, TranslationGap, summarize_gaps
from errors import DocumentWriteError, TranslationError
from locale_utils import get_language_name
from resource_document import AndroidStringsDocument
from string_utils import escape_android_text
from translation_backends import Translator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppliedTranslation:
    gap: TranslationGap
    translation: str


@dataclass
class ReconciliationResult:
    applied: List[AppliedTranslation] = field(default_factory=list)
    failed: List[Tuple[TranslationGap, str]] = field(default_factory=list)
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.cancelled and not self.failed


class TranslationReconciler:
    """
    Drive translation of a gap list and apply each result to its document.

    ``confirm`` receives the human readable summary of every pending
    translation and must return True to proceed. Declining aborts the whole
    batch before any service call or file write. Once started, a failing gap
    is recorded and skipped; translations already written stay in place.
    """

    def __init__(
        self,
        translator: Translator,
        confirm: Callable[[str], bool],
        table: Optional[ConsolidationTable] = None,
        document_factory: Callable = AndroidStringsDocument,
    ) -> None:
        self.translator = translator
        self.confirm = confirm
        self.table = table
        self.document_factory = document_factory

    def reconcile(self, gaps: List[TranslationGap]) -> ReconciliationResult:
        result = ReconciliationResult()

        if not gaps:
            logger.info("No missing strings found for translation.")
            return result

        if not self.confirm(summarize_gaps(gaps)):
            logger.info("Translation cancelled by user.")
            result.cancelled = True
            return result

        logger.info(f"Translating {len(gaps)} missing strings using {self.translator.name}")
        for gap in gaps:
            try:
                translation = self._apply(gap)
            except (TranslationError, DocumentWriteError) as e:
                logger.error(
                    f"Failed to translate '{gap.key}' into {gap.target_locale}: {e}"
                )
                result.failed.append((gap, str(e)))
                continue
            result.applied.append(AppliedTranslation(gap, translation))

        logger.info(
            f"Translation process completed: {len(result.applied)} applied, "
            f"{len(result.failed)} failed"
        )
        return result

    def _apply(self, gap: TranslationGap) -> str:
        if gap.document is None:
            raise DocumentWriteError(f"No strings.xml known for locale '{gap.target_locale}'")

        if gap.source_value.strip():
            translated = self.translator.translate(gap.source_value, gap.language_code)
            translation = escape_android_text(translated)
        else:
            translation = ""

        self.document_factory(gap.document).upsert(gap.key, translation)
        if self.table is not None:
            self.table.record(gap.key, gap.target_locale, translation)

        logger.info(
            f"Translated string '{gap.key}' to {gap.target_locale}: "
            f"'{gap.source_value}' -> '{translation}'"
        )
        return translation


def create_translation_report(result: ReconciliationResult, module_name: str) -> str:
    """
    Generate a Markdown formatted translation report as a string.
    """
    report = "# Translation Report\n\n"

    if result.cancelled:
        return report + "Translation was cancelled; no files were changed."

    if not result.applied and not result.failed:
        return report + "No translations were performed."

    report += f"## Module: {module_name}\n\n"

    by_locale: Dict[str, List[AppliedTranslation]] = {}
    for applied in result.applied:
        by_locale.setdefault(applied.gap.target_locale, []).append(applied)

    for locale in sorted(by_locale):
        report += f"### Language: {get_language_name(locale)} ({locale})\n\n"
        report += "| Key | Source Text | Translated Text |\n"
        report += "| --- | ----------- | --------------- |\n"
        for applied in by_locale[locale]:
            source = applied.gap.source_value.replace("\n", " ")
            translation = applied.translation.replace("\n", " ")
            report += f"| {applied.gap.key} | {source} | {translation} |\n"
        report += "\n"

    if result.failed:
        report += "### Failed Translations\n\n"
        report += "| Key | Locale | Error |\n"
        report += "| --- | ------ | ----- |\n"
        for gap, reason in result.failed:
            report += f"| {gap.key} | {gap.target_locale} | {reason.replace(chr(10), ' ')} |\n"
        report += "\n"

    return report
