#!/usr/bin/env python3
"""
Android Strings Exporter

This script consolidates the strings.xml files of an Android module into a
single key x locale table. The table can be exported to CSV or XLSX, or used
to find missing translations, machine-translate them and write the results
back into the matching values-XX/strings.xml files.
"""

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from lxml import etree

from consolidation import (
    ConsolidationTable,
    find_translation_gaps,
    format_missing_report,
)
from errors import ConfigurationError, ExporterError
from locale_utils import DEFAULT_LOCALE, VALUES_DIR, locale_from_values_dir
from reconciler import TranslationReconciler, create_translation_report
from resource_document import STRINGS_FILE_NAME, AndroidStringsDocument
from table_exporter import EXPORT_FORMATS, export_table
from translation_backends import BACKENDS, DEFAULT_LOCATION, create_translator

# Resource directories tried in order, relative to the module root
RESOURCE_ROOT_CANDIDATES = (
    "res",
    "src/main/res",
    "src/debug/res",
    "src/release/res",
)

DEFAULT_LLM_MODEL = "gpt-4o-mini"
GITHUB_REPORT_DELIMITER = "EOF_TRANSLATION_REPORT_4b1f0c2e"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PARTIAL = 2

# ------------------------------------------------------------------------------
# Logger Setup
# ------------------------------------------------------------------------------

logger = logging.getLogger(__name__)


def configure_logging(trace: bool) -> None:
    """Configure logging to the console."""
    log_level = logging.DEBUG if trace else logging.INFO
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")

    # Configure the root logger so every module shares the same handlers/level.
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    else:
        for existing_handler in root_logger.handlers:
            existing_handler.setFormatter(formatter)

    logger.setLevel(log_level)

    # Suppress noisy debug logs from HTTP client/SDK libraries unless they escalate.
    for name in ["openai", "httpx", "httpcore", "urllib3", "google", "grpc"]:
        logging.getLogger(name).setLevel(logging.WARNING)


# ------------------------------------------------------------------------------
# Resource Collection
# ------------------------------------------------------------------------------


def find_resource_root(module_path: str) -> Path:
    """
    Locate the Android ``res`` directory of a module.

    The candidates in RESOURCE_ROOT_CANDIDATES are tried in order and the
    first existing directory wins.

    Raises:
        ConfigurationError: If the module path is invalid or no candidate exists
    """
    if not module_path:
        raise ConfigurationError("Please select a module directory.")

    module_root = Path(module_path)
    if not module_root.is_dir():
        raise ConfigurationError(f"Invalid module directory: {module_path}")

    tried = []
    for candidate in RESOURCE_ROOT_CANDIDATES:
        res_dir = module_root / candidate
        if res_dir.is_dir():
            logger.debug(f"Using resource directory {res_dir}")
            return res_dir
        tried.append(str(res_dir))

    raise ConfigurationError(
        f"Could not find any 'res' directory in module: {module_path}. Tried: {', '.join(tried)}"
    )


def collect_resources(
    module_path: str, table: Optional[ConsolidationTable] = None
) -> ConsolidationTable:
    """
    Build the consolidated string table of a module.

    Every ``values`` / ``values-XX`` directory directly below the resource
    root that holds a strings.xml file contributes one locale. Directories
    with an invalid qualifier or without strings.xml are skipped, as are
    locale files that cannot be parsed.

    Args:
        module_path: Path to the Android module root
        table: Optional table to accumulate into

    Returns:
        The filled ConsolidationTable

    Raises:
        ConfigurationError: If no resource directory or no strings.xml is found,
            or the default strings.xml cannot be parsed
    """
    res_dir = find_resource_root(module_path)
    table = table if table is not None else ConsolidationTable()
    logger.info(f"Scanning for resource files in {res_dir}")

    documents = 0
    for values_dir in sorted(res_dir.iterdir()):
        if not values_dir.is_dir() or not values_dir.name.startswith(VALUES_DIR):
            continue

        locale = locale_from_values_dir(values_dir.name)
        if locale is None:
            logger.debug(f"Skipping {values_dir}: not a valid locale qualifier")
            continue

        strings_xml = values_dir / STRINGS_FILE_NAME
        if not strings_xml.is_file():
            logger.debug(f"Skipping {values_dir}: no {STRINGS_FILE_NAME}")
            continue

        try:
            entries = AndroidStringsDocument(strings_xml).read_entries()
        except (OSError, etree.XMLSyntaxError) as e:
            if locale == DEFAULT_LOCALE:
                raise ConfigurationError(f"Error parsing {strings_xml}: {e}") from e
            logger.error(f"Error parsing {strings_xml}, skipping [{locale}]: {e}")
            continue

        count = table.add_document(locale, strings_xml, entries)
        documents += 1
        logger.debug(f"[{locale}] {strings_xml} | Strings: {count}")

    if documents == 0:
        raise ConfigurationError(
            f"No {STRINGS_FILE_NAME} files found in values directories of {res_dir}"
        )

    logger.info(
        f"Found {documents} resource files with {len(table)} keys in {len(table.locales)} locales"
    )
    return table


# ------------------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------------------


@dataclass
class RunConfig:
    """
    Options of one invocation, gathered from the command line and environment.
    """

    command: str
    module_path: str
    module_name: Optional[str] = None
    log_trace: bool = False
    # export
    export_dir: Optional[str] = None
    export_format: str = "xlsx"
    # translate
    backend: str = "google-cloud"
    project_id: Optional[str] = None
    location: str = DEFAULT_LOCATION
    api_key: Optional[str] = None
    model: str = DEFAULT_LLM_MODEL
    project_context: str = ""
    site_url: Optional[str] = None
    site_name: Optional[str] = None
    assume_yes: bool = False
    dry_run: bool = False
    include_untranslatable: bool = False

    def __post_init__(self):
        if self.command not in ("export", "translate"):
            raise ValueError(f"Unknown command '{self.command}'")
        if self.export_format not in EXPORT_FORMATS:
            raise ValueError(f"Unknown export format '{self.export_format}'")
        if not self.module_name and self.module_path:
            self.module_name = Path(self.module_path).resolve().name

    @property
    def credentials_env_var(self) -> str:
        return {
            "google-cloud": "GOOGLE_CLOUD_PROJECT",
            "google-api-key": "GOOGLE_TRANSLATE_API_KEY",
            "openai": "OPENAI_API_KEY",
            "openrouter": "OPENROUTER_API_KEY",
        }[self.backend]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Android Strings Exporter")
    parser.add_argument(
        "-l",
        "--log-trace",
        action="store_true",
        help="Log detailed trace information",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("module_path", help="Path to the Android module directory")
    common.add_argument(
        "--module-name",
        default=None,
        help="Name used in the export and report (default: module directory name)",
    )

    export_parser = subparsers.add_parser(
        "export", parents=[common], help="Export all strings to a CSV or XLSX file"
    )
    export_parser.add_argument(
        "-o", "--export-dir", required=True, help="Directory for the exported file"
    )
    export_parser.add_argument(
        "-f",
        "--format",
        dest="export_format",
        choices=EXPORT_FORMATS,
        default="xlsx",
        help="Export file format (default: xlsx)",
    )

    translate_parser = subparsers.add_parser(
        "translate", parents=[common], help="Translate missing strings"
    )
    translate_parser.add_argument(
        "--backend",
        choices=BACKENDS,
        default="google-cloud",
        help="Translation service to use (default: google-cloud)",
    )
    translate_parser.add_argument(
        "--project-id",
        default=None,
        help="Google Cloud project id (Application Default Credentials)",
    )
    translate_parser.add_argument(
        "--location",
        default=DEFAULT_LOCATION,
        help=f"Google Cloud Translation location (default: {DEFAULT_LOCATION})",
    )
    translate_parser.add_argument(
        "--api-key",
        default=None,
        help="API key for the google-api-key, openai or openrouter backends",
    )
    translate_parser.add_argument(
        "--model",
        default=DEFAULT_LLM_MODEL,
        help=f"Model for the openai/openrouter backends (default: {DEFAULT_LLM_MODEL})",
    )
    translate_parser.add_argument(
        "--project-context",
        default="",
        help="Additional project context for LLM translation prompts",
    )
    translate_parser.add_argument(
        "--site-url",
        default=None,
        help="Site URL sent to OpenRouter (HTTP-Referer header)",
    )
    translate_parser.add_argument(
        "--site-name",
        default=None,
        help="Site name sent to OpenRouter (X-Title header)",
    )
    translate_parser.add_argument(
        "-y",
        "--yes",
        dest="assume_yes",
        action="store_true",
        help="Do not ask for confirmation before translating",
    )
    translate_parser.add_argument(
        "-d",
        "--dry-run",
        action="store_true",
        help="Only report missing translations without translating",
    )
    translate_parser.add_argument(
        "--include-untranslatable",
        action="store_true",
        help='Also translate strings marked translatable="false"',
    )
    return parser


def config_from_args(argv: Optional[List[str]] = None) -> RunConfig:
    """Parse command-line arguments, filling credentials from the environment."""
    args = build_parser().parse_args(argv)

    if args.command == "export":
        return RunConfig(
            command="export",
            module_path=args.module_path,
            module_name=args.module_name,
            log_trace=args.log_trace,
            export_dir=args.export_dir,
            export_format=args.export_format,
        )

    config = RunConfig(
        command="translate",
        module_path=args.module_path,
        module_name=args.module_name,
        log_trace=args.log_trace,
        backend=args.backend,
        project_id=args.project_id,
        location=args.location,
        api_key=args.api_key,
        model=args.model,
        project_context=args.project_context,
        site_url=args.site_url,
        site_name=args.site_name,
        assume_yes=args.assume_yes,
        dry_run=args.dry_run,
        include_untranslatable=args.include_untranslatable,
    )
    if config.backend == "google-cloud":
        config.project_id = config.project_id or os.environ.get(config.credentials_env_var)
    else:
        config.api_key = config.api_key or os.environ.get(config.credentials_env_var)
    return config


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------


def prompt_confirmation(summary: str) -> bool:
    """Show the pending translations and ask the user on the terminal."""
    print(summary)
    try:
        answer = input("Proceed? [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def run_export(config: RunConfig) -> int:
    table = collect_resources(config.module_path)
    export_table(
        table,
        config.export_dir,
        config.module_name,
        fmt=config.export_format,
    )
    return EXIT_OK


def run_translate(config: RunConfig, confirm=None, translator=None) -> int:
    table = collect_resources(config.module_path)
    gaps = find_translation_gaps(
        table, include_untranslatable=config.include_untranslatable
    )

    logger.info("Missing Translations Report")
    if not gaps:
        logger.info("All translations are complete.")
        return EXIT_OK
    for line in format_missing_report(gaps):
        logger.info(line)

    if config.dry_run:
        return EXIT_OK

    if translator is None:
        if config.backend == "google-cloud" and not config.project_id:
            raise ConfigurationError(
                "Please enter your Google Cloud Project ID "
                f"(--project-id or {config.credentials_env_var})."
            )
        if config.backend != "google-cloud" and not config.api_key:
            raise ConfigurationError(
                f"API key not found! Pass --api-key or set {config.credentials_env_var}."
            )
        translator = create_translator(
            config.backend,
            project_id=config.project_id,
            location=config.location,
            api_key=config.api_key,
            model=config.model,
            project_context=config.project_context,
            site_url=config.site_url,
            site_name=config.site_name,
        )

    if confirm is None:
        confirm = (lambda summary: True) if config.assume_yes else prompt_confirmation

    reconciler = TranslationReconciler(translator, confirm, table=table)
    result = reconciler.reconcile(gaps)

    report_output = create_translation_report(result, config.module_name)
    if "GITHUB_OUTPUT" in os.environ:
        with open(os.environ["GITHUB_OUTPUT"], "a", encoding="utf-8") as f:
            print(f"translation_report<<{GITHUB_REPORT_DELIMITER}", file=f)
            print(report_output, file=f)
            print(GITHUB_REPORT_DELIMITER, file=f)
    else:
        print("\nTranslation Report:")
        print(report_output)

    return EXIT_PARTIAL if result.failed else EXIT_OK


# ------------------------------------------------------------------------------
# Main Entry Point
# ------------------------------------------------------------------------------


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point. Parses the command line, then runs the export or the
    translation of missing strings.
    """
    config = config_from_args(argv)
    configure_logging(config.log_trace)

    # Don't log the config object because it may carry the API key
    logger.info(
        f"Running '{config.command}' for module '{config.module_name}' at {config.module_path}"
    )

    try:
        if config.command == "export":
            return run_export(config)
        return run_translate(config)
    except ExporterError as e:
        logger.error(f"Error: {e}")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
