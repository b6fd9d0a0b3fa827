#!/usr/bin/env python3
"""Exception types raised by the exporter and translation workflow."""


class ExporterError(Exception):
    """Base class for every error the CLI reports to the user."""


class ConfigurationError(ExporterError):
    """Bad module path, missing resource directory or missing baseline strings."""


class ExportError(ExporterError):
    """The tabular export file could not be written."""


class DocumentWriteError(ExporterError):
    """A strings.xml file could not be updated."""


class TranslationError(ExporterError):
    """The translation service failed or returned nothing usable."""
