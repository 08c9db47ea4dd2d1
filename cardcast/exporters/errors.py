"""Errors raised while rendering report exports."""

from __future__ import annotations


class ExportError(Exception):
    """Base class for export failures."""


class TemplateError(ExportError):
    """Raised when a template fails to compile or execute."""

    @classmethod
    def from_exception(cls, source: str, exc: Exception) -> TemplateError:
        """Wrap a Jinja or helper failure raised while rendering ``source``."""
        preview = source if len(source) <= 60 else f"{source[:57]}..."  # noqa: PLR2004
        return cls(f"template {preview!r} failed: {exc}")


class UnsupportedFormatError(ExportError):
    """Raised for an export format no renderer handles."""

    def __init__(self, export_format: str) -> None:
        """Initialise with the offending format tag."""
        self.export_format = export_format
        super().__init__(f"unsupported export format: {export_format!r}")


class RenderError(ExportError):
    """Raised when a binary renderer (XLSX, PNG, PDF) fails."""

    def __init__(self, export_format: str, detail: str) -> None:
        """Initialise with the format being rendered and a failure detail."""
        self.export_format = export_format
        super().__init__(f"{export_format} rendering failed: {detail}")
