"""
Ingestion Module
================
Resolves source references (URL or local PDF) for conversion.
"""

from .source import ResolvedSource, resolve_source, validate_pdf

__all__ = ["ResolvedSource", "resolve_source", "validate_pdf"]
