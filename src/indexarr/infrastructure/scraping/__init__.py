"""Scraping infrastructure - templates, filters and the extraction pipeline."""
from __future__ import annotations

from .filters import FILTERS, NO_MATCH, NoMatch, validate_filter
from .pipeline import (
    ExtractionContext,
    Pipeline,
    compile_block,
    compile_fields,
    extract_items,
    split_rows,
)
from .templates import TemplateSyntaxError, expand, expand_url, validate_template

__all__ = [
    "FILTERS",
    "NO_MATCH",
    "ExtractionContext",
    "NoMatch",
    "Pipeline",
    "TemplateSyntaxError",
    "compile_block",
    "compile_fields",
    "expand",
    "expand_url",
    "extract_items",
    "split_rows",
    "validate_filter",
    "validate_template",
]
