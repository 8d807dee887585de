"""Gherkin parsing.

Wraps the official Gherkin parser. Documents come back as the parser's plain
dict tree (camelCase keys)::

    {"feature": {"tags": [...], "name": ..., "description": ...,
                 "children": [{"background": ...}, {"scenario": ...},
                              {"rule": {"children": [...]}}]}}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from gherkin.errors import ParserError
from gherkin.parser import Parser
from gherkin.token_scanner import TokenScanner

GherkinDocument = dict[str, Any]


class FeatureParseError(Exception):
    """Raised when a feature file is not valid Gherkin."""

    def __init__(self, message: str, source_file: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.source_file = source_file


def parse_feature_string(content: str, source_file: str | None = None) -> GherkinDocument:
    """Parse Gherkin text into a document tree."""
    parser = Parser()
    try:
        return parser.parse(TokenScanner(content))
    except ParserError as exc:
        raise FeatureParseError(str(exc), source_file) from exc


def parse_feature_file(path: Path) -> GherkinDocument:
    """Parse a .feature file into a document tree."""
    content = path.read_text(encoding="utf-8")
    return parse_feature_string(content, source_file=str(path))
