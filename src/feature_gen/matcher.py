"""Step pattern matching.

Patterns are literal text with ``{name}`` placeholders. A placeholder accepts
either a double-quoted phrase or a single whitespace-free token, so
``I have an account named {account}`` matches::

    I have an account named Savings
    I have an account named "Ski Village"

but not ``I have an account named Ski Village``.
"""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import Iterable

from feature_gen.models import MatchResult, StepDefinition

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{[^}]+\}")
CAPTURE = r'("[^"]*"|\S+)'


@functools.lru_cache(maxsize=None)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Build the anchored, case-insensitive matcher for a step pattern."""
    literals = PLACEHOLDER.split(pattern)
    body = CAPTURE.join(re.escape(part) for part in literals)
    return re.compile(rf"^{body}$", re.IGNORECASE)


def unquote(value: str) -> str:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


class StepPatternMatcher:
    """Finds the step definition for a (keyword, text) pair.

    The catalog is never modified, so one matcher can serve every feature
    file in a run.
    """

    def __init__(self, catalog: Iterable[StepDefinition]) -> None:
        self.catalog = tuple(catalog)

    def _candidates(self, keyword: str) -> list[StepDefinition]:
        wanted = keyword.casefold()
        return [d for d in self.catalog if d.keyword.casefold() == wanted]

    def match(self, keyword: str, text: str) -> StepDefinition | None:
        """Return the first definition matching *text*, or None.

        Zero-parameter definitions are tried first and need exact
        (case-insensitive) equality; definitions with parameters are tried
        next against their placeholder matcher. Registration order breaks ties.
        """
        candidates = self._candidates(keyword)
        folded = text.casefold()
        for candidate in candidates:
            if not candidate.parameters and candidate.pattern.casefold() == folded:
                return candidate
        for candidate in candidates:
            if candidate.parameters and compile_pattern(candidate.pattern).match(text):
                return candidate
        return None

    def match_all(self, keyword: str, text: str) -> list[StepDefinition]:
        """Return every definition that would match, in lookup order."""
        candidates = self._candidates(keyword)
        folded = text.casefold()
        exact = [
            c for c in candidates
            if not c.parameters and c.pattern.casefold() == folded
        ]
        templated = [
            c for c in candidates
            if c.parameters and compile_pattern(c.pattern).match(text)
        ]
        return exact + templated

    def extract_arguments(self, definition: StepDefinition, text: str) -> list[str]:
        """Return the placeholder values of *text*, quotes stripped."""
        m = compile_pattern(definition.pattern).match(text)
        if m is None:
            return []
        return [unquote(value) for value in m.groups()]

    def resolve(self, keyword: str, text: str) -> MatchResult | None:
        """Match and extract in one call."""
        definition = self.match(keyword, text)
        if definition is None:
            return None
        if logger.isEnabledFor(logging.DEBUG):
            matches = self.match_all(keyword, text)
            if len(matches) > 1:
                others = ", ".join(f"{d.owner}.{d.method}" for d in matches[1:])
                logger.debug(
                    "Ambiguous step '%s %s': using %s.%s, also matches %s",
                    keyword, text, definition.owner, definition.method, others,
                )
        return MatchResult(
            definition=definition,
            arguments=tuple(self.extract_arguments(definition, text)),
        )
