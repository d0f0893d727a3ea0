"""Exclusion rules deciding which files are never backed up."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence


def is_excluded(abs_path: str, rules: Iterable[str | re.Pattern[str]]) -> bool:
    """True iff ``abs_path`` fully matches at least one rule.

    Args:
        abs_path: Absolute path of the candidate file.
        rules: Regular expressions, as strings or compiled patterns.
    """
    return any(re.fullmatch(rule, abs_path) for rule in rules)


class ExclusionFilter:
    """Compiled, ordered set of exclusion rules."""

    def __init__(self, rules: Sequence[str] = ()) -> None:
        self._patterns = [re.compile(rule) for rule in rules]

    @property
    def rules(self) -> list[str]:
        return [p.pattern for p in self._patterns]

    def is_excluded(self, abs_path: str) -> bool:
        return is_excluded(abs_path, self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)
