"""Needles: named groups of search patterns carrying a usage weight."""
import re
from dataclasses import dataclass, field, replace
from functools import cached_property
from typing import Iterable, Tuple

from .errors import InvalidNeedle


# Corpora a needle can be matched against
TARGET_CONTENTS = 'contents'
TARGET_PATH = 'path'
TARGETS = (TARGET_CONTENTS, TARGET_PATH)


def quoted(literal: str) -> str:
    """Pattern matching ``literal`` inside single or double quotes."""
    return r"""['"]""" + re.escape(literal) + r"""['"]"""


def unique(fragments: Iterable[str]) -> Tuple[str, ...]:
    """Drop repeated fragments, keeping first-seen order."""
    return tuple(dict.fromkeys(fragments))


@dataclass(frozen=True)
class Needle:
    """A named set of patterns and the usage weight they carry.

    Any pattern matching at least once in a file adds ``weight`` to the
    entity's usage score for that file. Weights may be negative.
    """
    name: str
    patterns: Tuple[str, ...]
    weight: int = 1
    target: str = TARGET_CONTENTS
    description: str = field(default='', compare=False)

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidNeedle(f"Needle name must be a non-empty string, got {self.name!r}")

        patterns = self.patterns
        if isinstance(patterns, str):
            patterns = (patterns,)
        try:
            patterns = tuple(patterns)
        except TypeError:
            raise InvalidNeedle(f"Needle '{self.name}' patterns must be a sequence of strings") from None

        if not patterns:
            raise InvalidNeedle(f"Needle '{self.name}' has no patterns")
        for fragment in patterns:
            if not isinstance(fragment, str):
                raise InvalidNeedle(
                    f"Needle '{self.name}' contains a non-string pattern: {fragment!r}"
                )
            if not fragment:
                raise InvalidNeedle(f"Needle '{self.name}' contains an empty pattern")

        # bool is an int subclass but never a meaningful weight
        if isinstance(self.weight, bool) or not isinstance(self.weight, int):
            raise InvalidNeedle(f"Needle '{self.name}' weight must be an integer, got {self.weight!r}")
        if self.target not in TARGETS:
            raise InvalidNeedle(
                f"Needle '{self.name}' target must be one of {TARGETS}, got {self.target!r}"
            )

        object.__setattr__(self, 'patterns', unique(patterns))

    @cached_property
    def regex(self) -> re.Pattern:
        """Compiled alternation of this needle's own patterns."""
        return re.compile('|'.join(self.patterns))

    def matches(self, text: str) -> bool:
        return self.regex.search(text) is not None

    def with_patterns(self, *extra: str) -> 'Needle':
        """Return a copy with ``extra`` fragments appended."""
        return replace(self, patterns=self.patterns + tuple(extra))

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'patterns': list(self.patterns),
            'weight': self.weight,
            'target': self.target,
        }
