"""Infer outline depth from parenthetical paragraph labels.

CFR paragraphs are designated ``(a)(1)(i)(A)(1)(i)``: six levels whose label
alphabets overlap. ``(i)`` may be the ninth lowercase letter (level 1), the
first roman numeral under a numbered paragraph (level 3), or the first roman
numeral under an italic-digit paragraph (level 6). The label alone cannot say
which; only the labels seen before it in the same section can.

The classifier is therefore a fold over the section's labels. ``LevelState``
remembers the most recent label at each level and is never mutated: every
step returns a new state. Assigning level ``L`` closes all deeper open items,
so the state forgets every label below ``L``.

Label lexical classes are a closed set (``LabelClass``) and each has exactly
one rule in ``_RULES``; the rules are listed in the priority order in which
a label is classified.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

MAX_LEVEL = 6

# Single characters that are both letters and roman numerals.
AMBIGUOUS_ROMANS = frozenset({"i", "v", "x", "l", "c", "m"})


def _to_roman(number: int) -> str:
    numerals = (
        (40, "xl"),
        (10, "x"),
        (9, "ix"),
        (5, "v"),
        (4, "iv"),
        (1, "i"),
    )
    result = ""
    for value, numeral in numerals:
        while number >= value:
            result += numeral
            number -= value
    return result


# Lowercase roman numerals i..xl in rank order.
ROMAN_ORDER: tuple[str, ...] = tuple(_to_roman(n) for n in range(1, 41))
_ROMAN_RANK = {numeral: rank for rank, numeral in enumerate(ROMAN_ORDER)}


class LabelClass(str, Enum):
    """Lexical class of a label, in classification priority order."""

    UPPER = "upper"
    MULTI_ROMAN = "multi_roman"
    DIGIT = "digit"
    LOWER = "lower"
    AMBIGUOUS_ROMAN = "ambiguous_roman"
    OTHER = "other"


def classify_label(label: str) -> LabelClass:
    """Return the lexical class of a label (without parentheses)."""
    if label[:1].isupper():
        return LabelClass.UPPER
    if len(label) > 1 and label in _ROMAN_RANK:
        return LabelClass.MULTI_ROMAN
    if label.isascii() and label.isdigit():
        return LabelClass.DIGIT
    if label.isalpha() and label.islower() and label.isascii():
        if label in AMBIGUOUS_ROMANS:
            return LabelClass.AMBIGUOUS_ROMAN
        return LabelClass.LOWER
    return LabelClass.OTHER


def roman_rank(label: str | None) -> int | None:
    """Return the 0-based rank of a lowercase roman numeral, or None."""
    if label is None:
        return None
    return _ROMAN_RANK.get(label)


@dataclass(frozen=True)
class LevelState:
    """Most recent label seen at each outline level (index 1..6)."""

    labels: tuple[str | None, ...] = (None,) * (MAX_LEVEL + 1)

    def at(self, level: int) -> str | None:
        return self.labels[level]

    def advance(self, label: str, level: int) -> LevelState:
        """Record ``label`` at ``level`` and forget every deeper label."""
        labels = list(self.labels[: level + 1]) + [None] * (MAX_LEVEL - level)
        labels[level] = label
        return LevelState(tuple(labels))


def _rule_upper(label: str, state: LevelState) -> int:
    return 4


def _rule_multi_roman(label: str, state: LevelState) -> int:
    rank = _ROMAN_RANK[label]
    previous = roman_rank(state.at(6))
    if previous is not None and rank > previous:
        return 6
    previous = roman_rank(state.at(3))
    if previous is not None and rank > previous:
        return 3
    if state.at(5) or state.at(6):
        return 6
    return 3


def _rule_digit(label: str, state: LevelState) -> int:
    if state.at(5):
        return 5
    if state.at(4):
        # Known-ambiguous: after an uppercase aside, a digit either opens a
        # level-5 run or resumes the level-2 numbered list with its next item.
        if label == "1":
            return 5
        level2 = state.at(2)
        if (
            level2
            and classify_label(level2) is LabelClass.DIGIT
            and int(label) == int(level2) + 1
        ):
            return 2
        return 5
    return 2


def _rule_lower(label: str, state: LevelState) -> int:
    return 1


def _continues_level1_sequence(label: str, state: LevelState) -> bool:
    previous = state.at(1)
    if not previous or len(previous) != 1:
        return False
    if state.at(2):
        return False
    return label > previous


def _rule_ambiguous_roman(label: str, state: LevelState) -> int:
    if _continues_level1_sequence(label, state):
        return 1
    if state.at(5) and label == "i":
        return 6
    if state.at(6):
        return 6
    if state.at(3):
        return 3
    if state.at(2) and label == "i":
        return 3
    return 1


def _rule_other(label: str, state: LevelState) -> int:
    return 1


_RULES: dict[LabelClass, Callable[[str, LevelState], int]] = {
    LabelClass.UPPER: _rule_upper,
    LabelClass.MULTI_ROMAN: _rule_multi_roman,
    LabelClass.DIGIT: _rule_digit,
    LabelClass.LOWER: _rule_lower,
    LabelClass.AMBIGUOUS_ROMAN: _rule_ambiguous_roman,
    LabelClass.OTHER: _rule_other,
}


def level_for_label(label: str, state: LevelState) -> int:
    """Classify ``label`` against the section's label history.

    Args:
        label: Label text without parentheses, e.g. ``"a"``, ``"iii"``.
        state: Labels remembered so far in this section.

    Returns:
        Outline level 1..6.
    """
    return _RULES[classify_label(label)](label, state)


def step(label: str, state: LevelState) -> tuple[int, LevelState]:
    """Classify one label and return its level with the advanced state."""
    level = level_for_label(label, state)
    return level, state.advance(label, level)


def assign_levels(labels: Iterable[str]) -> list[int]:
    """Fold the classifier over a section's labels, starting from empty state."""
    state = LevelState()
    levels: list[int] = []
    for label in labels:
        level, state = step(label, state)
        levels.append(level)
    return levels
