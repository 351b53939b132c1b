"""
Named predicates for eventually() and consistently().

Each condition carries a description that completes the sentence
"expected <probe> to ..." in assertion failures.
"""

from __future__ import annotations

from typing import Any, Callable


class Condition:
    __slots__ = ("_predicate", "description")

    def __init__(
        self,
        predicate: Callable[[Any], bool],
        description: str,
    ) -> None:
        self._predicate = predicate
        self.description = description

    def __call__(self, value: Any) -> bool:
        return bool(self._predicate(value))

    def __repr__(self) -> str:
        return f"Condition({self.description!r})"


def equal(expected: Any) -> Condition:
    return Condition(
        lambda value: value == expected,
        f"equal {expected!r}",
    )


def contains(item: Any) -> Condition:
    return Condition(
        lambda value: item in value,
        f"contain {item!r}",
    )


def has_length(length: int) -> Condition:
    return Condition(
        lambda value: len(value) == length,
        f"have length {length}",
    )


def is_true() -> Condition:
    return Condition(bool, "be truthy")


def satisfies(
    predicate: Callable[[Any], bool],
    description: str | None = None,
) -> Condition:
    if description is None:
        description = getattr(predicate, "__name__", "predicate")

    return Condition(predicate, f"satisfy {description}")


def negate(condition: Condition) -> Condition:
    return Condition(
        lambda value: not condition(value),
        f"not {condition.description}",
    )


def as_condition(condition: Condition | Callable[[Any], bool] | None) -> Condition:
    if condition is None:
        return is_true()

    if isinstance(condition, Condition):
        return condition

    return satisfies(condition)
