"""Validation Groups

Groups are value-compared identity tokens that decide which constraints a
validation call activates. A constraint declared without groups belongs to
DEFAULT_GROUP, and a call without explicit groups activates only it.

Strings, Group instances and classes are accepted wherever groups are
given:

    class Create: ...

    Size(3, 20, groups=("update", Create))
    # -> frozenset({Group("update"), Group("myapp.forms.Create")})
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union


@dataclass(frozen=True, slots=True, order=True)
class Group:
    """A named validation scope."""
    name: str

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("Group name must be a non-empty string")

    def __str__(self) -> str:
        return self.name


DEFAULT_GROUP = Group("default")

GroupLike = Union[Group, str, type]


def as_group(token: GroupLike) -> Group:
    """Normalize a group token to a Group."""
    if isinstance(token, Group):
        return token
    if isinstance(token, str):
        return Group(token)
    if isinstance(token, type):
        return Group(f"{token.__module__}.{token.__qualname__}")
    raise TypeError(f"Cannot use {type(token).__name__} as a validation group")


def as_groups(tokens: GroupLike | Iterable[GroupLike] | None) -> frozenset[Group]:
    """Normalize a single token or an iterable of tokens to a frozenset of Groups.

    None and empty iterables normalize to an empty set; callers decide what
    an empty set means (usually "fall back to DEFAULT_GROUP").
    """
    if tokens is None:
        return frozenset()
    if isinstance(tokens, (Group, str, type)):
        return frozenset({as_group(tokens)})
    return frozenset(as_group(t) for t in tokens)


def intersects(declared: frozenset[Group], active: frozenset[Group]) -> bool:
    """True when a constraint declared for `declared` is active under `active`."""
    return not declared.isdisjoint(active)
