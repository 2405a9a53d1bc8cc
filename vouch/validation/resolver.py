"""Active Group Resolution

Decides which groups a validation call activates for one element, so
callers can scope validation (create vs. update) without re-declaring
constraints per scenario.
"""
from __future__ import annotations

from typing import Iterable

from .groups import DEFAULT_GROUP, Group, GroupLike, as_groups
from .markers import Marker, Valid, Validated
from .metadata import ElementRef

_DEFAULT = frozenset({DEFAULT_GROUP})


def _groups_of(markers: Iterable[Marker], marker_type: type[Marker]) -> frozenset[Group]:
    groups: frozenset[Group] = frozenset()
    for marker in markers:
        if isinstance(marker, marker_type):
            groups |= marker.groups
    return groups


class GroupResolver:
    """Computes the active group set for an element, first match wins:

    1. the caller's explicit groups
    2. groups on the element's own Valid marker
    3. groups on the cascade source's Validated marker (the declared class
       of a field, the callable owning a parameter or return slot)
    4. groups on a Validated marker attached to the element, else DEFAULT_GROUP
    """

    def active_groups(
        self,
        element: ElementRef,
        source_markers: Iterable[Marker] = (),
        override: Iterable[GroupLike] | GroupLike | None = None,
    ) -> frozenset[Group]:
        if override is not None:
            return self.explicit(override)
        if groups := _groups_of(element.markers, Valid):
            return groups
        if groups := _groups_of(source_markers, Validated):
            return groups
        return _groups_of(element.markers, Validated) or _DEFAULT

    @staticmethod
    def explicit(groups: Iterable[GroupLike] | GroupLike | None) -> frozenset[Group]:
        """Normalize caller-supplied groups; none or empty means DEFAULT_GROUP."""
        return as_groups(groups) or _DEFAULT
