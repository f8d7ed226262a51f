"""
Action plan data model.

The only action kind is ``TOGGLE``; there is no submit, confirm or finalize
primitive to construct. An ``ActionPlan`` also refuses, at construction, any
action whose target was not classified as a checkbox.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Tuple

from .classifier import ControlRole
from .driver.exceptions import UnsafeActionError
from .enumerator import Rect
from .template import TemplateEntry


class ActionKind(str, enum.Enum):
    TOGGLE = "toggle"


@dataclass(frozen=True, slots=True)
class ToggleAction:
    entry: TemplateEntry
    target_handle: int
    expected_prior_state: bool
    role: ControlRole
    class_name: str
    rect: Rect
    kind: ActionKind = field(default=ActionKind.TOGGLE, init=False)

    @property
    def desired_state(self) -> bool:
        return not self.expected_prior_state


class ActionPlan:
    """Ordered, immutable sequence of toggle actions."""

    __slots__ = ("_actions",)

    def __init__(self, actions: Iterable[ToggleAction] = ()) -> None:
        checked = tuple(actions)
        for action in checked:
            if action.kind is not ActionKind.TOGGLE:
                raise UnsafeActionError(f"Unsupported action kind {action.kind!r}")
            if action.role is ControlRole.BUTTON or action.role is not ControlRole.CHECKBOX:
                raise UnsafeActionError(
                    f"Refusing to plan an action against {action.class_name} ({action.role.value})"
                )
        self._actions: Tuple[ToggleAction, ...] = checked

    def __iter__(self) -> Iterator[ToggleAction]:
        return iter(self._actions)

    def __len__(self) -> int:
        return len(self._actions)

    def __bool__(self) -> bool:
        return bool(self._actions)

    @property
    def actions(self) -> Tuple[ToggleAction, ...]:
        return self._actions
