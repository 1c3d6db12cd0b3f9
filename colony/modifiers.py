"""Stat modifiers bought through upgrades and their resolution rules."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple


class ModifierScope(Enum):
    """Which entities a modifier reaches.

    * ``GLOBAL`` – every stat query, regardless of entity kind.
    * ``UNIT`` – unit stat queries; ``target_key`` narrows it to one unit type.
    * ``BUILDING`` – building stat queries; ``target_key`` narrows it to one type.
    """

    GLOBAL = "GLOBAL"
    UNIT = "UNIT"
    BUILDING = "BUILDING"


class ModifierKind(Enum):
    ADD_FLAT = "ADD_FLAT"
    MULTIPLY_PERCENT = "MULTIPLY_PERCENT"


class Stat(Enum):
    SPEED = "SPEED"
    CAPACITY = "CAPACITY"
    ENERGY = "ENERGY"
    POWER = "POWER"
    MAX_WORKERS = "MAX_WORKERS"
    MAX_POPULATION = "MAX_POPULATION"


@dataclass(frozen=True)
class Modifier:
    """A single additive or multiplicative adjustment to ``stat``.

    ``value`` is an absolute amount for ``ADD_FLAT`` and a decimal percentage
    for ``MULTIPLY_PERCENT`` (``0.2`` = +20%).
    """

    scope: ModifierScope
    stat: Stat
    kind: ModifierKind
    value: float
    target_key: Optional[str] = None

    def applies_to(self, context: ModifierScope, key: Optional[str], stat: Stat) -> bool:
        if self.stat != stat:
            return False
        if self.scope == ModifierScope.GLOBAL:
            return True
        if self.scope != context:
            return False
        return self.target_key is None or self.target_key == key


def resolve(
    base: float,
    modifiers: Iterable[Modifier],
    context: ModifierScope,
    key: Optional[str],
    stat: Stat,
) -> float:
    """Return ``base`` with every matching modifier applied.

    Flat additions are summed first, then each percentage multiplies the
    running value in turn so repeated upgrades compound.
    """

    matching = [m for m in modifiers if m.applies_to(context, key, stat)]
    value = float(base)
    for modifier in matching:
        if modifier.kind == ModifierKind.ADD_FLAT:
            value += modifier.value
    for modifier in matching:
        if modifier.kind == ModifierKind.MULTIPLY_PERCENT:
            value *= 1.0 + modifier.value
    return value


class ModifierStack:
    """Append-only list of active modifiers owned by the world."""

    def __init__(self) -> None:
        self._modifiers: List[Modifier] = []

    def extend(self, modifiers: Iterable[Modifier]) -> None:
        self._modifiers.extend(modifiers)

    def clear(self) -> None:
        """Drop every modifier; only a colony reset does this."""

        self._modifiers.clear()

    def resolve(
        self, base: float, context: ModifierScope, key: Optional[str], stat: Stat
    ) -> float:
        return resolve(base, self._modifiers, context, key, stat)

    def all(self) -> Tuple[Modifier, ...]:
        return tuple(self._modifiers)

    def __len__(self) -> int:
        return len(self._modifiers)
