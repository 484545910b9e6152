"""Parsed command variants.

The parser turns each script line into one of these; the runtime compiles
them into thunks. Only KeyGuard runs every frame; everything else runs once
during setup (or, for OnClick/Every actions, from a timer or click).
"""

from dataclasses import dataclass
from typing import Union

Number = Union[int, float]


class Command:
    """Marker base for parsed commands."""

    per_frame = False


@dataclass(frozen=True)
class Say(Command):
    message: str


@dataclass(frozen=True)
class SetColor(Command):
    """`make it <color>`: colour for shapes created afterwards."""
    color: str


@dataclass(frozen=True)
class SetBackground(Command):
    color: str


@dataclass(frozen=True)
class DrawCircle(Command):
    x: Number
    y: Number
    radius: Number


@dataclass(frozen=True)
class DrawLine(Command):
    x1: Number
    y1: Number
    x2: Number
    y2: Number
    width: Number


@dataclass(frozen=True)
class PlaySound(Command):
    ref: str


@dataclass(frozen=True)
class LetNumber(Command):
    name: str
    value: Number


@dataclass(frozen=True)
class LetSpawn(Command):
    name: str
    x: Number
    y: Number
    w: Number
    h: Number


@dataclass(frozen=True)
class LetImage(Command):
    name: str
    ref: str
    x: Number
    y: Number
    w: Number
    h: Number


@dataclass(frozen=True)
class LetText(Command):
    name: str
    text: str
    x: Number
    y: Number
    size: Number
    color: str
    font: str


@dataclass(frozen=True)
class LetRandom(Command):
    """`let roll = random from 1 to 6`"""
    name: str
    low: Number
    high: Number


@dataclass(frozen=True)
class AddToVariable(Command):
    name: str
    amount: Number


@dataclass(frozen=True)
class RandomNumber(Command):
    """Bare `random from A to B`; its thunk returns the number."""
    low: Number
    high: Number


@dataclass(frozen=True)
class Rotate(Command):
    entity: str
    degrees: Number


@dataclass(frozen=True)
class OnClick(Command):
    action: Command


@dataclass(frozen=True)
class Every(Command):
    seconds: Number
    action: Command


# PropertyAssign.value_kind
NUMBER_VALUE = 'number'
COLOR_VALUE = 'color'
TEXT_VALUE = 'text'


@dataclass(frozen=True)
class PropertyAssign(Command):
    """`entity.prop = value`; value is expression text, a colour or a literal."""
    entity: str
    prop: str
    value: str
    value_kind: str = NUMBER_VALUE


@dataclass(frozen=True)
class VariableAssign(Command):
    """`score = score * 2`"""
    name: str
    expression: str


@dataclass(frozen=True)
class KeyGuard(Command):
    """`if key "<K>" down then <action>`, checked every frame."""
    key: str  # lower-cased
    action: Command

    per_frame = True
