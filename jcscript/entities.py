"""
Entities and the two run-scoped stores.

An entity is a named drawable object: a box, an image or a text label.
EntityStore keeps them in declaration order, which is also paint order.
VariableStore maps names to numbers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Tuple, Union

from jcscript.errors import UnknownEntityError, UnknownVariableError

Number = Union[int, float]


@dataclass
class Entity(ABC):
    """Base for drawable script objects."""

    name: str
    x: Number
    y: Number

    # Properties a script may assign a number to
    NUMERIC_PROPS: ClassVar[Tuple[str, ...]] = ('x', 'y')
    # Whether `colour`/`color` may be assigned
    HAS_COLOR: ClassVar[bool] = False
    # Whether `text` may be assigned
    HAS_TEXT: ClassVar[bool] = False

    @property
    @abstractmethod
    def kind(self) -> str:
        """Variant name: box, image or text."""
        ...

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, **asdict(self)}


@dataclass
class Box(Entity):
    """Filled rectangle, optionally rotated about its centre."""

    w: Number = 0
    h: Number = 0
    color: str = '#000000'
    rotation: Number = 0  # degrees, cumulative

    NUMERIC_PROPS: ClassVar[Tuple[str, ...]] = ('x', 'y', 'w', 'h', 'rotation')
    HAS_COLOR: ClassVar[bool] = True

    @property
    def kind(self) -> str:
        return 'box'


@dataclass
class ImageEntity(Entity):
    """Bitmap stretched to (w, h); painted only once the bitmap is ready."""

    w: Number = 0
    h: Number = 0
    asset_name: str = ''  # as written in the script, e.g. "ufo.image"
    bitmap: Any = None    # surface-specific BitmapHandle

    NUMERIC_PROPS: ClassVar[Tuple[str, ...]] = ('x', 'y', 'w', 'h')

    @property
    def kind(self) -> str:
        return 'image'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind, 'name': self.name,
            'x': self.x, 'y': self.y, 'w': self.w, 'h': self.h,
            'asset_name': self.asset_name,
            'ready': bool(self.bitmap is not None and self.bitmap.ready),
        }


@dataclass
class TextEntity(Entity):
    """Text label drawn with its baseline at (x, y)."""

    text: str = ''
    size: Number = 16
    color: str = '#000000'
    font: str = 'Arial'

    NUMERIC_PROPS: ClassVar[Tuple[str, ...]] = ('x', 'y', 'size')
    HAS_COLOR: ClassVar[bool] = True
    HAS_TEXT: ClassVar[bool] = True

    @property
    def kind(self) -> str:
        return 'text'


class EntityStore:
    """Named entities in declaration order."""

    def __init__(self):
        self._entities: Dict[str, Entity] = {}

    def declare(self, entity: Entity) -> None:
        """Add an entity. Re-declaring a name replaces it in place."""
        self._entities[entity.name] = entity

    def get(self, name: str) -> Optional[Entity]:
        return self._entities.get(name)

    def require(self, name: str) -> Entity:
        entity = self._entities.get(name)
        if entity is None:
            raise UnknownEntityError(name)
        return entity

    def __contains__(self, name: str) -> bool:
        return name in self._entities

    def __iter__(self) -> Iterator[Entity]:
        return iter(list(self._entities.values()))

    def __len__(self) -> int:
        return len(self._entities)

    def names(self) -> List[str]:
        return list(self._entities)

    def clear(self) -> None:
        self._entities.clear()

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        return {name: e.to_dict() for name, e in self._entities.items()}


class VariableStore:
    """Numeric script variables."""

    def __init__(self):
        self._values: Dict[str, Number] = {}

    def get(self, name: str) -> Optional[Number]:
        return self._values.get(name)

    def require(self, name: str) -> Number:
        if name not in self._values:
            raise UnknownVariableError(name)
        return self._values[name]

    def set(self, name: str, value: Number) -> None:
        self._values[name] = value

    def add(self, name: str, amount: Number) -> Number:
        """Add to a variable; an undeclared variable counts as 0."""
        value = self._values.get(name, 0) + amount
        self._values[name] = value
        return value

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)

    def clear(self) -> None:
        self._values.clear()

    def snapshot(self) -> Dict[str, Number]:
        return dict(self._values)
