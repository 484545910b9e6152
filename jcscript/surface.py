"""Drawing surface and sound output.

The runtime paints through the DrawingSurface interface and plays sounds
through a SoundPlayer. PygameSurface and PygameSoundPlayer are the real
implementations used by the player; the test harness records calls instead.

Coordinates are logical canvas pixels (800x600 by default); the player
scales the canvas to the window.
"""

import io
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import pygame

from jcscript.assets import Asset
from jcscript.colors import to_rgb
from jcscript.errors import PlaybackError
from jcscript.logging import get_logger

log = get_logger('surface')

_MIME_HINTS = {
    'image/png': 'x.png',
    'image/jpeg': 'x.jpg',
    'image/gif': 'x.gif',
    'image/bmp': 'x.bmp',
    'image/webp': 'x.webp',
    'image/svg+xml': 'x.svg',
}


class BitmapHandle:
    """A bitmap being loaded for an image entity.

    `ready` turns true once the pixels are available; a failed load keeps
    `ready` false and records `error`.
    """

    def __init__(self, asset_name: str):
        self.asset_name = asset_name
        self.image: Any = None
        self.error: Optional[str] = None
        self._scaled: Dict[Tuple[int, int], Any] = {}

    @property
    def ready(self) -> bool:
        return self.image is not None

    def complete(self, image: Any) -> None:
        self.image = image
        self._scaled.clear()

    def fail(self, error: str) -> None:
        self.error = error

    def scaled(self, size: Tuple[int, int], scale) -> Any:
        """The image resized to `size`; `scale` runs once per distinct size."""
        image = self._scaled.get(size)
        if image is None:
            image = self.image if self.image.get_size() == size else scale(self.image, size)
            self._scaled[size] = image
        return image


class DrawingSurface(ABC):
    """Immediate-mode 2D drawing target."""

    @property
    @abstractmethod
    def size(self) -> Tuple[int, int]:
        ...

    @abstractmethod
    def clear(self, color: str) -> None:
        """Fill the whole surface; used by the frame driver between frames."""
        ...

    @abstractmethod
    def fill_background(self, color: str) -> None:
        ...

    @abstractmethod
    def fill_rect(self, x: float, y: float, w: float, h: float, color: str,
                  rotation: float = 0) -> None:
        """Fill a rectangle, rotated `rotation` degrees clockwise about its centre."""
        ...

    @abstractmethod
    def fill_circle(self, x: float, y: float, radius: float, color: str) -> None:
        ...

    @abstractmethod
    def stroke_line(self, x1: float, y1: float, x2: float, y2: float,
                    width: float, color: str) -> None:
        ...

    @abstractmethod
    def load_image(self, asset: Asset) -> BitmapHandle:
        ...

    @abstractmethod
    def blit_image(self, bitmap: BitmapHandle, x: float, y: float,
                   w: float, h: float) -> None:
        """Draw a ready bitmap stretched to (w, h)."""
        ...

    @abstractmethod
    def draw_text(self, text: str, x: float, y: float, size: float,
                  color: str, font: str) -> None:
        """Draw text with its baseline starting at (x, y)."""
        ...


class PygameSurface(DrawingSurface):
    """DrawingSurface backed by a pygame.Surface."""

    def __init__(self, surface: pygame.Surface):
        self._surface = surface
        self._fonts: Dict[Tuple[str, int], pygame.font.Font] = {}

    @property
    def target(self) -> pygame.Surface:
        return self._surface

    @property
    def size(self) -> Tuple[int, int]:
        return self._surface.get_size()

    def _rgb(self, color: str):
        rgb = to_rgb(color)
        if rgb is None:
            log.debug("Ignoring unknown colour %r", color)
        return rgb

    def clear(self, color: str) -> None:
        rgb = self._rgb(color)
        if rgb is not None:
            self._surface.fill(rgb)

    def fill_background(self, color: str) -> None:
        self.clear(color)

    def fill_rect(self, x, y, w, h, color, rotation=0) -> None:
        rgb = self._rgb(color)
        if rgb is None:
            return
        rect = pygame.Rect(int(x), int(y), int(w), int(h))
        rect.normalize()
        if not rotation:
            pygame.draw.rect(self._surface, rgb, rect)
            return

        # Rotate a filled tile and centre it on the box centre
        tile = pygame.Surface((max(rect.w, 1), max(rect.h, 1)), pygame.SRCALPHA)
        tile.fill(rgb)
        rotated = pygame.transform.rotate(tile, -rotation)
        center = (x + w / 2, y + h / 2)
        self._surface.blit(rotated, rotated.get_rect(center=center))

    def fill_circle(self, x, y, radius, color) -> None:
        rgb = self._rgb(color)
        if rgb is not None:
            pygame.draw.circle(self._surface, rgb, (x, y), abs(radius))

    def stroke_line(self, x1, y1, x2, y2, width, color) -> None:
        rgb = self._rgb(color)
        if rgb is not None:
            pygame.draw.line(self._surface, rgb, (x1, y1), (x2, y2),
                             max(1, int(width)))

    def load_image(self, asset: Asset) -> BitmapHandle:
        handle = BitmapHandle(asset.name)
        try:
            namehint = _MIME_HINTS.get(asset.mime_type, '')
            image = pygame.image.load(io.BytesIO(asset.data), namehint)
            if pygame.display.get_init() and pygame.display.get_surface() is not None:
                image = image.convert_alpha()
            handle.complete(image)
        except (pygame.error, ValueError) as e:
            log.error("Failed to load image '%s': %s", asset.name, e)
            handle.fail(str(e))
        return handle

    def blit_image(self, bitmap, x, y, w, h) -> None:
        if not bitmap.ready:
            return
        size = (abs(int(w)), abs(int(h)))
        if size[0] == 0 or size[1] == 0:
            return
        scaled = bitmap.scaled(size, pygame.transform.smoothscale)
        self._surface.blit(scaled, (int(x), int(y)))

    def _font(self, family: str, size: int) -> pygame.font.Font:
        if not pygame.font.get_init():
            pygame.font.init()
        key = (family, size)
        font = self._fonts.get(key)
        if font is None:
            font = pygame.font.SysFont(family, size)
            self._fonts[key] = font
        return font

    def draw_text(self, text, x, y, size, color, font) -> None:
        rgb = self._rgb(color)
        if rgb is None or not text:
            return
        face = self._font(font, max(1, int(size)))
        rendered = face.render(text, True, rgb)
        # Canvas text is positioned by baseline, pygame by top-left
        self._surface.blit(rendered, (int(x), int(y) - face.get_ascent()))


class SoundPlayer(ABC):
    """Plays audio assets."""

    @abstractmethod
    def play(self, asset: Asset) -> None:
        """Start playback.

        Raises:
            PlaybackError: if the asset cannot be decoded or played
        """
        ...


class NullSoundPlayer(SoundPlayer):
    """Accepts sounds and plays nothing."""

    def play(self, asset: Asset) -> None:
        log.debug("Sound '%s' requested (audio disabled)", asset.name)


class PygameSoundPlayer(SoundPlayer):
    """Plays audio assets through pygame.mixer."""

    def __init__(self):
        self._sounds: Dict[Tuple[str, int], pygame.mixer.Sound] = {}

    def _ensure_mixer(self) -> None:
        if pygame.mixer.get_init():
            return
        try:
            pygame.mixer.init()
        except pygame.error as e:
            raise PlaybackError(f"Audio unavailable: {e}") from e

    def play(self, asset: Asset) -> None:
        self._ensure_mixer()
        key = (asset.name, len(asset.data))
        sound = self._sounds.get(key)
        if sound is None:
            try:
                sound = pygame.mixer.Sound(file=io.BytesIO(asset.data))
            except pygame.error as e:
                raise PlaybackError(f"Failed to play sound: {e}") from e
            self._sounds[key] = sound
        sound.play()
