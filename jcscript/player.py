"""
JcScript Player - pygame frame driver.

Owns the window, the logical canvas and the main loop, and drives a Runtime:

    running:  advance timers -> apply queued events -> update -> draw
    stopped:  show a static preview (setup run once, painted, torn down)

Any exception escaping update()/draw() stops the run with the same teardown
as an explicit stop, then shows the preview.

Controls:
    Esc     stop the run (preview)
    F5      restart the run
    F6      toggle fullscreen
    close   quit
"""

from typing import Optional, Tuple

import pygame

from jcscript.assets import AssetLibrary
from jcscript.config import PlayerSettings
from jcscript.diagnostics import DiagnosticSink, LoggingSink
from jcscript.logging import get_logger
from jcscript.runtime import Runtime
from jcscript.surface import PygameSoundPlayer, PygameSurface, SoundPlayer

log = get_logger('player')

# pygame key -> browser KeyboardEvent.key name used in scripts
_KEY_NAMES = {
    pygame.K_UP: 'ArrowUp',
    pygame.K_DOWN: 'ArrowDown',
    pygame.K_LEFT: 'ArrowLeft',
    pygame.K_RIGHT: 'ArrowRight',
    pygame.K_SPACE: ' ',
    pygame.K_RETURN: 'Enter',
    pygame.K_KP_ENTER: 'Enter',
    pygame.K_TAB: 'Tab',
    pygame.K_BACKSPACE: 'Backspace',
    pygame.K_DELETE: 'Delete',
    pygame.K_LSHIFT: 'Shift',
    pygame.K_RSHIFT: 'Shift',
    pygame.K_LCTRL: 'Control',
    pygame.K_RCTRL: 'Control',
    pygame.K_LALT: 'Alt',
    pygame.K_RALT: 'Alt',
    pygame.K_ESCAPE: 'Escape',
}

STOP_KEY = pygame.K_ESCAPE
RESTART_KEY = pygame.K_F5
FULLSCREEN_KEY = pygame.K_F6


def key_name(key: int) -> str:
    """Script-facing name for a pygame key code."""
    if key in _KEY_NAMES:
        return _KEY_NAMES[key]
    return pygame.key.name(key)


class ScriptPlayer:
    """Plays one script on a pygame canvas."""

    def __init__(
        self,
        script: str,
        settings: Optional[PlayerSettings] = None,
        assets: Optional[AssetLibrary] = None,
        sink: Optional[DiagnosticSink] = None,
        sound_player: Optional[SoundPlayer] = None,
    ):
        self.script = script
        self.settings = settings or PlayerSettings()
        self.canvas = pygame.Surface((self.settings.width, self.settings.height))
        self.surface = PygameSurface(self.canvas)
        self.runtime = Runtime(
            self.surface,
            assets=assets,
            sink=sink or LoggingSink('script'),
            sound_player=sound_player,
            warn_unparsed=self.settings.warn_unparsed,
        )
        self.is_running = False
        self.runtime.load(script)

    # =========================================================================
    # Run control
    # =========================================================================

    def start(self) -> None:
        """Start (or restart) the run."""
        log.info("Starting run")
        self.is_running = True
        self.runtime.setup()

    def stop(self) -> None:
        """Stop the run and show the preview."""
        if self.is_running:
            log.info("Stopping run")
        self.is_running = False
        self.runtime.stop()
        self.preview()

    def preview(self) -> None:
        """Paint the script's initial state without starting timers or listeners."""
        self.surface.clear(self.settings.clear_color)
        try:
            self.runtime.setup()
            self.runtime.draw()
        except Exception:
            log.exception("Preview failed")
        finally:
            self.runtime.stop()

    def frame(self, dt: float) -> None:
        """Advance and paint one frame of a running script."""
        if not self.is_running:
            return
        self.surface.clear(self.settings.clear_color)
        try:
            self.runtime.step(dt)
        except Exception as e:
            log.exception("Frame failed; stopping run")
            self.runtime.sink.error(f"Run stopped: {e}")
            self.stop()

    # =========================================================================
    # Input
    # =========================================================================

    def handle_event(self, event: pygame.event.Event, window: pygame.Surface) -> bool:
        """Route a pygame event. Returns False when the player should quit."""
        if event.type == pygame.QUIT:
            return False

        if event.type == pygame.KEYDOWN:
            if event.key == STOP_KEY and self.is_running:
                self.stop()
            elif event.key == RESTART_KEY:
                self.start()
            elif event.key == FULLSCREEN_KEY:
                pygame.display.toggle_fullscreen()
            else:
                self.runtime.key_down(key_name(event.key))

        elif event.type == pygame.KEYUP:
            self.runtime.key_up(key_name(event.key))

        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            pos = self.window_to_canvas(event.pos, window.get_size())
            if pos is not None:
                self.runtime.click(*pos)

        return True

    # =========================================================================
    # Presentation
    # =========================================================================

    def _layout(self, window_size: Tuple[int, int]) -> Tuple[float, int, int]:
        """Scale and offset that letterbox the canvas into the window."""
        cw, ch = self.canvas.get_size()
        ww, wh = window_size
        scale = min(ww / cw, wh / ch)
        return scale, int((ww - cw * scale) / 2), int((wh - ch * scale) / 2)

    def window_to_canvas(self, pos: Tuple[int, int],
                         window_size: Tuple[int, int]) -> Optional[Tuple[float, float]]:
        """Map a window position to canvas coordinates (None outside the canvas)."""
        scale, ox, oy = self._layout(window_size)
        x = (pos[0] - ox) / scale
        y = (pos[1] - oy) / scale
        cw, ch = self.canvas.get_size()
        if 0 <= x < cw and 0 <= y < ch:
            return x, y
        return None

    def present(self, window: pygame.Surface) -> None:
        scale, ox, oy = self._layout(window.get_size())
        window.fill((0, 0, 0))
        if scale == 1:
            window.blit(self.canvas, (ox, oy))
        else:
            size = (int(self.canvas.get_width() * scale),
                    int(self.canvas.get_height() * scale))
            window.blit(pygame.transform.smoothscale(self.canvas, size), (ox, oy))


def play(script: str, settings: PlayerSettings,
         assets: Optional[AssetLibrary] = None,
         window_size: Optional[Tuple[int, int]] = None) -> int:
    """Open a window and play a script until the window is closed."""
    pygame.init()

    if settings.fullscreen:
        window = pygame.display.set_mode((0, 0), pygame.FULLSCREEN)
    else:
        window = pygame.display.set_mode(window_size or (settings.width, settings.height),
                                         pygame.RESIZABLE)
    pygame.display.set_caption(settings.title)

    player = ScriptPlayer(script, settings, assets=assets,
                          sound_player=PygameSoundPlayer())

    print("\nControls:")
    print("  - Esc to stop the run and show the preview")
    print("  - F5 to restart")
    print("  - F6 to toggle fullscreen")
    print("  - Close the window to quit\n")

    player.start()
    clock = pygame.time.Clock()
    alive = True
    try:
        while alive:
            dt = clock.tick(settings.fps) / 1000.0
            for event in pygame.event.get():
                if not player.handle_event(event, window):
                    alive = False
                    break
            player.frame(dt)
            player.present(window)
            pygame.display.flip()
    finally:
        player.runtime.stop()
        pygame.quit()
    return 0
