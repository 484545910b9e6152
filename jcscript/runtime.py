"""
JcScript runtime.

The runtime owns all run state (entities, variables, pressed keys, timers,
click listeners, active colour) and exposes the frame interface:

    runtime = Runtime(surface, assets, sink)
    runtime.load(script_text)   # parse into setup and per-frame thunks
    runtime.setup()             # reset state, run setup thunks once

    # each tick, driven by the player:
    runtime.advance(dt)         # timers post their actions
    runtime.pump_events()       # apply queued timer/click actions
    runtime.update()            # per-frame (key-guarded) thunks
    runtime.draw()              # paint entities in declaration order

    runtime.stop()              # cancel timers, drop listeners, clear entities

Timer ticks and clicks never touch state directly: they post messages into
the runtime's queue and `pump_events()` applies them in arrival order between
frames. Messages posted by a previous run are dropped.
"""

import math
import random
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

from jcscript.assets import AssetKind, AssetLibrary, split_reference
from jcscript.colors import DEFAULT_COLOR, resolve_color
from jcscript.commands import (
    AddToVariable, COLOR_VALUE, Command, DrawCircle, DrawLine, Every, KeyGuard,
    LetImage, LetNumber, LetRandom, LetSpawn, LetText, OnClick, PlaySound,
    PropertyAssign, RandomNumber, Rotate, Say, SetBackground, SetColor,
    TEXT_VALUE, VariableAssign,
)
from jcscript.diagnostics import DiagnosticSink, LoggingSink
from jcscript.entities import Box, EntityStore, ImageEntity, TextEntity, VariableStore
from jcscript.errors import JcScriptError, ScriptTypeError, UnknownVariableError
from jcscript.expression import ExpressionEvaluator
from jcscript.input import KeyState
from jcscript.logging import get_logger
from jcscript.parser import ParsedScript, parse_script
from jcscript.surface import DrawingSurface, NullSoundPlayer, SoundPlayer
from jcscript.timers import ClickRegistry, TimerRegistry

log = get_logger('runtime')

# Variables a click writes the pointer position into
MOUSE_X = 'mouseX'
MOUSE_Y = 'mouseY'


class RunState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"        # script parsed
    RUNNING = "running"    # setup() has run
    STOPPED = "stopped"


@dataclass
class Thunk:
    """An executable unit compiled from one script line."""
    line_no: int
    source: str
    per_frame: bool
    fn: Callable[[], Any]

    def __call__(self) -> Any:
        return self.fn()


@dataclass
class _Message:
    generation: int
    label: str
    fn: Callable[[], Any]


class Runtime:
    """Interpreter state owner and frame interface."""

    def __init__(
        self,
        surface: DrawingSurface,
        assets: Optional[AssetLibrary] = None,
        sink: Optional[DiagnosticSink] = None,
        sound_player: Optional[SoundPlayer] = None,
        rng: Optional[random.Random] = None,
        warn_unparsed: bool = False,
    ):
        self.surface = surface
        self.assets = assets or AssetLibrary()
        self.sink = sink or LoggingSink()
        self.sound_player = sound_player or NullSoundPlayer()
        self.warn_unparsed = warn_unparsed
        self._rng = rng or random.Random()

        self.entities = EntityStore()
        self.variables = VariableStore()
        self.keys = KeyState()
        self.timers = TimerRegistry()
        self.clicks = ClickRegistry()
        self.evaluator = ExpressionEvaluator(self.entities, self.variables, self.sink)

        self.current_color = DEFAULT_COLOR
        self.background: Optional[str] = None

        self.state = RunState.UNINITIALIZED
        self.script: Optional[ParsedScript] = None
        self.setup_thunks: List[Thunk] = []
        self.frame_thunks: List[Thunk] = []

        self._queue: Deque[_Message] = deque()
        self._generation = 0

        self._executors: Dict[type, Callable[[Command], Callable[[], Any]]] = {
            Say: self._compile_say,
            SetColor: self._compile_set_color,
            SetBackground: self._compile_set_background,
            DrawCircle: self._compile_draw_circle,
            DrawLine: self._compile_draw_line,
            PlaySound: self._compile_play_sound,
            LetNumber: self._compile_let_number,
            LetSpawn: self._compile_let_spawn,
            LetImage: self._compile_let_image,
            LetText: self._compile_let_text,
            LetRandom: self._compile_let_random,
            AddToVariable: self._compile_add,
            RandomNumber: self._compile_random,
            Rotate: self._compile_rotate,
            OnClick: self._compile_on_click,
            Every: self._compile_every,
            PropertyAssign: self._compile_property_assign,
            VariableAssign: self._compile_variable_assign,
            KeyGuard: self._compile_key_guard,
        }

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def load(self, script: str) -> ParsedScript:
        """Parse script text into setup and per-frame thunks."""
        self._teardown()
        parsed = parse_script(script)
        self.script = parsed

        if self.warn_unparsed:
            for line_no, text in parsed.missed:
                self.sink.warning(f"line {line_no}: unrecognised command: {text}")

        thunks = [
            Thunk(line.line_no, line.source, line.command.per_frame,
                  self.compile(line.command))
            for line in parsed.lines
        ]
        self.setup_thunks = [t for t in thunks if not t.per_frame]
        self.frame_thunks = [t for t in thunks if t.per_frame]
        self.state = RunState.READY
        log.debug("Loaded script: %d setup, %d per-frame, %d unrecognised line(s)",
                  len(self.setup_thunks), len(self.frame_thunks), len(parsed.missed))
        return parsed

    def setup(self) -> None:
        """Discard the previous run and run every setup thunk once."""
        if self.state is RunState.UNINITIALIZED:
            raise RuntimeError("setup() called before load()")

        self._teardown()
        self.entities.clear()
        self.variables.clear()
        self.keys.clear()
        self.current_color = DEFAULT_COLOR
        self.background = None
        self.state = RunState.RUNNING

        for thunk in self.setup_thunks:
            self._run_guarded(thunk.line_no, thunk.source, thunk.fn, 'setup')

    def stop(self) -> None:
        """End the run: no timer or click action fires after this returns."""
        self._teardown()
        self.entities.clear()
        self.keys.clear()
        if self.state is not RunState.UNINITIALIZED:
            self.state = RunState.STOPPED

    @property
    def running(self) -> bool:
        return self.state is RunState.RUNNING

    def _teardown(self) -> None:
        self.timers.cancel_all()
        self.clicks.remove_all()
        self._queue.clear()
        self._generation += 1

    # =========================================================================
    # Frame interface
    # =========================================================================

    def update(self) -> None:
        """Run every per-frame thunk once, in source order."""
        if not self.running:
            return
        for thunk in self.frame_thunks:
            self._run_guarded(thunk.line_no, thunk.source, thunk.fn, 'key command')

    def draw(self) -> None:
        """Paint the background, then entities in declaration order."""
        surface = self.surface
        if self.background is not None:
            surface.fill_background(self.background)

        for entity in self.entities:
            if isinstance(entity, Box):
                surface.fill_rect(entity.x, entity.y, entity.w, entity.h,
                                  entity.color, entity.rotation)
            elif isinstance(entity, ImageEntity):
                if entity.bitmap is not None and entity.bitmap.ready:
                    surface.blit_image(entity.bitmap, entity.x, entity.y,
                                       entity.w, entity.h)
            elif isinstance(entity, TextEntity):
                surface.draw_text(entity.text, entity.x, entity.y, entity.size,
                                  entity.color, entity.font)

    def advance(self, dt: float) -> int:
        """Advance run time; due timers post their actions to the queue."""
        if not self.running:
            return 0
        return self.timers.advance(dt)

    def pump_events(self) -> int:
        """Apply queued timer and click actions in arrival order.

        Returns:
            Number of actions applied
        """
        applied = 0
        while self._queue:
            message = self._queue.popleft()
            if message.generation != self._generation:
                continue
            self._run_guarded(0, message.label, message.fn, 'event')
            applied += 1
        return applied

    def step(self, dt: float) -> None:
        """One full tick: timers, queued events, update, draw."""
        self.advance(dt)
        self.pump_events()
        self.update()
        self.draw()

    def key_down(self, key: str) -> None:
        self.keys.press(key)

    def key_up(self, key: str) -> None:
        self.keys.release(key)

    def click(self, x: float, y: float) -> int:
        """Deliver a click at surface-relative (x, y) to the click listeners."""
        if not self.running:
            return 0
        return self.clicks.dispatch(x, y)

    @property
    def pending_events(self) -> int:
        return len(self._queue)

    def _post(self, label: str, fn: Callable[[], Any]) -> None:
        self._queue.append(_Message(self._generation, label, fn))

    def _run_guarded(self, line_no: int, source: str, fn: Callable[[], Any],
                     phase: str) -> Any:
        """Run one thunk, reporting instead of raising."""
        log.script_command(line_no, source)
        where = f"line {line_no}" if line_no else source
        try:
            return fn()
        except JcScriptError as e:
            self.sink.error(f"{where}: {e}")
        except Exception as e:
            log.exception("Unexpected error in %s (%s)", phase, where)
            self.sink.error(f"Error in {phase} ({where}): {e}")
        return None

    # =========================================================================
    # Command compilation
    # =========================================================================

    def compile(self, command: Command) -> Callable[[], Any]:
        """Turn a parsed command into a zero-argument callable."""
        return self._executors[type(command)](command)

    def _random(self, low, high) -> int:
        return math.floor(self._rng.random() * (high - low + 1)) + low

    def _compile_say(self, cmd: Say):
        return lambda: self.sink.info(cmd.message)

    def _compile_set_color(self, cmd: SetColor):
        def run():
            self.current_color = resolve_color(cmd.color)
        return run

    def _compile_set_background(self, cmd: SetBackground):
        def run():
            self.background = resolve_color(cmd.color)
            self.surface.fill_background(self.background)
        return run

    def _compile_draw_circle(self, cmd: DrawCircle):
        return lambda: self.surface.fill_circle(cmd.x, cmd.y, cmd.radius,
                                                self.current_color)

    def _compile_draw_line(self, cmd: DrawLine):
        return lambda: self.surface.stroke_line(cmd.x1, cmd.y1, cmd.x2, cmd.y2,
                                                cmd.width, self.current_color)

    def _compile_play_sound(self, cmd: PlaySound):
        def run():
            asset = self.assets.resolve(cmd.ref, AssetKind.AUDIO)
            self.sound_player.play(asset)
        return run

    def _compile_let_number(self, cmd: LetNumber):
        return lambda: self.variables.set(cmd.name, cmd.value)

    def _compile_let_spawn(self, cmd: LetSpawn):
        def run():
            self.entities.declare(Box(cmd.name, cmd.x, cmd.y, w=cmd.w, h=cmd.h,
                                      color=self.current_color))
        return run

    def _compile_let_image(self, cmd: LetImage):
        def run():
            asset = self.assets.resolve(cmd.ref, AssetKind.IMAGE)
            bitmap = self.surface.load_image(asset)
            if bitmap.error:
                self.sink.error(f'Failed to load image "{cmd.ref}": {bitmap.error}')
            base, _ = split_reference(cmd.ref)
            self.entities.declare(ImageEntity(cmd.name, cmd.x, cmd.y, w=cmd.w, h=cmd.h,
                                              asset_name=f"{base}.image", bitmap=bitmap))
        return run

    def _compile_let_text(self, cmd: LetText):
        def run():
            self.entities.declare(TextEntity(cmd.name, cmd.x, cmd.y, text=cmd.text,
                                             size=cmd.size,
                                             color=resolve_color(cmd.color),
                                             font=cmd.font))
        return run

    def _compile_let_random(self, cmd: LetRandom):
        return lambda: self.variables.set(cmd.name, self._random(cmd.low, cmd.high))

    def _compile_add(self, cmd: AddToVariable):
        return lambda: self.variables.add(cmd.name, cmd.amount)

    def _compile_random(self, cmd: RandomNumber):
        return lambda: self._random(cmd.low, cmd.high)

    def _compile_rotate(self, cmd: Rotate):
        def run():
            entity = self.entities.require(cmd.entity)
            if not isinstance(entity, Box):
                raise ScriptTypeError(
                    f'Cannot rotate {entity.kind} entity "{cmd.entity}"; only boxes rotate')
            entity.rotation += cmd.degrees
        return run

    def _compile_on_click(self, cmd: OnClick):
        action = self.compile(cmd.action)

        def on_click(x: float, y: float) -> None:
            def apply():
                self.variables.set(MOUSE_X, x)
                self.variables.set(MOUSE_Y, y)
                return action()
            self._post(f"click at ({x:g},{y:g})", apply)

        return lambda: self.clicks.listen(on_click)

    def _compile_every(self, cmd: Every):
        action = self.compile(cmd.action)
        label = f"every {cmd.seconds:g} seconds"

        def run():
            if cmd.seconds <= 0:
                raise ScriptTypeError(f"Timer period must be positive, got {cmd.seconds:g}")
            self.timers.every(cmd.seconds, lambda: self._post(label, action))
        return run

    def _compile_property_assign(self, cmd: PropertyAssign):
        def run():
            entity = self.entities.require(cmd.entity)
            if cmd.value_kind == COLOR_VALUE and entity.HAS_COLOR:
                entity.color = resolve_color(cmd.value)
            elif cmd.value_kind == TEXT_VALUE and entity.HAS_TEXT:
                entity.text = cmd.value
            elif cmd.prop in entity.NUMERIC_PROPS:
                setattr(entity, cmd.prop, self.evaluator.evaluate(cmd.value))
            else:
                raise ScriptTypeError(
                    f'Unknown property "{cmd.prop}" for entity "{cmd.entity}"')
        return run

    def _compile_variable_assign(self, cmd: VariableAssign):
        def run():
            if cmd.name not in self.variables:
                raise UnknownVariableError(cmd.name)
            self.variables.set(cmd.name, self.evaluator.evaluate(cmd.expression))
        return run

    def _compile_key_guard(self, cmd: KeyGuard):
        action = self.compile(cmd.action)

        def run():
            if self.keys.is_down(cmd.key):
                return action()
            return None
        return run
