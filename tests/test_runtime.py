"""
Runtime Tests

Tests for the interpreter lifecycle (load/setup/update/draw/stop), command
execution, the event queue that timers and clicks post into, and per-line
failure isolation.

Run with: pytest tests/test_runtime.py -v
"""

import pytest

from jcscript.runtime import MOUSE_X, MOUSE_Y, Runtime, RunState


def _lines(*lines: str) -> str:
    return '\n'.join(lines)


class TestVariables:
    """let, add and variable assignment."""

    def test_let_then_add(self, make_runtime):
        rt = make_runtime(_lines("let x = 7", "add x 3"))
        rt.setup()
        assert rt.variables.get("x") == 10

    def test_add_then_subtract_restores(self, make_runtime):
        rt = make_runtime(_lines("let score = 12", "add score -5", "add score 5"))
        rt.setup()
        assert rt.variables.get("score") == 12

    def test_assignment_with_expression(self, make_runtime):
        rt = make_runtime(_lines("let score = 4", "score = score * 2 + 1"))
        rt.setup()
        assert rt.variables.get("score") == 9

    def test_assignment_to_undeclared_variable(self, make_runtime, sink):
        rt = make_runtime("score = 5")
        rt.setup()
        assert "score" not in rt.variables
        assert any('Variable "score" not found' in e for e in sink.errors)

    def test_undeclared_name_in_expression(self, make_runtime, sink):
        rt = make_runtime(_lines("let y = 3", "y = nope + 1"))
        rt.setup()
        assert rt.variables.get("y") == 0
        assert sink.errors == ['Error evaluating "nope + 1": Unknown variable "nope"']

    def test_overflowing_assignment_sets_zero(self, make_runtime, sink):
        squares = ["big = big * big"] * 10
        rt = make_runtime(_lines("let big = 10", *squares, "big = big / 3", "let after = 1"))
        rt.setup()
        assert rt.variables.get("big") == 0
        assert rt.variables.get("after") == 1
        assert sink.errors == ['Expression "big / 3" did not evaluate to a number']

    def test_let_random_in_range(self, make_runtime):
        rt = make_runtime(_lines("let roll = random from 1 to 6", "let fixed = random from 5 to 5"))
        rt.setup()
        assert rt.variables.get("roll") in range(1, 7)
        assert rt.variables.get("fixed") == 5

    def test_bare_random_returns_number(self, make_runtime):
        rt = make_runtime("random from 1 to 3")
        assert rt.setup_thunks[0]() in (1, 2, 3)


class TestEntities:
    """Declarations, property assignment and rotation."""

    def test_property_assignment(self, make_runtime):
        rt = make_runtime(_lines("let a = spawn 10 10 20 20", "a.x = a.x + 5"))
        rt.setup()
        assert rt.entities.get("a").x == 15

    def test_box_colour_captured_at_creation(self, make_runtime):
        rt = make_runtime(_lines(
            "make it Red",
            "let a = spawn 0 0 10 10",
            "make it #0000ff",
            "let b = spawn 0 0 10 10",
        ))
        rt.setup()
        assert rt.entities.get("a").color == "red"
        assert rt.entities.get("b").color == "#0000ff"

    def test_colour_and_text_properties(self, make_runtime):
        rt = make_runtime(_lines(
            "let a = spawn 0 0 10 10",
            'let t = text "Score" at (10,30) size 24 colour black font "Arial"',
            "a.colour = Green",
            "t.color = #ff0000",
            't.text = "Game over"',
            "t.size = t.y - 6",
        ))
        rt.setup()
        assert rt.entities.get("a").color == "green"
        text = rt.entities.get("t")
        assert text.color == "#ff0000"
        assert text.text == "Game over"
        assert text.size == 24

    def test_unknown_property(self, make_runtime, sink):
        rt = make_runtime(_lines("let a = spawn 0 0 10 10", "a.size = 3"))
        rt.setup()
        assert any('Unknown property "size" for entity "a"' in e for e in sink.errors)

    def test_text_on_box_is_unknown_property(self, make_runtime, sink):
        rt = make_runtime(_lines("let a = spawn 0 0 10 10", 'a.text = "hi"'))
        rt.setup()
        assert any('Unknown property "text"' in e for e in sink.errors)

    def test_unknown_entity(self, make_runtime, sink):
        rt = make_runtime("ghost.x = 5")
        rt.setup()
        assert sink.errors == ['line 1: Entity "ghost" not found']

    def test_failed_expression_assigns_zero(self, make_runtime):
        rt = make_runtime(_lines("let a = spawn 10 10 20 20", "a.x = nope"))
        rt.setup()
        assert rt.entities.get("a").x == 0

    def test_rotate_is_cumulative(self, make_runtime):
        rt = make_runtime(_lines(
            "let a = spawn 0 0 10 10",
            "rotate a by 30 degrees",
            "rotate a by -45 degrees",
        ))
        rt.setup()
        assert rt.entities.get("a").rotation == -15

    def test_rotate_text_is_an_error(self, make_runtime, sink):
        rt = make_runtime(_lines(
            'let t = text "Hi" at (0,0) size 12 colour black font "Arial"',
            "rotate t by 10 degrees",
        ))
        rt.setup()
        assert any("only boxes rotate" in e for e in sink.errors)

    def test_image_without_suffix(self, make_runtime, sink):
        rt = make_runtime('let sprite = image "foo" at (0,0) size 10 10')
        rt.setup()
        assert "sprite" not in rt.entities
        assert sink.errors == [
            'line 1: Image path must end with .image extension. '
            'Use "foo.image" instead of "foo"'
        ]

    def test_image_not_registered(self, make_runtime, sink):
        rt = make_runtime('let sprite = image "ghost.image" at (0,0) size 10 10')
        rt.setup()
        assert "sprite" not in rt.entities
        assert 'not found in assets' in sink.errors[0]

    def test_image_entity(self, make_runtime):
        rt = make_runtime('let ufo = image "assets/ufo.image" at (5,6) size 40 30')
        rt.setup()
        ufo = rt.entities.get("ufo")
        assert ufo.kind == "image"
        assert ufo.asset_name == "ufo.image"
        assert ufo.to_dict()["ready"] is True


class TestOutput:
    """say, sounds and immediate drawing."""

    def test_say(self, make_runtime, sink):
        rt = make_runtime('say "Hello, world!"')
        rt.setup()
        assert sink.infos == ["Hello, world!"]

    def test_unquoted_messages_keep_punctuation(self, make_runtime, sink):
        rt = make_runtime(_lines(
            'let t = text "Score" at (10,10) size 12 colour white font "Arial"',
            "t.text = Score: 5!",
            "say Game over!",
        ))
        rt.setup()
        assert rt.entities.get("t").text == "Score: 5!"
        assert sink.infos == ["Game over!"]

    def test_play_sound(self, make_runtime, sounds):
        rt = make_runtime('play sound "pop.sound"')
        rt.setup()
        assert sounds.played == ["pop"]

    def test_play_missing_sound(self, make_runtime, sink, sounds):
        rt = make_runtime('play sound "bang.sound"')
        rt.setup()
        assert sounds.played == []
        assert 'Sound "bang.sound" not found' in sink.errors[0]

    def test_immediate_shapes_use_current_colour(self, make_runtime, surface):
        rt = make_runtime(_lines(
            "make it blue",
            "draw circle at (100,200) radius 30",
            "draw line from (0,0) to (10,10) width 3",
        ))
        rt.setup()
        assert [(c.op, c.args) for c in surface.ops("circle", "line")] == [
            ("circle", (100, 200, 30, "blue")),
            ("line", (0, 0, 10, 10, 3, "blue")),
        ]


class TestDraw:
    """Painting order and background."""

    def test_draw_order_follows_declaration(self, make_runtime, surface):
        rt = make_runtime(_lines(
            "let c = spawn 3 0 1 1",
            "let a = spawn 1 0 1 1",
            'let t = text "Hi" at (0,0) size 12 colour black font "Arial"',
            "let b = spawn 2 0 1 1",
        ))
        rt.setup()
        surface.reset()
        rt.draw()

        painted = [c.args[0] for c in surface.ops("rect", "text")]
        assert painted == [3, 1, "Hi", 2]

    def test_redeclared_entity_keeps_draw_position(self, make_runtime, surface):
        rt = make_runtime(_lines(
            "let a = spawn 1 0 1 1",
            "let b = spawn 2 0 1 1",
            "let a = spawn 9 0 1 1",
        ))
        rt.setup()
        surface.reset()
        rt.draw()
        assert [c.args[0] for c in surface.ops("rect")] == [9, 2]

    def test_background_painted_first_every_draw(self, make_runtime, surface):
        rt = make_runtime(_lines("let a = spawn 0 0 5 5", "make background SkyBlue"))
        rt.setup()
        for _ in range(2):
            surface.reset()
            rt.draw()
            assert [c.op for c in surface.calls] == ["background", "rect"]
            assert surface.calls[0].args == ("skyblue",)

    def test_rotated_box(self, make_runtime, surface):
        rt = make_runtime(_lines("let a = spawn 0 0 10 10", "rotate a by 45 degrees"))
        rt.setup()
        rt.draw()
        assert surface.ops("rect")[-1].args[-1] == 45

    def test_image_drawn_only_when_ready(self, assets, sink):
        from jcscript.test_backend import RecordingSurface

        surface = RecordingSurface(defer_images=True)
        rt = Runtime(surface, assets=assets, sink=sink)
        rt.load('let ufo = image "ufo.image" at (5,6) size 40 30')
        rt.setup()

        rt.draw()
        assert surface.ops("image") == []

        surface.finish_loading()
        rt.draw()
        assert surface.ops("image")[0].args == ("ufo", 5, 6, 40, 30)


class TestKeyGuards:
    """Per-frame key-guarded commands."""

    SCRIPT = _lines(
        "let a = spawn 0 100 10 10",
        'if key "ArrowUp" down then a.y = a.y - 1',
    )

    def test_moves_only_while_held(self, make_runtime):
        rt = make_runtime(self.SCRIPT)
        rt.setup()

        rt.update()
        assert rt.entities.get("a").y == 100

        rt.key_down("ArrowUp")
        for _ in range(3):
            rt.update()
        assert rt.entities.get("a").y == 97

        rt.key_up("ArrowUp")
        rt.update()
        assert rt.entities.get("a").y == 97

    def test_key_names_are_case_insensitive(self, make_runtime):
        rt = make_runtime(self.SCRIPT)
        rt.setup()
        rt.key_down("arrowup")
        rt.update()
        assert rt.entities.get("a").y == 99

    def test_guarded_lines_do_not_run_at_setup(self, make_runtime):
        rt = make_runtime(_lines("let n = 0", 'if key "a" down then add n 1'))
        rt.key_down("a")
        rt.setup()
        # setup() clears pressed keys and only runs setup lines
        assert rt.variables.get("n") == 0
        assert len(rt.frame_thunks) == 1

    def test_update_is_a_no_op_when_not_running(self, make_runtime):
        rt = make_runtime(self.SCRIPT)
        rt.setup()
        rt.stop()
        rt.key_down("ArrowUp")
        rt.update()
        assert rt.entities.get("a") is None


class TestTimersAndClicks:
    """every / on click through the event queue."""

    def test_every_fires_at_period(self, make_runtime):
        rt = make_runtime(_lines("let score = 0", "every 1 seconds then add score 1"))
        rt.setup()

        rt.step(0.5)
        assert rt.variables.get("score") == 0
        rt.step(0.5)
        assert rt.variables.get("score") == 1
        rt.step(2.0)
        assert rt.variables.get("score") == 3

    def test_timer_actions_wait_for_pump(self, make_runtime):
        rt = make_runtime(_lines("let score = 0", "every 1 seconds then add score 1"))
        rt.setup()

        rt.advance(1.0)
        assert rt.pending_events == 1
        assert rt.variables.get("score") == 0
        assert rt.pump_events() == 1
        assert rt.variables.get("score") == 1

    def test_nothing_fires_after_stop(self, make_runtime):
        rt = make_runtime(_lines("let score = 0", "every 1 seconds then add score 1"))
        rt.setup()
        rt.advance(1.0)        # posted but not applied
        rt.stop()

        assert rt.pump_events() == 0
        assert rt.advance(5.0) == 0
        assert rt.variables.get("score") == 0

    def test_reset_drops_previous_timers(self, make_runtime):
        rt = make_runtime(_lines("let score = 0", "every 1 seconds then add score 1"))
        rt.setup()
        rt.step(3.0)
        rt.advance(1.0)        # stale message from the first run

        rt.setup()
        assert len(rt.timers) == 1
        assert rt.pump_events() == 0
        assert rt.variables.get("score") == 0

    def test_non_positive_period(self, make_runtime, sink):
        rt = make_runtime("every 0 seconds then add score 1")
        rt.setup()
        assert len(rt.timers) == 0
        assert any("Timer period must be positive" in e for e in sink.errors)

    def test_click_sets_pointer_and_runs_action(self, make_runtime):
        rt = make_runtime(_lines("let box = spawn 0 0 10 10", "on click box.x = mouseX"))
        rt.setup()

        assert rt.click(123, 45) == 1
        assert rt.entities.get("box").x == 0   # queued, not applied yet
        rt.pump_events()

        assert rt.entities.get("box").x == 123
        assert rt.variables.get(MOUSE_X) == 123
        assert rt.variables.get(MOUSE_Y) == 45

    def test_click_ignored_when_not_running(self, make_runtime):
        rt = make_runtime("on click add clicks 1")
        assert rt.click(1, 1) == 0
        rt.setup()
        rt.stop()
        assert rt.click(1, 1) == 0

    def test_queue_is_fifo(self, make_runtime, sink):
        rt = make_runtime(_lines(
            "every 1 seconds then say tick",
            'on click say "click"',
        ))
        rt.setup()
        rt.click(0, 0)
        rt.advance(1.0)
        rt.pump_events()
        assert sink.infos == ["click", "tick"]


class TestLifecycle:
    """State transitions and failure isolation."""

    def test_states(self, surface):
        rt = Runtime(surface)
        assert rt.state is RunState.UNINITIALIZED
        rt.load("let x = 1")
        assert rt.state is RunState.READY
        rt.setup()
        assert rt.state is RunState.RUNNING
        rt.stop()
        assert rt.state is RunState.STOPPED
        rt.stop()
        assert rt.state is RunState.STOPPED

    def test_setup_before_load(self, surface):
        with pytest.raises(RuntimeError):
            Runtime(surface).setup()

    def test_setup_resets_state(self, make_runtime):
        rt = make_runtime(_lines("make it red", "let a = spawn 0 0 1 1", "let x = 1"))
        rt.setup()
        rt.variables.set("extra", 5)
        rt.entities.get("a").x = 50

        rt.setup()
        assert "extra" not in rt.variables
        assert rt.entities.get("a").x == 0

    def test_stop_clears_entities(self, make_runtime):
        rt = make_runtime("let a = spawn 0 0 1 1")
        rt.setup()
        rt.stop()
        assert len(rt.entities) == 0

    def test_failing_line_does_not_stop_the_rest(self, make_runtime, sink):
        rt = make_runtime(_lines(
            "ghost.x = 1",
            "let x = 1",
            "rotate nobody by 5 degrees",
            "add x 1",
        ))
        rt.setup()
        assert rt.variables.get("x") == 2
        assert len(sink.errors) == 2

    def test_unexpected_exception_is_reported(self, make_runtime, sink, sounds):
        def explode(asset):
            raise OSError("device unplugged")

        sounds.play = explode
        rt = make_runtime(_lines('play sound "pop.sound"', "let x = 1"))
        rt.setup()
        assert rt.variables.get("x") == 1
        assert sink.errors == ["Error in setup (line 1): device unplugged"]

    def test_warn_unparsed(self, make_runtime, sink):
        make_runtime(_lines("let x = 1", "flibble"), warn_unparsed=True)
        assert sink.warnings == ["line 2: unrecognised command: flibble"]

    def test_unparsed_lines_silent_by_default(self, make_runtime, sink):
        make_runtime(_lines("let x = 1", "flibble"))
        assert sink.warnings == []
