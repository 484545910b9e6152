"""
Command parser.

Turns one line of JcScript into a Command, or None when the line is blank, a
`//` comment, or matches no command form. Lines are tokenized first and then
matched by a small recursive-descent parser, so `let x = 1` and `x = 1` are
told apart by their first token rather than by text prefixes. Tokenizing is
lenient: characters outside the token alphabet only matter where a form
reads tokens, so free text (`say Game over!`, `t.text = Score: 5`) survives.

Recognition order:
    1. if key "<K>" down then <action>
    2. <entity>.<prop> = <value>
    3. <variable> = <expression>
    4. keyword commands (say, make, draw, play, let, add, random, rotate,
       on click, every)
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from jcscript.commands import (
    AddToVariable, COLOR_VALUE, Command, DrawCircle, DrawLine, Every, KeyGuard,
    LetImage, LetNumber, LetRandom, LetSpawn, LetText, NUMBER_VALUE, OnClick,
    PlaySound, PropertyAssign, RandomNumber, Rotate, Say, SetBackground,
    SetColor, TEXT_VALUE, VariableAssign,
)
from jcscript.tokens import Token, TokenType, tokenize

COLOR_PROPS = ('colour', 'color')


class _NoMatch(Exception):
    """The tokens do not form the command being tried."""


def _strip_quotes(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        return text[1:-1]
    return text


class _LineParser:
    """Cursor over the tokens of a single line."""

    def __init__(self, text: str, tokens: List[Token]):
        self.text = text
        self.tokens = tokens
        self.pos = 0

    def peek(self, offset: int = 0) -> Optional[Token]:
        i = self.pos + offset
        return self.tokens[i] if i < len(self.tokens) else None

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def next(self) -> Token:
        tok = self.peek()
        if tok is None:
            raise _NoMatch()
        self.pos += 1
        return tok

    def expect(self, token_type: TokenType) -> Token:
        tok = self.next()
        if tok.type is not token_type:
            raise _NoMatch()
        return tok

    def word(self, *words: str) -> str:
        tok = self.expect(TokenType.IDENT)
        if words and tok.text not in words:
            raise _NoMatch()
        return tok.text

    def ident(self) -> str:
        return self.expect(TokenType.IDENT).text

    def string(self) -> str:
        return self.expect(TokenType.STRING).value

    def number(self, integer: bool = False):
        """A numeric literal with an optional leading sign."""
        sign = 1
        tok = self.next()
        if tok.type is TokenType.OP and tok.text in '+-':
            sign = -1 if tok.text == '-' else 1
            tok = self.next()
        if tok.type is not TokenType.NUMBER:
            raise _NoMatch()
        if integer and not isinstance(tok.value, int):
            raise _NoMatch()
        return sign * tok.value

    def point(self) -> Tuple:
        """`(x,y)`"""
        self.expect(TokenType.LPAREN)
        x = self.number()
        self.expect(TokenType.COMMA)
        y = self.number()
        self.expect(TokenType.RPAREN)
        return x, y

    def color(self) -> str:
        tok = self.next()
        if tok.type not in (TokenType.IDENT, TokenType.HEX):
            raise _NoMatch()
        return tok.text

    def rest(self) -> str:
        """Source text from the current token to the end of the line."""
        tok = self.peek()
        if tok is None:
            raise _NoMatch()
        self.pos = len(self.tokens)
        return self.text[tok.pos:].strip()

    def expression(self) -> str:
        """Like rest(), but only when the remainder holds expression tokens."""
        if any(tok.type is TokenType.OTHER for tok in self.tokens[self.pos:]):
            raise _NoMatch()
        return self.rest()

    def done(self) -> None:
        if not self.at_end():
            raise _NoMatch()


def parse_line(line: str) -> Optional[Command]:
    """Parse one line of script. Returns None for no-ops and unrecognised lines."""
    text = line.strip()
    if not text or text.startswith('//'):
        return None
    tokens = tokenize(text, strict=False)
    try:
        return _parse(_LineParser(text, tokens))
    except _NoMatch:
        return None


def _parse(p: _LineParser) -> Command:
    first = p.peek()
    second = p.peek(1)

    if first.is_word('if') and second is not None and second.is_word('key'):
        return _key_guard(p)

    if first.type is TokenType.IDENT and second is not None:
        if second.type is TokenType.DOT:
            return _property_assign(p)
        if second.type is TokenType.EQUALS:
            name = p.ident()
            p.expect(TokenType.EQUALS)
            return VariableAssign(name, p.expression())

    if first.type is not TokenType.IDENT:
        raise _NoMatch()

    handler = _KEYWORDS.get(first.text)
    if handler is None:
        raise _NoMatch()
    p.next()
    return handler(p)


def _action(p: _LineParser) -> Command:
    """Parse the rest of the line as a nested command."""
    command = parse_line(p.rest())
    if command is None:
        raise _NoMatch()
    return command


def _key_guard(p: _LineParser) -> Command:
    p.word('if')
    p.word('key')
    key = p.string()
    p.word('down')
    p.word('then')
    return KeyGuard(key.lower(), _action(p))


def _property_assign(p: _LineParser) -> Command:
    entity = p.ident()
    p.expect(TokenType.DOT)
    prop = p.ident()
    p.expect(TokenType.EQUALS)
    if prop == 'text':
        return PropertyAssign(entity, prop, _strip_quotes(p.rest()), TEXT_VALUE)
    value = p.expression()
    if prop in COLOR_PROPS:
        return PropertyAssign(entity, prop, value, COLOR_VALUE)
    return PropertyAssign(entity, prop, value, NUMBER_VALUE)


def _say(p: _LineParser) -> Command:
    return Say(_strip_quotes(p.rest()))


def _make(p: _LineParser) -> Command:
    target = p.word('it', 'background')
    color = p.color()
    p.done()
    if target == 'it':
        return SetColor(color)
    return SetBackground(color)


def _draw(p: _LineParser) -> Command:
    shape = p.word('circle', 'line')
    if shape == 'circle':
        p.word('at')
        x, y = p.point()
        p.word('radius')
        radius = p.number()
        p.done()
        return DrawCircle(x, y, radius)

    p.word('from')
    x1, y1 = p.point()
    p.word('to')
    x2, y2 = p.point()
    p.word('width')
    width = p.number()
    p.done()
    return DrawLine(x1, y1, x2, y2, width)


def _play(p: _LineParser) -> Command:
    p.word('sound')
    ref = p.string()
    p.done()
    return PlaySound(ref)


def _let(p: _LineParser) -> Command:
    name = p.ident()
    p.expect(TokenType.EQUALS)
    head = p.peek()
    if head is None:
        raise _NoMatch()

    if head.is_word('spawn'):
        p.next()
        x, y, w, h = p.number(), p.number(), p.number(), p.number()
        p.done()
        return LetSpawn(name, x, y, w, h)

    if head.is_word('image'):
        p.next()
        ref = p.string()
        p.word('at')
        x, y = p.point()
        p.word('size')
        w, h = p.number(), p.number()
        p.done()
        return LetImage(name, ref, x, y, w, h)

    if head.is_word('text'):
        p.next()
        text = p.string()
        p.word('at')
        x, y = p.point()
        p.word('size')
        size = p.number()
        p.word('colour', 'color')
        color = p.color()
        p.word('font')
        font = p.string()
        p.done()
        return LetText(name, text, x, y, size, color, font)

    if head.is_word('random'):
        p.next()
        low, high = _range(p)
        return LetRandom(name, low, high)

    value = p.number()
    p.done()
    return LetNumber(name, value)


def _range(p: _LineParser) -> Tuple:
    p.word('from')
    low = p.number()
    p.word('to')
    high = p.number()
    p.done()
    return low, high


def _add(p: _LineParser) -> Command:
    name = p.ident()
    amount = p.number(integer=True)
    p.done()
    return AddToVariable(name, amount)


def _random(p: _LineParser) -> Command:
    low, high = _range(p)
    return RandomNumber(low, high)


def _rotate(p: _LineParser) -> Command:
    entity = p.ident()
    p.word('by')
    degrees = p.number()
    p.word('degrees')
    p.done()
    return Rotate(entity, degrees)


def _on(p: _LineParser) -> Command:
    p.word('click')
    return OnClick(_action(p))


def _every(p: _LineParser) -> Command:
    seconds = p.number()
    p.word('seconds', 'second')
    p.word('then')
    return Every(seconds, _action(p))


_KEYWORDS = {
    'say': _say,
    'make': _make,
    'draw': _draw,
    'play': _play,
    'let': _let,
    'add': _add,
    'random': _random,
    'rotate': _rotate,
    'on': _on,
    'every': _every,
}


@dataclass(frozen=True)
class ScriptLine:
    """A recognised line and its 1-based line number."""
    line_no: int
    source: str
    command: Command


@dataclass
class ParsedScript:
    lines: List[ScriptLine] = field(default_factory=list)
    missed: List[Tuple[int, str]] = field(default_factory=list)

    @property
    def setup_lines(self) -> List[ScriptLine]:
        return [line for line in self.lines if not line.command.per_frame]

    @property
    def frame_lines(self) -> List[ScriptLine]:
        return [line for line in self.lines if line.command.per_frame]


def parse_script(script: str) -> ParsedScript:
    """Parse a whole script, keeping source order and the lines that missed."""
    parsed = ParsedScript()
    for line_no, raw in enumerate(script.splitlines(), start=1):
        command = parse_line(raw)
        if command is not None:
            parsed.lines.append(ScriptLine(line_no, raw.strip(), command))
        elif raw.strip() and not raw.strip().startswith('//'):
            parsed.missed.append((line_no, raw.strip()))
    return parsed
