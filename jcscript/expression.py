"""
Arithmetic expressions.

Expressions mix numeric literals, the operators `+ - * /`, parentheses,
variable names and entity property references (`player.x`). They are parsed
by a small recursive-descent parser into a tree and reduced against the live
stores. Nothing outside those stores is reachable from an expression.

Grammar:
    expr   := term (('+' | '-') term)*
    term   := unary (('*' | '/') unary)*
    unary  := ('+' | '-') unary | atom
    atom   := NUMBER | IDENT ['.' IDENT] | '(' expr ')'
"""

import math
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, List, Optional, Union

from jcscript.errors import EvaluationError, JcScriptError
from jcscript.tokens import Token, TokenType, tokenize

if TYPE_CHECKING:
    from jcscript.diagnostics import DiagnosticSink
    from jcscript.entities import EntityStore, VariableStore

Number = Union[int, float]

# Entity properties readable from expressions
NUMERIC_REFS = ('x', 'y', 'w', 'h')


@dataclass(frozen=True)
class Num:
    value: Number


@dataclass(frozen=True)
class Ref:
    """A variable (`prop` is None) or an entity property reference."""
    name: str
    prop: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.name}.{self.prop}" if self.prop else self.name


@dataclass(frozen=True)
class Unary:
    op: str
    operand: 'Node'


@dataclass(frozen=True)
class BinOp:
    op: str
    left: 'Node'
    right: 'Node'


Node = Union[Num, Ref, Unary, BinOp]


class _ExpressionParser:
    """Recursive-descent parser over a token list."""

    def __init__(self, tokens: List[Token], source: str):
        self._tokens = tokens
        self._pos = 0
        self._source = source

    def parse(self) -> Node:
        if not self._tokens:
            raise EvaluationError("Empty expression", self._source)
        node = self._expr()
        if self._pos < len(self._tokens):
            tok = self._tokens[self._pos]
            raise EvaluationError(f"Unexpected {tok.text!r}", self._source)
        return node

    def _peek(self) -> Optional[Token]:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _next(self) -> Token:
        tok = self._peek()
        if tok is None:
            raise EvaluationError("Unexpected end of expression", self._source)
        self._pos += 1
        return tok

    def _at_op(self, *ops: str) -> bool:
        tok = self._peek()
        return tok is not None and tok.type is TokenType.OP and tok.text in ops

    def _expr(self) -> Node:
        node = self._term()
        while self._at_op('+', '-'):
            op = self._next().text
            node = BinOp(op, node, self._term())
        return node

    def _term(self) -> Node:
        node = self._unary()
        while self._at_op('*', '/'):
            op = self._next().text
            node = BinOp(op, node, self._unary())
        return node

    def _unary(self) -> Node:
        if self._at_op('+', '-'):
            op = self._next().text
            return Unary(op, self._unary())
        return self._atom()

    def _atom(self) -> Node:
        tok = self._next()
        if tok.type is TokenType.NUMBER:
            return Num(tok.value)
        if tok.type is TokenType.IDENT:
            nxt = self._peek()
            if nxt is not None and nxt.type is TokenType.DOT:
                self._pos += 1
                prop = self._next()
                if prop.type is not TokenType.IDENT:
                    raise EvaluationError(f"Expected property name after '{tok.text}.'",
                                          self._source)
                return Ref(tok.text, prop.text)
            return Ref(tok.text)
        if tok.type is TokenType.LPAREN:
            node = self._expr()
            closing = self._next()
            if closing.type is not TokenType.RPAREN:
                raise EvaluationError("Missing ')'", self._source)
            return node
        raise EvaluationError(f"Unexpected {tok.text!r}", self._source)


@lru_cache(maxsize=512)
def compile_expression(source: str) -> Node:
    """Parse expression text into a tree. Trees are cached by source text.

    Raises:
        EvaluationError: if the text is not a well-formed expression
    """
    try:
        tokens = tokenize(source)
    except JcScriptError as e:
        raise EvaluationError(str(e), source) from e
    return _ExpressionParser(tokens, source).parse()


class ExpressionEvaluator:
    """Evaluates expression text against the live entity and variable stores.

    Never raises: every failure is reported to the sink and yields 0.
    """

    def __init__(self, entities: 'EntityStore', variables: 'VariableStore',
                 sink: 'DiagnosticSink'):
        self._entities = entities
        self._variables = variables
        self._sink = sink

    def evaluate(self, source: str) -> Number:
        source = source.strip()
        try:
            result = self._reduce(compile_expression(source))
        except EvaluationError as e:
            self._sink.error(f'Error evaluating "{source}": {e}')
            return 0
        except ZeroDivisionError:
            self._sink.error(f'Error evaluating "{source}": division by zero')
            return 0
        except OverflowError:
            self._sink.error(f'Expression "{source}" did not evaluate to a number')
            return 0

        if isinstance(result, float) and not math.isfinite(result):
            self._sink.error(f'Expression "{source}" did not evaluate to a number')
            return 0
        return result

    def _reduce(self, node: Node) -> Number:
        if isinstance(node, Num):
            return node.value
        if isinstance(node, Ref):
            return self._lookup(node)
        if isinstance(node, Unary):
            value = self._reduce(node.operand)
            return -value if node.op == '-' else value

        left = self._reduce(node.left)
        right = self._reduce(node.right)
        if node.op == '+':
            return left + right
        if node.op == '-':
            return left - right
        if node.op == '*':
            return left * right
        return left / right

    def _lookup(self, ref: Ref) -> Number:
        if ref.prop is None:
            value = self._variables.get(ref.name)
            if value is None:
                raise EvaluationError(f'Unknown variable "{ref.name}"')
            return value

        entity = self._entities.get(ref.name)
        if entity is None:
            raise EvaluationError(f'Unknown entity "{ref.name}"')
        if ref.prop not in NUMERIC_REFS:
            raise EvaluationError(f'Property "{ref}" cannot be used in arithmetic')

        value = getattr(entity, ref.prop, None)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            self._sink.error(f"Invalid property value for {ref}")
            return 0
        return value
