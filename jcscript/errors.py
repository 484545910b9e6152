"""Exceptions raised inside the interpreter core.

None of these cross the Runtime boundary: the runtime turns them into
diagnostics at the thunk that raised them.
"""


class JcScriptError(Exception):
    """Base class for interpreter errors."""


class ScriptReferenceError(JcScriptError):
    """A script referred to something that does not exist."""


class UnknownEntityError(ScriptReferenceError):
    """No entity is declared under the given name."""

    def __init__(self, name: str):
        super().__init__(f'Entity "{name}" not found')
        self.name = name


class UnknownVariableError(ScriptReferenceError):
    """No variable is declared under the given name."""

    def __init__(self, name: str):
        super().__init__(f'Variable "{name}" not found')
        self.name = name


class AssetReferenceError(ScriptReferenceError):
    """An asset reference has the wrong suffix or names no registered asset."""


class ScriptTypeError(JcScriptError):
    """A value had the wrong type for where it was used."""


class EvaluationError(JcScriptError):
    """An arithmetic expression could not be evaluated."""

    def __init__(self, message: str, expression: str = ""):
        super().__init__(message)
        self.expression = expression


class PlaybackError(JcScriptError):
    """A sound asset could not be decoded or played."""
