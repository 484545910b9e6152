"""
JcScript

A tiny line-oriented language for 2D games: boxes, images and text on a
canvas, key-guarded movement, timers, clicks and arithmetic on entity
properties. Scripts are parsed into commands, compiled into thunks and
driven frame by frame by the Runtime.
"""

from jcscript.assets import AssetLibrary
from jcscript.diagnostics import LoggingSink, RecordingSink
from jcscript.errors import JcScriptError
from jcscript.parser import parse_line, parse_script
from jcscript.runtime import Runtime

__version__ = '0.1.0'

__all__ = [
    'AssetLibrary',
    'JcScriptError',
    'LoggingSink',
    'RecordingSink',
    'Runtime',
    'parse_line',
    'parse_script',
]
