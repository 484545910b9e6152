"""
JcScript Logging

Per-module loggers with environment-driven levels, plus optional tracing of
every script command the runtime executes.

Usage:
    from jcscript.logging import get_logger

    log = get_logger('runtime')
    log.debug("Running setup")
    log.info("Script loaded")
    log.script_command(12, "add score 1")  # Command tracing

Configuration:
    Environment variables:
        JCS_LOG_LEVEL=DEBUG             # Global default level
        JCS_LOG_RUNTIME=DEBUG           # Module-specific level
        JCS_LOG_PLAYER=INFO
        JCS_LOG_SCRIPT_COMMANDS=1       # Trace executed script commands

    Or programmatically:
        from jcscript.logging import configure_logging
        configure_logging(level='DEBUG', modules={'parser': 'INFO'})
"""

import os
import sys
from enum import IntEnum
from typing import Any, Dict, Optional
from functools import lru_cache


class LogLevel(IntEnum):
    """Log levels matching Python's logging module."""
    TRACE = 5      # Even more verbose than DEBUG
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50
    OFF = 100      # Disable logging


_ENV_PREFIX = 'JCS_LOG_'

# Global configuration
_config: Dict[str, Any] = {
    'default_level': LogLevel.INFO,
    'module_levels': {},
    'script_commands': False,  # Trace each executed script command
    'stream': None,            # None = sys.stdout at call time
}


def _format_message(module: str, level: str, msg: str) -> str:
    """Format a log message."""
    return f"[{module}] {level}: {msg}"


def _level_from_string(level_str: str) -> LogLevel:
    """Convert string to LogLevel."""
    mapping = {
        'TRACE': LogLevel.TRACE,
        'DEBUG': LogLevel.DEBUG,
        'INFO': LogLevel.INFO,
        'WARNING': LogLevel.WARNING,
        'WARN': LogLevel.WARNING,
        'ERROR': LogLevel.ERROR,
        'CRITICAL': LogLevel.CRITICAL,
        'OFF': LogLevel.OFF,
    }
    return mapping.get(level_str.upper(), LogLevel.INFO)


def configure_logging(
    level: str = 'INFO',
    modules: Optional[Dict[str, str]] = None,
    script_commands: bool = False,
    stream=None,
) -> None:
    """
    Configure the logging system.

    Args:
        level: Default log level for all modules
        modules: Dict of module_name -> level for per-module configuration
        script_commands: Trace every script command the runtime executes
        stream: File-like object to write to (default: stdout)
    """
    _config['default_level'] = _level_from_string(level)

    if modules:
        for mod, mod_level in modules.items():
            _config['module_levels'][mod] = _level_from_string(mod_level)

    _config['script_commands'] = script_commands
    _config['stream'] = stream


def _load_env_config() -> None:
    """Load configuration from JCS_LOG_* environment variables."""
    if 'JCS_LOG_LEVEL' in os.environ:
        _config['default_level'] = _level_from_string(os.environ['JCS_LOG_LEVEL'])

    # Module-specific levels (JCS_LOG_RUNTIME=DEBUG -> runtime: DEBUG)
    reserved = ('JCS_LOG_LEVEL', 'JCS_LOG_SCRIPT_COMMANDS')
    for key, value in os.environ.items():
        if key.startswith(_ENV_PREFIX) and key not in reserved:
            module_name = key[len(_ENV_PREFIX):].lower()
            _config['module_levels'][module_name] = _level_from_string(value)

    _config['script_commands'] = os.environ.get(
        'JCS_LOG_SCRIPT_COMMANDS', '').lower() in ('1', 'true', 'yes')


# Load env config on import
_load_env_config()


class ScriptLogger:
    """
    Logger for a specific module.

    Provides standard log levels plus tracing of executed script commands.
    """

    def __init__(self, module: str):
        self.module = module
        self._module_key = module.lower().replace('.', '_').replace('/', '_')

    @property
    def level(self) -> LogLevel:
        """Get effective log level for this module."""
        if self._module_key in _config['module_levels']:
            return _config['module_levels'][self._module_key]
        return _config['default_level']

    def is_enabled_for(self, level: LogLevel) -> bool:
        """Check if message at given level should be logged."""
        return level >= self.level

    def _log(self, level: LogLevel, level_name: str, msg: str, *args) -> None:
        if not self.is_enabled_for(level):
            return

        if args:
            try:
                msg = msg % args
            except (TypeError, ValueError):
                msg = f"{msg} {args}"

        stream = _config['stream'] or sys.stdout
        print(_format_message(self.module, level_name, msg), file=stream)

    def trace(self, msg: str, *args) -> None:
        """Log at TRACE level (very verbose)."""
        self._log(LogLevel.TRACE, 'TRACE', msg, *args)

    def debug(self, msg: str, *args) -> None:
        self._log(LogLevel.DEBUG, 'DEBUG', msg, *args)

    def info(self, msg: str, *args) -> None:
        self._log(LogLevel.INFO, 'INFO', msg, *args)

    def warning(self, msg: str, *args) -> None:
        self._log(LogLevel.WARNING, 'WARN', msg, *args)

    def warn(self, msg: str, *args) -> None:
        """Alias for warning()."""
        self.warning(msg, *args)

    def error(self, msg: str, *args) -> None:
        self._log(LogLevel.ERROR, 'ERROR', msg, *args)

    def critical(self, msg: str, *args) -> None:
        self._log(LogLevel.CRITICAL, 'CRIT', msg, *args)

    def exception(self, msg: str, *args, exc_info: bool = True) -> None:
        """
        Log an exception with traceback.

        Args:
            msg: Message describing what failed
            exc_info: If True, include current exception traceback
        """
        import traceback

        self._log(LogLevel.ERROR, 'ERROR', msg, *args)

        if exc_info:
            tb = traceback.format_exc()
            if tb and tb.strip() != 'NoneType: None':
                for line in tb.strip().split('\n'):
                    self._log(LogLevel.ERROR, 'TRACE', line)

    def script_command(self, line_no: int, source: str) -> None:
        """
        Log execution of a single script command.

        Only logs if script command tracing is enabled.
        """
        if not _config['script_commands']:
            return

        self._log(LogLevel.DEBUG, 'JCS', f"line {line_no}: {source}")


@lru_cache(maxsize=64)
def get_logger(module: str) -> ScriptLogger:
    """
    Get a logger for the specified module.

    Loggers are cached, so calling get_logger('foo') multiple times
    returns the same logger instance.
    """
    return ScriptLogger(module)


def enable_all_logging() -> None:
    """Enable DEBUG level for all modules and command tracing."""
    configure_logging(level='DEBUG', script_commands=True)


def disable_logging() -> None:
    """Disable all logging."""
    _config['default_level'] = LogLevel.OFF
    _config['script_commands'] = False
