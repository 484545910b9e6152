"""
Player settings.

Loads settings from a `.env` file and JCS_* environment variables, optionally
overlaid by a YAML settings file, with sensible defaults:

    JCS_WIDTH=800               # logical canvas width
    JCS_HEIGHT=600
    JCS_FPS=60
    JCS_TITLE=JcScript
    JCS_CLEAR_COLOR=white       # canvas colour painted before every frame
    JCS_WARN_UNPARSED=false     # report lines that match no command
    JCS_ASSETS_DIR=./assets
    JCS_FULLSCREEN=false
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field


def _get_bool(key: str, default: bool) -> bool:
    """Get boolean from environment."""
    val = os.getenv(key, str(default)).lower()
    return val in ('true', '1', 'yes')


def _get_int(key: str, default: int) -> int:
    """Get integer from environment."""
    return int(os.getenv(key, str(default)))


def _get_str(key: str, default: Optional[str]) -> Optional[str]:
    val = os.getenv(key)
    return val if val else default


class PlayerSettings(BaseModel):
    """Settings for the pygame player."""

    width: int = Field(default=800, gt=0, description="Logical canvas width")
    height: int = Field(default=600, gt=0, description="Logical canvas height")
    fps: int = Field(default=60, gt=0, le=240, description="Frames per second")
    title: str = Field(default="JcScript", description="Window title")
    clear_color: str = Field(default="white", description="Canvas colour between frames")
    warn_unparsed: bool = Field(default=False,
                                description="Warn about lines that match no command")
    assets_dir: Optional[Path] = Field(default=None, description="Directory of assets")
    fullscreen: bool = False

    model_config = ConfigDict(extra='forbid')

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> 'PlayerSettings':
        """Build settings from `.env` (if present) and JCS_* variables."""
        load_dotenv(env_file or Path.cwd() / '.env')
        return cls(
            width=_get_int('JCS_WIDTH', 800),
            height=_get_int('JCS_HEIGHT', 600),
            fps=_get_int('JCS_FPS', 60),
            title=_get_str('JCS_TITLE', 'JcScript'),
            clear_color=_get_str('JCS_CLEAR_COLOR', 'white'),
            warn_unparsed=_get_bool('JCS_WARN_UNPARSED', False),
            assets_dir=_get_str('JCS_ASSETS_DIR', None),
            fullscreen=_get_bool('JCS_FULLSCREEN', False),
        )

    def merged(self, overrides: Dict[str, Any]) -> 'PlayerSettings':
        """Copy with the non-None overrides applied and validated."""
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return PlayerSettings(**data)

    def merged_yaml(self, path: Path) -> 'PlayerSettings':
        """Copy with the keys of a YAML settings file applied.

        Raises:
            ValueError: if the file is not a mapping
        """
        data = yaml.safe_load(Path(path).read_text()) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {path} must contain a mapping")
        return self.merged(data)


def load_settings(config_file: Optional[Path] = None,
                  env_file: Optional[Path] = None) -> PlayerSettings:
    """Defaults -> .env -> JCS_* environment -> YAML settings file."""
    settings = PlayerSettings.from_env(env_file)
    if config_file is not None:
        settings = settings.merged_yaml(config_file)
    return settings
