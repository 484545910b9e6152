"""Shared fixtures for JcScript tests."""

import os
import random

# Headless pygame for every test module
os.environ['SDL_VIDEODRIVER'] = 'dummy'
os.environ['SDL_AUDIODRIVER'] = 'dummy'
os.environ.setdefault('JCS_LOG_LEVEL', 'WARNING')

import pytest

from jcscript.assets import AssetLibrary
from jcscript.diagnostics import RecordingSink
from jcscript.runtime import Runtime
from jcscript.test_backend import RecordingSoundPlayer, RecordingSurface


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def surface():
    return RecordingSurface()


@pytest.fixture
def assets():
    library = AssetLibrary()
    library.add('ufo', 'image/png', b'not-really-a-png')
    library.add('pop', 'audio/wav', b'RIFF....WAVE')
    return library


@pytest.fixture
def sounds():
    return RecordingSoundPlayer()


@pytest.fixture
def make_runtime(surface, assets, sink, sounds):
    """Factory: load a script into a Runtime wired to recording doubles."""

    def _make(script: str, **kwargs) -> Runtime:
        runtime = Runtime(surface, assets=assets, sink=sink, sound_player=sounds,
                          rng=random.Random(1234), **kwargs)
        runtime.load(script)
        return runtime

    return _make
