"""Asset library: named images and sounds that scripts refer to.

Scripts never name files. They name assets by base name plus a typed
suffix: `"ufo.image"` or `"pop.sound"`. The library maps base names to bytes
and a MIME type, and `resolve()` enforces the suffix convention.

Assets can be registered:
- one at a time from bytes, a file, or a `data:` URI
- by scanning a directory (base name = file stem, MIME from extension)
- from an `assets.yaml` manifest listing `name` + `file` or `data`

Usage:
    library = AssetLibrary()
    library.discover(Path('my_game/assets'))
    asset = library.resolve('ufo.image', AssetKind.IMAGE)
"""

import base64
import binascii
import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple

import yaml

from jcscript.errors import AssetReferenceError
from jcscript.logging import get_logger

log = get_logger('assets')

MANIFEST_NAME = 'assets.yaml'

_EXTENSION_TYPES = {
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.bmp': 'image/bmp',
    '.webp': 'image/webp',
    '.svg': 'image/svg+xml',
    '.wav': 'audio/wav',
    '.ogg': 'audio/ogg',
    '.mp3': 'audio/mpeg',
    '.flac': 'audio/flac',
}


class AssetKind(Enum):
    IMAGE = 'image'
    AUDIO = 'audio'
    FILE = 'file'

    @property
    def suffix(self) -> str:
        """Suffix scripts must use to refer to assets of this kind."""
        return {AssetKind.IMAGE: '.image', AssetKind.AUDIO: '.sound'}.get(self, '')

    @classmethod
    def from_mime(cls, mime_type: str) -> 'AssetKind':
        if mime_type.startswith('image/'):
            return cls.IMAGE
        if mime_type.startswith('audio/'):
            return cls.AUDIO
        return cls.FILE


@dataclass(frozen=True)
class Asset:
    """A registered binary resource."""
    name: str
    mime_type: str
    data: bytes
    source: str = ''  # file path or 'data-uri', for messages

    @property
    def kind(self) -> AssetKind:
        return AssetKind.from_mime(self.mime_type)


def guess_mime_type(path: Path) -> str:
    ext = path.suffix.lower()
    if ext in _EXTENSION_TYPES:
        return _EXTENSION_TYPES[ext]
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or 'application/octet-stream'


def decode_data_uri(data_uri: str) -> Tuple[str, bytes]:
    """Split `data:<mime>;base64,<payload>` into (mime, bytes).

    Raises:
        ValueError: if the string is not a base64 data URI
    """
    if not data_uri.startswith('data:') or ',' not in data_uri:
        raise ValueError('not a data URI')
    header, encoded = data_uri.split(',', 1)
    media = header[5:]
    if not media.endswith(';base64'):
        raise ValueError('only base64 data URIs are supported')
    mime_type = media[:-7] or 'application/octet-stream'
    try:
        return mime_type, base64.b64decode(encoded)
    except binascii.Error as e:
        raise ValueError(f'bad base64 payload: {e}') from e


def split_reference(ref: str) -> Tuple[str, str]:
    """Split a script reference into (base name, suffix).

    A leading `assets/` folder is ignored: `"assets/ufo.image"` names `ufo`.
    """
    if ref.startswith('assets/'):
        ref = ref[len('assets/'):]
    for suffix in ('.image', '.sound'):
        if ref.endswith(suffix):
            return ref[:-len(suffix)], suffix
    return ref, ''


class AssetLibrary:
    """Named assets, looked up by base name and kind."""

    def __init__(self):
        self._assets: Dict[Tuple[str, AssetKind], Asset] = {}

    def add(self, name: str, mime_type: str, data: bytes, source: str = '') -> Asset:
        """Register an asset; an existing asset of the same name and kind is replaced."""
        asset = Asset(name=name, mime_type=mime_type, data=data, source=source)
        self._assets[(name, asset.kind)] = asset
        log.debug("Registered %s asset '%s' (%d bytes)", asset.kind.value, name, len(data))
        return asset

    def add_file(self, path: Path, name: Optional[str] = None) -> Asset:
        path = Path(path)
        return self.add(name or path.stem, guess_mime_type(path),
                        path.read_bytes(), source=str(path))

    def add_data_uri(self, name: str, data_uri: str) -> Asset:
        mime_type, data = decode_data_uri(data_uri)
        return self.add(name, mime_type, data, source='data-uri')

    def discover(self, assets_dir: Path) -> int:
        """Register every image/audio file under a directory, then its manifest.

        Returns:
            Number of assets registered
        """
        assets_dir = Path(assets_dir)
        if not assets_dir.is_dir():
            log.warning("Assets directory not found: %s", assets_dir)
            return 0

        count = 0
        for path in sorted(assets_dir.rglob('*')):
            if not path.is_file() or path.name == MANIFEST_NAME:
                continue
            if AssetKind.from_mime(guess_mime_type(path)) is AssetKind.FILE:
                continue
            try:
                self.add_file(path)
                count += 1
            except OSError as e:
                log.error("Failed to read asset %s: %s", path, e)

        manifest = assets_dir / MANIFEST_NAME
        if manifest.exists():
            count += self.load_manifest(manifest)
        return count

    def load_manifest(self, manifest_path: Path) -> int:
        """Register assets listed in a YAML manifest.

        Format:
            assets:
              - name: ufo
                file: sprites/ufo_large.png
              - name: pop
                data: "data:audio/wav;base64,..."
        """
        manifest_path = Path(manifest_path)
        try:
            data = yaml.safe_load(manifest_path.read_text())
        except (OSError, yaml.YAMLError) as e:
            log.error("Failed to load asset manifest %s: %s", manifest_path, e)
            return 0

        if not isinstance(data, dict):
            return 0

        count = 0
        for entry in data.get('assets') or []:
            if not isinstance(entry, dict) or 'name' not in entry:
                log.warning("Skipping manifest entry without a name: %r", entry)
                continue
            name = str(entry['name'])
            try:
                if entry.get('data'):
                    asset = self.add_data_uri(name, entry['data'])
                elif entry.get('file'):
                    file_path = Path(entry['file'])
                    if not file_path.is_absolute():
                        file_path = manifest_path.parent / file_path
                    asset = self.add_file(file_path, name=name)
                else:
                    log.warning("Manifest entry '%s' has neither file nor data", name)
                    continue
            except (OSError, ValueError) as e:
                log.error("Failed to register asset '%s': %s", name, e)
                continue
            if entry.get('type') and asset.mime_type != entry['type']:
                self.add(name, entry['type'], asset.data, source=asset.source)
            count += 1
        return count

    def find(self, name: str, kind: AssetKind) -> Optional[Asset]:
        return self._assets.get((name, kind))

    def resolve(self, ref: str, kind: AssetKind) -> Asset:
        """Look up a script reference such as `"ufo.image"`.

        Raises:
            AssetReferenceError: if the suffix is missing or no asset of the
                right kind is registered under the base name
        """
        base, suffix = split_reference(ref)
        label = 'Image' if kind is AssetKind.IMAGE else 'Sound'
        if suffix != kind.suffix:
            raise AssetReferenceError(
                f'{label} path must end with {kind.suffix} extension. '
                f'Use "{base}{kind.suffix}" instead of "{ref}"')

        asset = self.find(base, kind)
        if asset is None:
            raise AssetReferenceError(
                f'{label} "{base}{kind.suffix}" not found in assets. Add it first.')
        return asset

    def __iter__(self) -> Iterator[Asset]:
        return iter(list(self._assets.values()))

    def __len__(self) -> int:
        return len(self._assets)
