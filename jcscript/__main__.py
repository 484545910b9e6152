#!/usr/bin/env python3
"""
JcScript launcher

Usage:
    # Play a script in a window
    python -m jcscript run game.jcs --assets ./assets

    # Report lines that match no command (exit status 1 if any)
    python -m jcscript check game.jcs

    # Trace every command as it runs
    python -m jcscript -v run game.jcs
"""

import argparse
import sys
from pathlib import Path
from typing import Optional, Tuple

from jcscript.assets import AssetLibrary
from jcscript.config import load_settings
from jcscript.logging import enable_all_logging, get_logger
from jcscript.parser import parse_script

log = get_logger('main')


def parse_resolution(text: str) -> Tuple[int, int]:
    """Parse WIDTHxHEIGHT (e.g. 1280x720)."""
    try:
        width, height = (int(part) for part in text.lower().split('x'))
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid resolution '{text}'; expected WIDTHxHEIGHT") from None
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError("Resolution must be positive")
    return width, height


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='jcscript',
        description='JcScript - a tiny line-oriented language for 2D games',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m jcscript run examples/pong.jcs --assets examples/assets
  python -m jcscript run game.jcs --resolution 1280x720 --fps 30
  python -m jcscript check game.jcs
        """
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Log everything at DEBUG and trace each script command'
    )
    commands = parser.add_subparsers(dest='command', required=True)

    run = commands.add_parser('run', help='Play a script in a window')
    run.add_argument('script', type=Path, help='Script file')
    run.add_argument(
        '--assets',
        type=Path,
        default=None,
        help='Assets directory (default: JCS_ASSETS_DIR or ./assets next to the script)'
    )
    run.add_argument(
        '--config',
        type=Path,
        default=None,
        help='YAML settings file'
    )
    run.add_argument(
        '--resolution',
        type=parse_resolution,
        default=None,
        help='Window size as WIDTHxHEIGHT; the canvas is scaled to fit'
    )
    run.add_argument(
        '--fps',
        type=int,
        default=None,
        help='Frames per second (default: 60)'
    )
    run.add_argument(
        '--fullscreen',
        action='store_true',
        default=None,
        help='Run in fullscreen mode'
    )
    run.add_argument(
        '--warn-unparsed',
        action='store_true',
        default=None,
        help='Warn about lines that match no command'
    )

    check = commands.add_parser('check', help='Report lines that match no command')
    check.add_argument('script', type=Path, help='Script file')

    return parser


def _read_script(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding='utf-8')
    except OSError as e:
        print(f"Error: cannot read script {path}: {e}", file=sys.stderr)
        return None


def check_command(args) -> int:
    script = _read_script(args.script)
    if script is None:
        return 2

    parsed = parse_script(script)
    for line_no, text in parsed.missed:
        print(f"{args.script}:{line_no}: unrecognised command: {text}")

    print(f"{len(parsed.lines)} command(s), {len(parsed.setup_lines)} setup, "
          f"{len(parsed.frame_lines)} per-frame, {len(parsed.missed)} unrecognised")
    return 1 if parsed.missed else 0


def run_command(args) -> int:
    script = _read_script(args.script)
    if script is None:
        return 2

    try:
        settings = load_settings(config_file=args.config)
        settings = settings.merged({
            'fps': args.fps,
            'fullscreen': args.fullscreen,
            'warn_unparsed': args.warn_unparsed,
            'assets_dir': args.assets,
        })
    except (OSError, ValueError) as e:
        print(f"Error: invalid settings: {e}", file=sys.stderr)
        return 2

    assets = AssetLibrary()
    assets_dir = settings.assets_dir or args.script.parent / 'assets'
    if Path(assets_dir).is_dir():
        count = assets.discover(assets_dir)
        log.info("Loaded %d asset(s) from %s", count, assets_dir)

    # Imported here so `check` works without a display stack
    from jcscript.player import play

    print(f"\nPlaying {args.script} ({settings.width}x{settings.height} @ {settings.fps} fps)")
    return play(script, settings, assets=assets, window_size=args.resolution)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        enable_all_logging()
    if args.command == 'check':
        return check_command(args)
    return run_command(args)


if __name__ == "__main__":
    sys.exit(main())
