"""swatch-editor: edit Adobe Swatch Exchange (.ase) palettes over a small JSON API.

Usage: python -m swatch_editor [palette.ase] [--host HOST] [--port PORT]

The optional palette path is opened at startup and becomes the default
save target. Without it the editor starts with an empty palette.
"""

from __future__ import annotations

import argparse
import logging
import sys

from swatch_editor.app import create_app


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swatch-editor",
        description="Edit Adobe Swatch Exchange (.ase) palettes.",
    )
    parser.add_argument("path", nargs="?", default=None, help="ASE file to open at startup")
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=5000, help="Port to listen on (default: 5000)")
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode and debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = create_app(args.path)
    for error in app.extensions["palette_session"].errors:
        print(f"warning: {error}", file=sys.stderr)
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


if __name__ == "__main__":
    sys.exit(main())
