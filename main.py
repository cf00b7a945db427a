"""Command-line interface for the user directory service."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from userhub.config import ConfigurationError, Settings, load_settings

logger = logging.getLogger("userhub.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User directory service")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP + WebSocket service")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: from configuration)")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Listening port (default: from configuration, 3000 when unset)",
    )
    serve_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML configuration file",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _load_settings(config_path: Path | None) -> Settings:
    try:
        return load_settings(config_path)
    except ConfigurationError as exc:
        raise SystemExit(str(exc)) from exc
    except OSError as exc:
        raise SystemExit(f"Unable to read configuration file: {exc}") from exc


def _serve(settings: Settings, *, host: str | None, port: int | None) -> None:
    from userhub.api import DOCS_URL, EVENTS_PATH, create_app
    import uvicorn

    bind_host = host or settings.host
    bind_port = port or settings.port

    app = create_app(settings)
    logger.info("Starting user directory on http://%s:%s", bind_host, bind_port)
    logger.info("API documentation available at http://%s:%s%s", bind_host, bind_port, DOCS_URL)
    logger.info("WebSocket endpoint available at ws://%s:%s%s", bind_host, bind_port, EVENTS_PATH)

    uvicorn.run(app, host=bind_host, port=bind_port, log_level="info")


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    settings = _load_settings(args.config)

    if args.command == "serve":
        _serve(settings, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
