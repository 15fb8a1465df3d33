"""Command line entry point: ``python -m dify2openai``."""

import argparse
import dataclasses
import sys
from typing import Optional, Sequence

import uvicorn

from .core.config import LOG_LEVELS, load_settings
from .core.exceptions import ConfigurationError
from .logging import setup_logging
from .main import create_app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dify2openai",
        description="Serve a Dify application behind an OpenAI-compatible API.",
    )
    parser.add_argument("--config", help="YAML config file (default: configs/config.yaml)")
    parser.add_argument("--env-file", help=".env file with variables (default: .env)")
    parser.add_argument("--host", help="Bind address, overrides config")
    parser.add_argument("--port", type=int, help="Listen port, overrides config")
    parser.add_argument(
        "--log-level",
        type=str.lower,
        choices=LOG_LEVELS,
        help="Logging level, overrides config",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logging(args.log_level or "INFO")

    overrides = {
        key: value
        for key, value in (("host", args.host), ("port", args.port), ("log_level", args.log_level))
        if value is not None
    }
    try:
        settings = load_settings(config_path=args.config, env_path=args.env_file)
        # replace() re-runs validation on the command line values
        settings = dataclasses.replace(settings, **overrides)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc.message)
        return 2

    logger = setup_logging(settings.log_level)
    app = create_app(settings)
    logger.info(f"Server running on port {settings.port}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
