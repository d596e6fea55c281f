"""CLI entry point."""

import argparse
import os

from common.logging_config import setup_logging
from cli.config import DEFAULT_CONFIG_PATH, Config
from cli.repl import repl_loop


def parse_server(value: str) -> tuple[str, int]:
    host, sep, port = value.rpartition(':')
    if not sep or not host or not port.isdigit():
        raise argparse.ArgumentTypeError(f"expected HOST:PORT, got '{value}'")
    return host, int(port)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='chunkvault', description='Interactive client for the chunkvault server')
    parser.add_argument('--debug', action='store_true', help='enable debug logging')
    parser.add_argument(
        '--server',
        type=parse_server,
        metavar='HOST:PORT',
        help=f'vault server to use; saved to {DEFAULT_CONFIG_PATH}',
    )
    return parser


def main(argv=None) -> None:
    """Entry point for the chunkvault CLI."""
    args = build_arg_parser().parse_args(argv)
    log_level = 'DEBUG' if args.debug else os.getenv('LOG_LEVEL', 'WARNING')

    logger = setup_logging('cli', log_level=log_level)
    logger.debug("Debug logging enabled")

    if args.server:
        host, port = args.server
        Config(DEFAULT_CONFIG_PATH).set_server(host, port)
        logger.info(f"Vault server set to {host}:{port}")

    try:
        repl_loop()
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        logger.info("CLI exiting")


if __name__ == "__main__":
    main()
