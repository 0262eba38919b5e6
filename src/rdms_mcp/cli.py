"""Command-line entry point: run the RDMS tool server on stdio."""

import argparse
import sys
from dataclasses import replace
from typing import List, Optional

from rdms_mcp import __version__
from rdms_mcp.client import RDMSClient
from rdms_mcp.config import Config
from rdms_mcp.logging_config import get_logger, setup_logging
from rdms_mcp.server import ToolServer

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='rdms-mcp',
        description='RDMS bug tracker tools over the Model Context Protocol (stdio)'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('command', nargs='?', default='serve', choices=['serve'],
                        help='Serve tools over stdin/stdout (default: serve)')

    # Connection overrides (default: RDMS_* environment variables / .env)
    parser.add_argument('--base-url', default=None,
                        help='RDMS server root (overrides RDMS_BASE_URL)')
    parser.add_argument('--username', default=None,
                        help='Login account (overrides RDMS_USERNAME)')
    parser.add_argument('--password', default=None,
                        help='Login password (overrides RDMS_PASSWORD)')
    parser.add_argument('--profile-file', default=None,
                        help='YAML file with extra labels and column offsets')
    parser.add_argument('--thresholds-file', default=None,
                        help='JSON file with login/expiry heuristic thresholds')
    parser.add_argument('--log-level', default=None,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Log level (overrides LOG_LEVEL)')
    parser.add_argument('--log-file', default=None,
                        help='Also write logs to this file')
    return parser


def config_from_args(args: argparse.Namespace, base: Optional[Config] = None) -> Config:
    """Environment configuration with command-line overrides applied."""
    config = base or Config.from_env()
    overrides = {
        'base_url': args.base_url.rstrip('/') if args.base_url else None,
        'username': args.username,
        'password': args.password,
        'profile_file': args.profile_file,
        'thresholds_file': args.thresholds_file,
        'log_level': args.log_level,
        'log_file': args.log_file,
    }
    return replace(config, **{k: v for k, v in overrides.items() if v})


def main(argv: Optional[List[str]] = None) -> int:
    """Run the tool server until stdin closes."""
    args = build_parser().parse_args(argv)
    config = config_from_args(args)
    setup_logging(level=config.log_level, log_file=config.log_file)

    if config.has_credentials:
        logger.info(f"Configured for {config.base_url} as {config.username}; login happens on first use")
    else:
        logger.info("No RDMS credentials configured; call rdms_login before other tools")

    server = ToolServer(RDMSClient(config))
    try:
        server.serve()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0


if __name__ == '__main__':
    sys.exit(main())
