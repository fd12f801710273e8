"""
QRious CLI

Resolve or analyze a single URL from the terminal, or start the API server.
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from qrious.config.logging import setup_logging
from qrious.config.settings import Settings, get_settings
from qrious.services.url_analysis import UrlAnalysisService


def _print_json(model) -> None:
    print(json.dumps(model.model_dump(mode="json", by_alias=True), indent=2))


async def expand_command(args, settings: Settings) -> bool:
    """Print where a URL ends up."""
    service = UrlAnalysisService.from_settings(settings)
    try:
        result = await service.expand(args.url)
    finally:
        await service.close()
    _print_json(result)
    return True


async def analyze_command(args, settings: Settings) -> bool:
    """Print the trust analysis for a URL."""
    service = UrlAnalysisService.from_settings(settings)
    try:
        result = await service.analyze(args.url)
    finally:
        await service.close()
    _print_json(result)
    return True


async def serve_command(args, settings: Settings) -> bool:
    """Start the QRious API server."""
    import uvicorn
    from qrious.main import create_app

    config = uvicorn.Config(
        create_app(settings),
        host=args.host or settings.HOST,
        port=args.port or settings.PORT,
        log_level=args.log_level,
        log_config=None
    )
    server = uvicorn.Server(config)
    await server.serve()
    return True


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="qrious",
        description="QRious - QR code URL safety backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s expand https://bit.ly/abc123       # Follow redirects
  %(prog)s analyze http://192.168.1.1/login   # Score the final destination
  %(prog)s serve --port 3001                  # Start the API server
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    expand_parser = subparsers.add_parser('expand', help='Resolve a URL through its redirects')
    expand_parser.add_argument('url', help='URL to resolve')

    analyze_parser = subparsers.add_parser('analyze', help='Resolve and score a URL')
    analyze_parser.add_argument('url', help='URL to analyze')

    serve_parser = subparsers.add_parser('serve', help='Start API server')
    serve_parser.add_argument('--host', default=None, help='Host to bind to (default: HOST)')
    serve_parser.add_argument('--port', type=int, default=None, help='Port to bind to (default: PORT)')
    serve_parser.add_argument('--log-level', default='info', choices=['debug', 'info', 'warning', 'error'])

    return parser


COMMANDS = {
    'expand': expand_command,
    'analyze': analyze_command,
    'serve': serve_command,
}


async def async_main(argv: Optional[List[str]] = None) -> bool:
    parser = create_parser()
    args = parser.parse_args(argv)

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        return False

    settings = get_settings()
    setup_logging(settings, stream=sys.stderr)

    try:
        return await command(args, settings)
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return False


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    success = asyncio.run(async_main(argv))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
