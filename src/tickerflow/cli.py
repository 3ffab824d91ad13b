"""Command line entry point.

Examples:
    tickerflow resolve AAPL
    tickerflow resolve MSFT --kind history --interval 3m
    tickerflow resolve TSLA --kind news --limit 5
    tickerflow popular
"""

import argparse
import asyncio
import json
import sys
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from .config import Config
from .core.factory import create_resolver
from .core.resolver import Resolver
from .core.results import ResolutionResult
from .data.requests import HISTORY_INTERVALS, RequestKind
from .errors import ConfigError, InvalidRequestError
from .utils.logging import get_logger, setup_logging

logger = get_logger(__name__, component="CLI")


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_value(value: Any) -> Any:
    """Convert a resolved value (dataclass or list of dataclasses) to plain data."""
    if isinstance(value, list):
        return [serialize_value(item) for item in value]
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return value


def serialize_result(result: ResolutionResult[Any]) -> dict[str, Any]:
    """Convert a ResolutionResult to a JSON-serializable dict."""
    payload = result.to_dict()
    payload["provider"] = result.provider_id
    payload["value"] = serialize_value(result.value)
    return payload


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tickerflow",
        description="Resolve stock market data through cache, store, providers and fallback",
    )
    parser.add_argument("--config", help="Path to a YAML configuration file")
    parser.add_argument("--log-level", help="Logging level (default from configuration)")
    parser.add_argument(
        "--log-format", choices=["json", "text"], help="Log output format (default: json)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Resolve one request")
    resolve.add_argument("symbol", help="Ticker symbol, e.g. AAPL")
    resolve.add_argument(
        "--kind",
        default=RequestKind.QUOTE.value,
        choices=[k.value for k in RequestKind],
        help="What to resolve (default: quote)",
    )
    resolve.add_argument("--interval", choices=HISTORY_INTERVALS, help="History window")
    resolve.add_argument("--limit", type=int, help="Maximum number of news articles")

    subparsers.add_parser("popular", help="Quotes for the popular symbols")
    subparsers.add_parser("health", help="Provider chain and health")

    return parser


def load_config(path: str | None) -> Config:
    """Load configuration from a YAML file, or from the environment."""
    if path:
        return Config.from_yaml(path)
    return Config()


async def run_command(args: argparse.Namespace, resolver: Resolver) -> Any:
    """Execute a parsed command and return its JSON-serializable output."""
    async with resolver:
        if args.command == "resolve":
            result = await resolver.resolve(
                args.symbol, args.kind, interval=args.interval, limit=args.limit
            )
            return serialize_result(result)

        if args.command == "popular":
            results = await resolver.popular_stocks()
            return [serialize_result(r) for r in results]

        return {
            "providers": resolver.chain.provider_ids,
            "health": {pid: asdict(h) for pid, h in resolver.health().items()},
        }


def main(argv: list[str] | None = None) -> int:
    """Run the command line interface.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return 2

    setup_logging(
        level=args.log_level or config.log_level,
        format_type=args.log_format or config.log_format,
        stream=sys.stderr,
    )

    try:
        output = asyncio.run(run_command(args, create_resolver(config)))
    except InvalidRequestError as e:
        logger.warning("invalid_request", field=e.field, error=str(e))
        print(f"Invalid request: {e}", file=sys.stderr)
        return 2

    print(json.dumps(output, indent=2, default=_json_default))
    return 0


if __name__ == "__main__":
    sys.exit(main())
