"""
DynamicsWebApi command line

Prints the composed form of a request descriptor or a batch without sending it.
"""

import argparse
import json
import logging
import sys
from typing import Any, List, Optional

import structlog

from .config import Settings, get_settings, load_dotenv_if_exists
from .errors import DynamicsWebApiError
from .models import BatchRequestPart, Request
from .request import compose, convert_to_batch

logger = structlog.get_logger(__name__)


def configure_logging(log_level: str) -> None:
    """Configure structured logging to stderr"""
    logging.basicConfig(level=getattr(logging, log_level.upper()), stream=sys.stderr, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _read_json(path: str) -> Any:
    if path == "-":
        return json.load(sys.stdin)
    with open(path, encoding="utf-8") as handle:
        return json.load(handle)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dynamics-webapi",
        description="Compose Dynamics Web API requests and batches",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: from settings)",
    )
    parser.add_argument("--web-api-url", default=None, help="Web API base URL, e.g. https://org.crm.dynamics.com/api/data/v9.1/")

    subparsers = parser.add_subparsers(dest="command", required=True)

    compose_parser = subparsers.add_parser("compose", help="Print the path and headers of a request")
    compose_parser.add_argument("request", help="JSON file with the request descriptor ('-' for stdin)")
    compose_parser.add_argument("--operation", default="retrieveMultiple", help="Operation name (default: retrieveMultiple)")

    batch_parser = subparsers.add_parser("batch", help="Print the headers and body of a $batch request")
    batch_parser.add_argument("parts", help="JSON file with a list of {method, request} objects ('-' for stdin)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with command line argument parsing"""
    load_dotenv_if_exists()

    args = _build_parser().parse_args(argv)

    try:
        settings = Settings(web_api_url=args.web_api_url) if args.web_api_url else get_settings()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    configure_logging(args.log_level or settings.log_level)

    try:
        if args.command == "compose":
            request = Request.from_dict(_read_json(args.request))
            converted = compose(request, settings, args.operation)
            print(json.dumps(
                {"path": converted.path, "headers": converted.headers, "async": converted.is_async},
                indent=2,
            ))
        else:
            parts = [BatchRequestPart.from_dict(item) for item in _read_json(args.parts)]
            batch = convert_to_batch(parts, settings)
            for name, value in batch.headers.items():
                print(f"{name}: {value}")
            print()
            print(batch.body)
    except (DynamicsWebApiError, ValueError, TypeError, KeyError, OSError) as e:
        logger.error("Command failed", command=args.command, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
