"""Command line entrypoint: send one request using environment settings."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence

from api_client.config.settings import get_settings
from api_client.schemas.models import APIRequest
from api_client.utils.errors import APIClientError
from api_client.utils.http import AsyncAPIClient
from api_client.utils.logging import configure_logging

LOGGER = logging.getLogger(__name__)


def parse_header(raw: str) -> tuple[str, str]:
    """Split ``Name: value`` into its parts."""

    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"header must look like 'Name: value', got {raw!r}")
    return name.strip(), value.strip()


def parse_json(raw: str) -> object:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as error:
        raise argparse.ArgumentTypeError(f"invalid JSON body: {error}") from error


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="api-client", description="Send one HTTP request with retries.")
    parser.add_argument("method", nargs="?", default="GET", help="HTTP method (default: GET)")
    parser.add_argument("endpoint", nargs="?", default="/data", help="path appended to the base URL (default: /data)")
    parser.add_argument(
        "-H",
        "--header",
        dest="headers",
        action="append",
        type=parse_header,
        default=[],
        help="request header 'Name: value'; may be repeated",
    )
    parser.add_argument("-d", "--data", dest="body", type=parse_json, default=None, help="JSON request body")
    return parser


def build_request(args: argparse.Namespace) -> APIRequest:
    headers = {"Content-Type": "application/json"}
    headers.update(dict(args.headers))
    return APIRequest(method=args.method.upper(), endpoint=args.endpoint, headers=headers, body=args.body)


async def run(argv: Sequence[str] | None = None) -> int:
    """Send the request described by ``argv`` and print the response body."""

    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    config = settings.client_config()
    LOGGER.info(
        "Sending request",
        extra={"base_url": config.base_url, "endpoint": args.endpoint, "max_retries": config.max_retries},
    )
    async with AsyncAPIClient.from_config(config) as client:
        try:
            response = await client.send_request(build_request(args))
        except APIClientError as error:
            print(f"Error: {error}")
            return 1
    print(f"Response: {response.text}")
    return 0


def main() -> None:
    """Synchronous entrypoint."""

    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
