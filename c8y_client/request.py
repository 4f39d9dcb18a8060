#!/usr/bin/env python3
"""Send a single platform operation.

Environment variables:
    C8Y_BASEURL: Tenant base URL
    C8Y_TENANT, C8Y_USER, C8Y_PASSWORD: Basic authentication
    C8Y_TOKEN: Bearer token (takes precedence over basic authentication)

Examples:
    # Create an alarm; server-assigned fields in alarm.json are stripped
    python -m c8y_client.request createAlarm --body alarm.json

    # Read with path and query parameters
    python -m c8y_client.request getAlarms --query severity=MAJOR,CRITICAL --query pageSize=5

    # Show the prepared request without sending it
    python -m c8y_client.request updateManagedObject -p id=4711 --body mo.json --dry-run
"""

import argparse
import asyncio
import dataclasses
import json
import sys
from pathlib import Path
from typing import Any

import httpx
from rich.console import Console
from rich.table import Table

from .api import ApiResult, CumulocityClient
from .api.endpoints import ENDPOINTS
from .utils import ClientConfig, ConfigurationError, InvalidPayloadError, encode
from .utils.query_parameters import SeparatedQueryParameter

console = Console()


def parse_pairs(values: list[str]) -> dict[str, Any]:
    """Parse ``name=value`` arguments; comma separated values become multi-valued."""
    params: dict[str, Any] = {}
    for item in values:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise ConfigurationError(f"Expected name=value, got {item!r}")
        params[name] = SeparatedQueryParameter(*value.split(",")) if "," in value else value
    return params


def print_request(request: httpx.Request) -> None:
    """Print a prepared request."""
    table = Table(title="Prepared Request")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Method", request.method)
    table.add_row("URL", str(request.url))
    for name, value in request.headers.items():
        if name.lower() == "authorization":
            value = value.split(" ", 1)[0] + " ***"
        table.add_row(name, value)
    console.print(table)

    if request.content:
        console.print_json(request.content.decode("utf-8"))


def print_result(result: ApiResult) -> None:
    """Print a call result."""
    style = "green" if result.success else "red"
    console.print(
        f"[{style}]{result.operation}: HTTP {result.status_code or '-'}[/{style}] "
        f"[dim]({result.duration_ms:.0f} ms)[/dim]",
    )
    if result.error:
        console.print(f"  [red]{result.error}[/red]")

    body = result.body
    if dataclasses.is_dataclass(body) and not isinstance(body, type):
        body = encode(body)
    if body is not None:
        console.print_json(json.dumps(body))


async def run(args: argparse.Namespace) -> int:
    """Prepare and (unless dry-run) send the operation."""
    config = ClientConfig(args.config)
    body = json.loads(args.body.read_text(encoding="utf-8")) if args.body else None
    path_params = parse_pairs(args.path_param)
    query = parse_pairs(args.query)

    async with CumulocityClient(config) as client:
        if args.dry_run:
            request = client.build_request(
                args.operation,
                body,
                path_params=path_params,
                query=query,
                processing_mode=args.processing_mode,
            )
            print_request(request)
            return 0

        if not config.base_url:
            console.print("[red]Error: C8Y_BASEURL environment variable not set[/red]")
            return 1

        result = await client.call(
            args.operation,
            body,
            path_params=path_params,
            query=query,
            processing_mode=args.processing_mode,
        )

    print_result(result)
    return 0 if result.success else 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Send a single platform operation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("operation", choices=sorted(ENDPOINTS), metavar="OPERATION")
    parser.add_argument(
        "--path-param",
        "-p",
        action="append",
        default=[],
        help="Path placeholder value as name=value (repeatable)",
    )
    parser.add_argument(
        "--query",
        "-q",
        action="append",
        default=[],
        help="Query parameter as name=value; commas give a multi-valued filter",
    )
    parser.add_argument("--body", type=Path, help="JSON request body file")
    parser.add_argument(
        "--processing-mode",
        choices=["PERSISTENT", "TRANSIENT", "QUIESCENT", "CEP"],
        help="X-Cumulocity-Processing-Mode header",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to client.yaml")
    parser.add_argument("--dry-run", action="store_true", help="Print the request without sending")

    args = parser.parse_args(argv)

    try:
        return asyncio.run(run(args))
    except (ConfigurationError, InvalidPayloadError, OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
