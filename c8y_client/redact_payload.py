#!/usr/bin/env python3
"""Strip read-only properties from a JSON request payload.

Usage:
    python -m c8y_client.redact_payload alarm.json --operation createAlarm
    cat mo.json | python -m c8y_client.redact_payload - --rule id --rule c8y_IsBinary.length
    python -m c8y_client.redact_payload bulk.json --operation createEvent --each
    python -m c8y_client.redact_payload --list-operations
    python -m c8y_client.redact_payload --audit
    python -m c8y_client.redact_payload --openapi openapi.yaml
    python -m c8y_client.redact_payload --openapi openapi.yaml --format yaml > overrides.yaml
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.table import Table

from .api.endpoints import ENDPOINTS, body_models
from .utils import (
    ConfigurationError,
    FieldRedactor,
    InvalidPayloadError,
    OpenAPIRuleExtractor,
    ReadOnlyProperties,
    RedactionRuleSet,
)
from .utils.openapi_rules import load_spec

console = Console()
err_console = Console(stderr=True)


def load_payload(source: str) -> Any:
    """Read a JSON payload from a file path or ``-`` for stdin."""
    if source == "-":
        text = sys.stdin.read()
    else:
        text = Path(source).read_text(encoding="utf-8")

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidPayloadError(f"Invalid JSON payload: {e}") from e


def build_rules(
    registry: ReadOnlyProperties,
    operations: list[str],
    rules: list[str],
) -> RedactionRuleSet:
    """Combine the rules of the named operations with explicit paths."""
    combined = RedactionRuleSet(rules)
    for operation in operations:
        combined = combined | registry.rules_for(operation)
    return combined


def print_operations(registry: ReadOnlyProperties) -> None:
    """Print the registry as a table."""
    table = Table(title="Read-only Properties by Operation")
    table.add_column("Operation", style="cyan")
    table.add_column("Request", style="dim")
    table.add_column("Read-only paths", style="green")

    for operation in sorted(registry):
        endpoint = ENDPOINTS.get(operation)
        request = f"{endpoint.method} {endpoint.path}" if endpoint else "-"
        table.add_row(operation, request, ", ".join(registry[operation].to_list()))

    console.print(table)


def run_audit(registry: ReadOnlyProperties) -> int:
    """Check declared paths against the body models; return the exit code."""
    findings = registry.audit(body_models())
    if not findings:
        console.print(f"[green]All read-only paths of {len(registry)} operations resolve[/green]")
        return 0

    console.print(f"[bold red]{len(findings)} read-only path(s) do not resolve:[/bold red]")
    for finding in findings:
        console.print(f"  [red]• {finding}[/red]")
    return 1


def print_extracted(spec_path: Path, validate_spec: bool, output_format: str = "table") -> int:
    """Print the rules extracted from an OpenAPI document.

    The ``yaml`` format writes an ``operations:`` mapping to stdout that can be
    used as a read-only properties file; the summary then goes to stderr.
    """
    extractor = OpenAPIRuleExtractor(validate_spec=validate_spec)
    extracted = extractor.extract(load_spec(spec_path))

    if output_format == "yaml":
        operations = {op: rules.to_list() for op, rules in sorted(extracted.items())}
        print(yaml.safe_dump({"operations": operations}, sort_keys=False), end="")
        summary = err_console
    else:
        table = Table(title=f"Read-only Paths in {spec_path.name}")
        table.add_column("Operation", style="cyan")
        table.add_column("Read-only paths", style="green")
        for operation, rules in sorted(extracted.items()):
            table.add_row(operation, ", ".join(rules.to_list()))
        console.print(table)
        summary = console

    stats = extractor.get_stats()
    summary.print(
        f"[dim]{stats['operations_with_rules']} of {stats['operations_scanned']} write "
        f"operations declare {stats['readonly_paths']} read-only path(s)[/dim]",
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Strip read-only properties from a JSON request payload",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("payload", nargs="?", help="JSON file, or '-' for stdin")
    parser.add_argument(
        "--operation",
        "-o",
        action="append",
        default=[],
        help="Operation whose read-only properties are removed (repeatable)",
    )
    parser.add_argument(
        "--rule",
        "-r",
        action="append",
        default=[],
        help="Additional dotted field path to remove (repeatable)",
    )
    parser.add_argument(
        "--each",
        action="store_true",
        help="Apply the rules to every element of a top-level array",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Read-only property overrides (default: config/readonly_properties.yaml)",
    )
    parser.add_argument("--indent", type=int, default=2, help="JSON output indentation")
    parser.add_argument("--list-operations", action="store_true", help="List declared operations")
    parser.add_argument(
        "--audit",
        action="store_true",
        help="Check that every declared path names a property of its body model",
    )
    parser.add_argument("--openapi", type=Path, help="Extract read-only paths from an OpenAPI file")
    parser.add_argument(
        "--no-validate",
        action="store_true",
        help="Skip OpenAPI validation when using --openapi",
    )
    parser.add_argument(
        "--format",
        choices=["table", "yaml"],
        default="table",
        help="Output of --openapi; yaml is a read-only properties file",
    )
    parser.add_argument("--stats", action="store_true", help="Print redaction statistics")

    args = parser.parse_args(argv)

    try:
        registry = ReadOnlyProperties(args.config)

        if args.list_operations:
            print_operations(registry)
            return 0

        if args.audit:
            return run_audit(registry)

        if args.openapi:
            return print_extracted(
                args.openapi,
                validate_spec=not args.no_validate,
                output_format=args.format,
            )

        if not args.payload:
            parser.error("a payload file (or '-') is required")

        payload = load_payload(args.payload)
        rules = build_rules(registry, args.operation, args.rule)
        redactor = FieldRedactor(rules)
        result = redactor.redact_each(payload) if args.each else redactor.redact(payload)
    except (ConfigurationError, InvalidPayloadError, OSError) as e:
        err_console.print(f"[red]Error: {e}[/red]")
        return 1

    print(json.dumps(result, indent=args.indent, ensure_ascii=False))

    if args.stats:
        stats = redactor.get_stats()
        err_console.print(
            f"[dim]Removed {stats['fields_removed']} field(s); "
            f"{stats['rules_skipped']} rule(s) did not match[/dim]",
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
