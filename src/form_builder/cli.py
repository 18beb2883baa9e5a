"""
form-builder command line entry point.

Usage:
    # Print a new schema with a few default fields
    form-builder new --title "Survey" --field radio --field text

    # Check a schema for integrity and compile issues
    form-builder check schema.json

    # Which fields are visible for some values
    form-builder visible schema.json values.json

    # Validate values (only visible fields are validated)
    form-builder validate schema.json values.json
"""

import argparse
import json
import logging
import sys
from typing import Any

from form_builder.builder import FormBuilder
from form_builder.config import get_config
from form_builder.errors import SchemaIntegrityError
from form_builder.models import FormSchema
from form_builder.session import FormSession
from form_builder.store import SchemaStore
from form_builder.validation import compile_schema
from form_builder.visibility import VisibilityEvaluator

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_BAD_INPUT = 2


def _load_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_values(path: str) -> dict[str, Any]:
    values = _load_json(path)
    if not isinstance(values, dict):
        raise ValueError(f"{path} must contain a JSON object of field id to value")
    return values


def load_schema(path: str) -> FormSchema:
    """Load a schema file through the store so integrity rules apply."""
    store = SchemaStore()
    store.import_schema(_load_json(path))
    return store.schema


def cmd_new(args: argparse.Namespace) -> int:
    builder = FormBuilder()
    if args.title:
        builder.set_title(args.title)
    if args.description:
        builder.set_description(args.description)
    for field_type in args.field or []:
        builder.add_field(field_type)
    print(builder.schema.to_json(indent=args.indent))
    return EXIT_OK


def cmd_check(args: argparse.Namespace) -> int:
    schema = load_schema(args.schema)
    contract = compile_schema(schema)

    print("=" * 60)
    print(f"Schema: {schema.title}")
    print("=" * 60)
    print(f"Fields: {len(schema.fields)} top-level, {len(schema.all_field_ids())} total")
    if not contract.issues:
        print("No issues found.")
    for issue in contract.issues:
        print(f"  [{issue.severity.upper()}] {issue.field_id}: {issue.message}")
    print("=" * 60)

    return EXIT_INVALID if contract.compile_errors else EXIT_OK


def cmd_visible(args: argparse.Namespace) -> int:
    schema = load_schema(args.schema)
    values = load_values(args.values)
    evaluator = VisibilityEvaluator(schema)
    print(json.dumps(evaluator.visible_fields(values), indent=args.indent))
    return EXIT_OK


def cmd_validate(args: argparse.Namespace) -> int:
    schema = load_schema(args.schema)
    session = FormSession(schema, load_values(args.values))
    result = session.validate()
    print(result.model_dump_json(indent=args.indent))
    return EXIT_OK if result.is_valid else EXIT_INVALID


def _log_level(name: str) -> str:
    level = name.upper()
    if not isinstance(logging.getLevelName(level), int):
        raise argparse.ArgumentTypeError(f"unknown log level: {name}")
    return level


def build_parser() -> argparse.ArgumentParser:
    config = get_config()

    parser = argparse.ArgumentParser(
        prog="form-builder",
        description="Schema-driven form engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0  success
  1  form data invalid, or schema has compile errors
  2  unreadable input or schema integrity error

Environment Variables:
  FORM_BUILDER_DEFAULT_TITLE    Title of new schemas (default: Untitled Form)
  FORM_BUILDER_LOG_LEVEL        Logging level (default: INFO)
  FORM_BUILDER_INDENT_JSON      JSON indentation (default: 2)
        """,
    )
    parser.add_argument(
        "--log-level",
        type=_log_level,
        default=config.log_level,
        help=f"Logging level (default: {config.log_level})",
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=config.indent_json_output,
        help=f"JSON indentation (default: {config.indent_json_output})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    new = subparsers.add_parser("new", help="Print a new schema")
    new.add_argument("--title", help="Form title")
    new.add_argument("--description", help="Form description")
    new.add_argument(
        "--field",
        action="append",
        metavar="TYPE",
        help="Add a field of TYPE (repeatable option)",
    )
    new.set_defaults(handler=cmd_new)

    check = subparsers.add_parser("check", help="Check a schema for problems")
    check.add_argument("schema", help="Path to a schema JSON file")
    check.set_defaults(handler=cmd_check)

    visible = subparsers.add_parser("visible", help="List visible fields for some values")
    visible.add_argument("schema", help="Path to a schema JSON file")
    visible.add_argument("values", help="Path to a JSON object of field id to value")
    visible.set_defaults(handler=cmd_visible)

    validate = subparsers.add_parser("validate", help="Validate values against a schema")
    validate.add_argument("schema", help="Path to a schema JSON file")
    validate.add_argument("values", help="Path to a JSON object of field id to value")
    validate.set_defaults(handler=cmd_validate)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level)

    try:
        return args.handler(args)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT
    except SchemaIntegrityError as e:
        print(f"Invalid schema: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT


if __name__ == "__main__":
    sys.exit(main())
