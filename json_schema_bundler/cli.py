"""Command-line entry point.

Entry point: json-schema-bundler (defined in pyproject.toml)

    $ json-schema-bundler bundle --schema schema/root.json --out dist/schema.json
    $ json-schema-bundler bundle -s root.yaml -o a.json b.json
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from json_schema_bundler import __version__
from json_schema_bundler.bundler import BUNDLE_MODES, CYCLE_POLICIES, DEFAULT_MAX_DEPTH, bundle_schema
from json_schema_bundler.errors import BundleError
from json_schema_bundler.loader import DEFAULT_HTTP_TIMEOUT
from json_schema_bundler.writer import serialize_schema, write_outputs

PROG = "json-schema-bundler"


def _eprint(*args: object) -> None:
    print(*args, file=sys.stderr)


def _add_bundle_command(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "bundle",
        help="Resolve all references of the given schema and bundle it into a single file.",
        description="Resolve all references of the given schema and bundle it into a single file.",
    )
    p.add_argument(
        "--schema",
        "-s",
        required=True,
        help="The input schema filename (JSON or YAML) or http(s) URL.",
    )
    p.add_argument(
        "--out",
        "-o",
        required=True,
        nargs="+",
        action="extend",
        metavar="PATH",
        help="The output schema filename(s). Every path receives the same bundled document.",
    )
    p.add_argument(
        "--mode",
        choices=BUNDLE_MODES,
        default="bundle",
        help=(
            "'bundle' (default) hoists each external definition once into the root's definitions area and "
            "rewrites usages to internal refs. 'inline' copies the target into every usage."
        ),
    )
    p.add_argument(
        "--on-cycle",
        choices=CYCLE_POLICIES,
        default="keep",
        help="What to do if a $ref cycle is detected: keep it as an internal ref (default) or fail.",
    )
    p.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help="Maximum length of a $ref chain.",
    )
    p.add_argument(
        "--defs-key",
        default=None,
        help="Top-level key that receives hoisted definitions (default: '$defs' if the root has it, else 'definitions').",
    )
    p.add_argument(
        "--http-timeout",
        type=float,
        default=DEFAULT_HTTP_TIMEOUT,
        help="Timeout in seconds for fetching http(s) references.",
    )
    p.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )
    p.set_defaults(func=run_bundle)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Bundle a JSON Schema and everything it references into a single JSON document.",
    )
    parser.add_argument("--version", action="version", version=f"{PROG} {__version__}")
    subparsers = parser.add_subparsers(dest="command", metavar="command", required=True)
    _add_bundle_command(subparsers)
    return parser


def run_bundle(args: argparse.Namespace) -> int:
    try:
        doc = bundle_schema(
            args.schema,
            mode=args.mode,
            on_cycle=args.on_cycle,
            max_depth=args.max_depth,
            defs_key=args.defs_key,
            http_timeout=args.http_timeout,
        )
        content = serialize_schema(doc)
    except (BundleError, OSError, TypeError) as e:
        logging.debug("bundling failed", exc_info=True)
        _eprint(f"error: {e}")
        return 1

    results = asyncio.run(write_outputs(content, args.out))

    exit_code = 0
    for result in results:
        if result.ok:
            print(f"Successfully bundled schema: {result.path}")
        else:
            _eprint(f"error: failed to write {result.path}: {result.error}")
            exit_code = 1
    return exit_code


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
