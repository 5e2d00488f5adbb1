"""Command line interface for the cabinet quoter.

Sub-commands:

* ``eval`` evaluates a part formula against ``--var name=value`` bindings.
* ``price`` prices one cabinet from a catalog and prints the breakdown.
* ``table`` prints the width-band price table for a cabinet.
* ``cutlist`` prints (or writes) the cutlist CSV for a cabinet.
* ``print-env`` dumps the redacted runtime configuration.

Catalogs are read from a JSON document, a directory of CSV exports, or, when
``--catalog`` is omitted, the REST backend named by
``CABINET_QUOTER_CATALOG_URL``.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterable

from cabinet_quoter.catalog import (
    Catalog,
    CatalogError,
    CatalogSource,
    CSVCatalogSource,
    JSONCatalogSource,
    RestCatalogSource,
    load_catalog,
)
from cabinet_quoter.config import ConfigError, configure_logging, describe_runtime_environment
from cabinet_quoter.configurator import ConfigurationError
from cabinet_quoter.formula import FormulaError, evaluate_formula
from cabinet_quoter.pricing.aggregator import PriceAggregator, PriceRequest, PricingError
from cabinet_quoter.pricing.cutlist import export_cutlists_csv, generate_cutlist
from cabinet_quoter.pricing.hardware import hardware_cost
from cabinet_quoter.pricing.math_helpers import format_price
from cabinet_quoter.pricing.price_table import generate_price_table

logger = logging.getLogger(__name__)

EXIT_USAGE_ERROR = 2
_HANDLED_ERRORS = (CatalogError, ConfigError, ConfigurationError, FormulaError, PricingError)


def _parse_binding(text: str) -> tuple[str, float]:
    name, sep, raw = text.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected name=value, got {text!r}")
    try:
        value = float(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"value for {name.strip()!r} must be numeric") from None
    return name.strip().lower(), value


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )


def _add_catalog_arguments(parser: argparse.ArgumentParser, *, dimensions: bool = True) -> None:
    parser.add_argument(
        "--catalog",
        help="Catalog JSON file or directory of CSV exports (default: REST backend from the environment).",
    )
    parser.add_argument("--cabinet", required=True, help="Cabinet type id or name.")
    parser.add_argument("--door-style", help="Door style id.")
    parser.add_argument("--color", help="Color id.")
    if not dimensions:
        return
    parser.add_argument("--width", type=float, help="Width in mm (default: cabinet default).")
    parser.add_argument("--height", type=float, help="Height in mm (default: cabinet default).")
    parser.add_argument("--depth", type=float, help="Depth in mm (default: cabinet default).")
    parser.add_argument("--quantity", type=int, default=1, help="Number of cabinets (default: 1).")
    parser.add_argument("--finish", help="Finish id.")


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cabinet-quoter",
        description="Price configurable kitchen cabinets from catalog formulas.",
    )
    _add_common_arguments(parser)

    subparsers = parser.add_subparsers(dest="command", required=True)

    eval_parser = subparsers.add_parser("eval", help="Evaluate a part formula.")
    eval_parser.add_argument("formula", help="Formula text, e.g. '(width/1000*height/1000)*mat_rate_per_sqm'.")
    eval_parser.add_argument(
        "--var",
        dest="bindings",
        action="append",
        type=_parse_binding,
        default=[],
        metavar="NAME=VALUE",
        help="Bind a formula variable (repeatable).",
    )
    eval_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on malformed formulas instead of evaluating them to 0.",
    )
    eval_parser.set_defaults(handler=handle_eval)

    price_parser = subparsers.add_parser("price", help="Price one cabinet configuration.")
    _add_catalog_arguments(price_parser)
    price_parser.add_argument("--hardware-brand", help="Hardware brand id.")
    price_parser.add_argument("--json", action="store_true", help="Emit the breakdown as JSON.")
    price_parser.set_defaults(handler=handle_price)

    table_parser = subparsers.add_parser("table", help="Print the width-band price table.")
    _add_catalog_arguments(table_parser, dimensions=False)
    table_parser.set_defaults(handler=handle_table)

    cutlist_parser = subparsers.add_parser("cutlist", help="Export a cutlist CSV.")
    _add_catalog_arguments(cutlist_parser)
    cutlist_parser.add_argument("--output", help="Write the CSV to this path as well as stdout.")
    cutlist_parser.set_defaults(handler=handle_cutlist)

    env_parser = subparsers.add_parser("print-env", help="Dump the runtime configuration.")
    env_parser.set_defaults(handler=handle_print_env)

    return parser


def _open_source(location: str | None) -> CatalogSource:
    if not location:
        return RestCatalogSource.from_env()
    path = Path(location)
    if path.is_dir():
        return CSVCatalogSource(path)
    return JSONCatalogSource(path)


def _load(args: argparse.Namespace) -> Catalog:
    return load_catalog(_open_source(args.catalog))


def handle_eval(args: argparse.Namespace) -> int:
    bindings = dict(args.bindings)
    value = evaluate_formula(args.formula, bindings, strict=args.strict)
    print(round(value, 6))
    return 0


def handle_price(args: argparse.Namespace) -> int:
    catalog = _load(args)
    cabinet_type = catalog.find_cabinet_type(args.cabinet)
    settings = catalog.pricing_settings()
    hardware = hardware_cost(
        cabinet_type,
        args.hardware_brand,
        catalog.requirements_for(cabinet_type.id),
        catalog.hardware_options,
    )
    request = PriceRequest(
        cabinet_type=cabinet_type,
        width=args.width,
        height=args.height,
        depth=args.depth,
        quantity=args.quantity,
        door_style=catalog.optional("door_style", args.door_style),
        finish=catalog.optional("finish", args.finish),
        color=catalog.optional("color", args.color),
        hardware_cost=hardware,
    )
    breakdown = PriceAggregator(settings).price(request)

    if args.json:
        print(json.dumps(breakdown.to_dict(), indent=2))
        return 0

    width, height, depth = request.dimensions()
    print(f"{cabinet_type.name} {width:g}×{height:g}×{depth:g}mm × {breakdown.quantity}")
    for label, amount in (
        ("Carcass", breakdown.carcass),
        ("Doors", breakdown.doors),
        ("Hardware", breakdown.hardware),
        ("Surcharges", breakdown.surcharges),
        ("Subtotal", breakdown.subtotal),
        ("Wastage", breakdown.wastage),
        ("Markup", breakdown.markup),
        ("GST", breakdown.gst),
        ("Unit price", breakdown.unit_price),
        ("Total", breakdown.total_price),
    ):
        print(f"  {label:<11}{format_price(amount):>14}")
    return 0


def handle_table(args: argparse.Namespace) -> int:
    catalog = _load(args)
    cabinet_type = catalog.find_cabinet_type(args.cabinet)
    finishes = catalog.finishes_for(args.door_style)
    if not finishes:
        raise CatalogError("No finishes available for the price table")
    frame = generate_price_table(
        cabinet_type,
        finishes,
        PriceAggregator(catalog.pricing_settings()),
        catalog.price_ranges_for(cabinet_type.id),
        door_style=catalog.optional("door_style", args.door_style),
        color=catalog.optional("color", args.color),
    )
    print(frame.to_string())
    return 0


def handle_cutlist(args: argparse.Namespace) -> int:
    catalog = _load(args)
    cabinet_type = catalog.find_cabinet_type(args.cabinet)
    cutlist = generate_cutlist(
        cabinet_type,
        cabinet_type.default_width_mm if args.width is None else args.width,
        cabinet_type.default_height_mm if args.height is None else args.height,
        cabinet_type.default_depth_mm if args.depth is None else args.depth,
        args.quantity,
        catalog.pricing_settings(),
        door_style=catalog.optional("door_style", args.door_style),
        finish=catalog.optional("finish", args.finish),
    )
    sys.stdout.write(export_cutlists_csv([cutlist], args.output))
    return 0


def handle_print_env(args: argparse.Namespace) -> int:
    print(json.dumps(describe_runtime_environment(), indent=2, sort_keys=True))
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)
    handler = args.handler
    try:
        return handler(args)
    except _HANDLED_ERRORS as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_USAGE_ERROR


if __name__ == "__main__":  # pragma: no cover - exercised via module execution
    raise SystemExit(main())
