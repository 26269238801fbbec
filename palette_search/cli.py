"""Command-line interface for palette_search."""

import sys
import json
import logging
import argparse
from dataclasses import replace
from typing import Iterable, Optional

from .catalog import load_catalog
from .config import SearchConfig, SearchContext
from .engine import QueryEngine
from .errors import (
    CatalogError, CorruptIndexEntry, IndexNotFound, PersistedStoreWriteFailure, PoolFull,
)
from .index_builder import run_indexing
from .store import JsonDirectoryStore

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="palette-search",
        description="Index an image corpus by dominant color and query it.",
    )
    parser.add_argument(
        "--store",
        default=None,
        help="Directory holding the persisted color index "
             "(default: $PALETTE_STORE_DIR or .palette_index).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build", help="Process the catalog and persist the color index.")
    build.add_argument("--catalog", required=True, help="Catalog JSON file.")
    build.add_argument(
        "--image-root",
        default=None,
        help="Directory relative image paths resolve against "
             "(default: the catalog's directory).",
    )

    search = sub.add_parser("search", help="Keyword search: category or #color tag.")
    search.add_argument("term", help="Category name, or dominant color tag such as '#red'.")
    search.add_argument("--catalog", required=True, help="Catalog JSON file.")
    search.add_argument("--cap", type=int, default=None, help="Maximum results.")

    color = sub.add_parser("color", help="Color search against the persisted index.")
    color.add_argument("color", help="Palette color name, e.g. 'red'.")
    color.add_argument(
        "--category",
        default="",
        help="Restrict to one category (default: sample every category).",
    )

    sub.add_parser("status", help="Show persisted index categories.")

    return parser.parse_args(list(argv) if argv is not None else None)


def _make_context(args: argparse.Namespace, catalog=None) -> SearchContext:
    config = SearchConfig.from_env()
    if args.store:
        config = replace(config, store_dir=args.store)
    if getattr(args, "image_root", None):
        config = replace(config, image_root=args.image_root)
    return SearchContext(
        config=config,
        store=JsonDirectoryStore(config.store_dir),
        catalog=catalog,
    )


def _print_paths(paths) -> None:
    for path in paths:
        print(path)


def main(argv: Optional[Iterable[str]] = None) -> int:
    """Entry point for the CLI."""
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        if args.command == "build":
            context = _make_context(args, load_catalog(args.catalog))
            report = run_indexing(context)
            print(json.dumps(report, indent=2))
            return 0 if report["success"] else 1

        if args.command == "search":
            context = _make_context(args, load_catalog(args.catalog))
            _print_paths(QueryEngine(context).search(args.term, args.cap))
            return 0

        if args.command == "color":
            context = _make_context(args)
            _print_paths(QueryEngine(context).search_color(args.category, args.color))
            return 0

        if args.command == "status":
            context = _make_context(args)
            categories = context.store.keys()
            print(f"{len(categories)} categories indexed in {context.config.store_dir}")
            _print_paths(categories)
            return 0

    except IndexNotFound as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except (CatalogError, CorruptIndexEntry, PoolFull, PersistedStoreWriteFailure) as e:
        logger.error(str(e))
        return 2

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
