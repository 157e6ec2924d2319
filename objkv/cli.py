"""CLI for the objkv key/value backend."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger

from objkv.backend import Entry
from objkv.exceptions import ObjKVError
from objkv.logging_config import setup_logging
from objkv.registry import open_backend
from objkv.settings import Settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="objkv", description="Key/value entries on an object store")
    parser.add_argument("--config", type=Path, help="YAML settings file (default: $OBJKV_CONFIG or config/default.yaml)")
    parser.add_argument("--log-level", help="Override the configured log level")
    sub = parser.add_subparsers(dest="command", required=True)

    put = sub.add_parser("put", help="Write an entry")
    put.add_argument("key")
    source = put.add_mutually_exclusive_group(required=True)
    source.add_argument("--value", help="UTF-8 value")
    source.add_argument("--file", type=Path, help="Read the value from a file")

    get = sub.add_parser("get", help="Print an entry's value")
    get.add_argument("key")

    delete = sub.add_parser("delete", help="Delete an entry")
    delete.add_argument("key")

    ls = sub.add_parser("list", help="List names under a prefix")
    ls.add_argument("prefix", nargs="?", default="")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    settings = Settings.load(args.config)
    setup_logging(
        level=args.log_level or settings.logging.level,
        json_format=settings.logging.json_format,
        log_file=Path(settings.logging.log_file) if settings.logging.log_file else None,
    )

    try:
        backend = open_backend(settings)
        if args.command == "put":
            value = args.file.read_bytes() if args.file else args.value.encode("utf-8")
            backend.put(Entry(key=args.key, value=value))
        elif args.command == "get":
            entry = backend.get(args.key)
            if entry is None:
                logger.warning("Key not found: {}", args.key)
                return 1
            sys.stdout.buffer.write(entry.value)
        elif args.command == "delete":
            backend.delete(args.key)
        elif args.command == "list":
            for name in backend.list(args.prefix):
                print(name)
    except ObjKVError as exc:
        logger.error("{}: {}", type(exc).__name__, exc.message)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
