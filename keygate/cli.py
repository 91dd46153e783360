"""
Admin command line for the record store.

Works directly on the configured store, so it must not run while the
server holds the same JSON file open for writing.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from keygate import service
from keygate.config import get_settings
from keygate.dependencies import get_store

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Keygate record store admin")
    sub = parser.add_subparsers(dest="command", required=True)

    issue = sub.add_parser("issue", help="Issue a new access key")
    issue.add_argument(
        "-d",
        "--duration",
        type=int,
        required=True,
        help="Days until the key expires",
    )
    issue.add_argument(
        "--created-by",
        type=str,
        default="cli",
        help="Label recorded as the key issuer",
    )

    sub.add_parser("keys", help="List all access keys")
    sub.add_parser("registrations", help="List email registrations")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
        stream=sys.stderr,
    )

    store = get_store()
    if args.command == "issue":
        record = service.issue_key(
            store,
            args.duration,
            args.created_by,
            prefix=settings.key_prefix,
            length=settings.key_length,
        )
        output = record.as_dict()
    elif args.command == "keys":
        output = [k.as_dict() for k in store.list_keys()]
    else:
        output = [r.as_dict() for r in store.list_registrations()]

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
