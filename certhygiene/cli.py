"""Command line entry point: ``certhygiene -f <file> [-p <passphrase>]``."""
from __future__ import annotations

import argparse
import getpass
import json
import logging
import sys
from typing import List, Optional

from .dispatcher import inspect
from .errors import CertHygieneError, UsageError
from .format_identify import SUPPORTED_EXTENSIONS
from .logging_conf import setup_logging
from .report import render_text
from .settings import Settings

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="certhygiene",
        description="Report cryptographic hygiene issues in certificates, keys, CSRs and PKCS#12 bundles.",
        epilog=f"Supported file types: {', '.join(SUPPORTED_EXTENSIONS)}",
    )
    parser.add_argument("-f", "--file", required=True, help="file to inspect")
    secret = parser.add_mutually_exclusive_group()
    secret.add_argument("-p", "--passphrase", help="passphrase for PKCS#12 bundles or encrypted keys")
    secret.add_argument("--ask-pass", action="store_true", help="prompt for the passphrase instead of passing it as an argument")
    parser.add_argument("--type", dest="extension", help="override the type implied by the file extension, e.g. .pem")
    parser.add_argument("--ca", help="PEM file of trusted CA certificates; default is to verify certificates against themselves")
    parser.add_argument("--json", action="store_true", help="print the report as JSON")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _parser().parse_args(argv)
    settings = Settings.from_env()
    setup_logging(settings)

    passphrase = getpass.getpass("Passphrase: ") if args.ask_pass else args.passphrase
    try:
        report = inspect(args.file, extension_hint=args.extension, passphrase=passphrase, ca_path=args.ca, settings=settings)
    except UsageError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except CertHygieneError as e:
        print(f"error: {e.__class__.__name__}: {e}", file=sys.stderr)
        return EXIT_FAILED

    if args.json:
        print(json.dumps(report.model_dump(), indent=2))
    else:
        print(render_text(report))
    return EXIT_OK if report.ok else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
