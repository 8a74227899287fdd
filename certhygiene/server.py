import base64
import binascii
from pathlib import Path
from typing import Annotated, Optional

from fastmcp import FastMCP
from pydantic import Field

from .dispatcher import inspect, inspect_bytes
from .errors import CertHygieneError
from .logging_conf import setup_logging
from .settings import Settings

mcp = FastMCP(
    name="CertHygiene",
    instructions=(
        "Purpose: inspect certificates, private keys, CSRs and PKCS#12 bundles and report "
        "cryptographic hygiene issues. No network access, no file writes.\n\n"
        "Checks: weak signature/MAC algorithms (md2, md4, md5, sha1, RC4...), keys below 2048 bits, "
        "unencrypted private keys, and certificate verification.\n"
        "Without `ca_path`, certificates are only verified against themselves, which proves a "
        "self-signed certificate is intact and in date but is not a chain-of-trust check.\n\n"
        "How to call:\n"
        "- Local file → `inspect_from_local_path(path=..., password=?, ca_path=?)`.\n"
        "- Base64 file → `inspect_from_b64_string(filename=..., content_b64=..., password=?)`.\n"
        "  The filename extension selects the parser: .pfx/.p12, .pem, .csr, .key.\n\n"
        "Outputs: `{sections: [{artifact, kind, summary, findings, error}]}`; values that could not be "
        "determined are reported as `undetermined`. Failures are returned in an `error` field.\n\n"
        "Safety: read-only; passwords are never logged or persisted; private key material is never returned."
    ),
)


def _run(fn, *args, **kwargs) -> dict:
    try:
        report = fn(*args, **kwargs)
    except CertHygieneError as e:
        return {"error": f"{e.__class__.__name__}: {e}"}
    return {"ok": report.ok, **report.model_dump()}


@mcp.tool(
    description="Inspect a local certificate, key, CSR or PKCS#12 file and return a hygiene report.",
    tags={"certhygiene", "x509", "audit", "filesystem"},
    annotations={
        "title": "Inspect local file",
        "readOnlyHint": True,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
def inspect_from_local_path(
    path: Annotated[Path, Field(description="Local path to the target file.")],
    password: Annotated[
        Optional[str],
        Field(description="Passphrase for a PKCS#12 bundle or an encrypted private key. Leave null if not required."),
    ] = None,
    ca_path: Annotated[
        Optional[Path],
        Field(description="Optional PEM file of trusted CA certificates used for verification."),
    ] = None,
) -> dict:
    return _run(inspect, str(path), passphrase=password, ca_path=str(ca_path) if ca_path else None)


@mcp.tool(
    description=(
        "Inspect a certificate, key, CSR or PKCS#12 file provided as base64 and return a hygiene report. "
        "Use this when the client cannot expose a local path."
    ),
    tags={"certhygiene", "x509", "audit", "binary"},
    annotations={
        "title": "Inspect base64 content",
        "readOnlyHint": True,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
def inspect_from_b64_string(
    filename: Annotated[
        str,
        Field(description="Original filename; its extension selects the parser (not read from disk)."),
    ],
    content_b64: Annotated[str, Field(description="RFC 4648 raw base64-encoded bytes of the file")],
    password: Annotated[
        Optional[str],
        Field(description="Passphrase for a PKCS#12 bundle or an encrypted private key. Leave null if not required."),
    ] = None,
) -> dict:
    try:
        data = base64.b64decode(content_b64, validate=True)
    except (binascii.Error, ValueError):
        return {"error": "UsageError: content_b64 is not valid base64"}
    return _run(inspect_bytes, data, filename, passphrase=password)


def main() -> None:
    setup_logging(Settings.from_env())
    mcp.run()


if __name__ == "__main__":
    main()
