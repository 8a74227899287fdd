from pathlib import PurePath
from typing import Optional

from .errors import UnrecognizedFormat

SUPPORTED_EXTENSIONS = (".pfx", ".p12", ".pem", ".csr", ".key")

_KINDS = {
    ".pfx": "pfx",
    ".p12": "pfx",
    ".pem": "pem",
    ".csr": "csr",
    ".key": "key",
}


def guess_kind(filename: Optional[str], extension_hint: Optional[str] = None) -> str:
    """Map an explicit extension hint, or else the filename suffix, to a parser kind."""
    ext = extension_hint or (PurePath(filename).suffix if filename else "")
    ext = ext.lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    kind = _KINDS.get(ext)
    if kind is None:
        raise UnrecognizedFormat(
            f"unsupported file type {ext or '(none)'}; expected one of {', '.join(SUPPORTED_EXTENSIONS)}"
        )
    return kind
