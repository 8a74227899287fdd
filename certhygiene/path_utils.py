import os
import pathlib
from urllib.parse import urlparse, unquote

from .errors import ParseError, UsageError

def _norm(p: pathlib.Path) -> pathlib.Path:
    return p.expanduser().resolve(strict=False)

def parse_file_uri(uri_or_path: str) -> pathlib.Path:
    if uri_or_path.startswith("file://"):
        parsed = urlparse(uri_or_path)
        return pathlib.Path(unquote(parsed.path or ""))
    return pathlib.Path(uri_or_path)

def resolve_path(path_like: str | os.PathLike[str]) -> pathlib.Path:
    return _norm(parse_file_uri(str(path_like)))

def read_artifact(path: pathlib.Path, max_bytes: int) -> bytes:
    """Read at most ``max_bytes`` from ``path``; larger files are rejected."""
    try:
        with path.open("rb") as fh:
            data = fh.read(max_bytes + 1)
    except FileNotFoundError as e:
        raise UsageError(f"file not found: {path}") from e
    except IsADirectoryError as e:
        raise UsageError(f"not a file: {path}") from e
    except OSError as e:
        raise UsageError(f"cannot read {path}: {e.strerror}") from e
    if len(data) > max_bytes:
        raise ParseError(f"{path} exceeds the {max_bytes}-byte input limit")
    return data
