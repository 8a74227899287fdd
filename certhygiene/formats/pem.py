from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..errors import ParseError
from ..settings import DEFAULT_MAX_INPUT_BYTES

log = logging.getLogger(__name__)

MAX_BLOCKS = 64
# system CA bundles hold a few hundred certificates
MAX_TRUST_ANCHORS = 4096

_BEGIN = re.compile(rb"-----BEGIN ([A-Z0-9 ]+)-----")

CERT_LABELS = ("CERTIFICATE", "X509 CERTIFICATE")
CSR_LABELS = ("CERTIFICATE REQUEST", "NEW CERTIFICATE REQUEST")
ENCRYPTED_PKCS8_LABEL = "ENCRYPTED PRIVATE KEY"
KEY_LABELS = (
    "PRIVATE KEY",
    ENCRYPTED_PKCS8_LABEL,
    "RSA PRIVATE KEY",
    "EC PRIVATE KEY",
    "DSA PRIVATE KEY",
)


@dataclass(frozen=True)
class PemBlock:
    label: str
    der: bytes = field(repr=False)
    # full armored text, needed by loaders that handle RFC 1421 encryption headers
    text: bytes = field(repr=False)
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def legacy_encrypted(self) -> bool:
        return self.headers.get("Proc-Type", "").replace(" ", "").upper() == "4,ENCRYPTED"


def check_size(data: bytes, limit: int = DEFAULT_MAX_INPUT_BYTES) -> None:
    if not data:
        raise ParseError("empty input")
    if len(data) > limit:
        raise ParseError(f"input of {len(data)} bytes exceeds the {limit}-byte limit")


def looks_like_pem(data: bytes) -> bool:
    # text dumps such as `openssl x509 -text` may precede the armor
    return _BEGIN.search(data) is not None


def _split_headers(lines: List[bytes]) -> tuple[Dict[str, str], List[bytes]]:
    headers: Dict[str, str] = {}
    if not lines or b":" not in lines[0]:
        return headers, lines
    i = 0
    while i < len(lines) and lines[i].strip():
        name, _, value = lines[i].decode("ascii", "replace").partition(":")
        headers[name.strip()] = value.strip()
        i += 1
    return headers, lines[i + 1:]


def _decode_block(label: str, text: bytes) -> Optional[PemBlock]:
    lines = [ln.strip() for ln in text.splitlines()[1:-1]]
    headers, body = _split_headers(lines)
    try:
        der = base64.b64decode(b"".join(body), validate=True)
    except (binascii.Error, ValueError):
        log.debug("skipping PEM block %s with invalid base64 body", label)
        return None
    if not der:
        return None
    return PemBlock(label=label, der=der, text=text, headers=headers)


def iter_blocks(
    data: bytes,
    labels: Optional[Iterable[str]] = None,
    limit: int = MAX_BLOCKS,
) -> List[PemBlock]:
    """Return the decodable PEM blocks of ``data`` in file order.

    ``labels`` restricts the result to the given armor labels. Input holding
    more than ``limit`` blocks raises ParseError rather than being truncated.
    """
    wanted = set(labels) if labels is not None else None
    blocks: List[PemBlock] = []
    i = 0
    examined = 0
    while True:
        m = _BEGIN.search(data, i)
        if not m:
            break
        examined += 1
        if examined > limit:
            raise ParseError(f"input holds more than {limit} PEM blocks")
        label = m.group(1).decode("ascii")
        end = b"-----END " + m.group(1) + b"-----"
        e = data.find(end, m.end())
        if e == -1:
            log.debug("unterminated PEM block %s", label)
            break
        e2 = e + len(end)
        i = e2
        if wanted is not None and label not in wanted:
            continue
        block = _decode_block(label, data[m.start():e2])
        if block is not None:
            blocks.append(block)
    return blocks


def first_block(data: bytes, labels: Iterable[str]) -> Optional[PemBlock]:
    blocks = iter_blocks(data, labels)
    return blocks[0] if blocks else None
