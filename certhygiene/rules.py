"""Hygiene rules evaluated over parsed entities.

``RULES`` maps a rule name to a check; checks run in insertion order and
every applicable check runs. A check returns the findings it produced, or
an empty list when it passes or does not apply to the entity.
"""
from __future__ import annotations

import re
from typing import Callable, Dict, List, Optional, Union

from .common import HygieneFinding
from .models import ParsedCertificate, ParsedCSR, ParsedKey, ParsedPfxBundle

Entity = Union[ParsedCertificate, ParsedCSR, ParsedKey, ParsedPfxBundle]
Check = Callable[[Entity], List[HygieneFinding]]

WEAK_ALGORITHMS = (
    "md2",
    "md4",
    "md5",
    "sha1",
    "sha1WithRSAEncryption",
    "ecdsa-with-SHA1",
    "DSA-SHA1",
    "RC4",
)

# minimum bit length per key family
MIN_KEY_BITS = {"RSA": 2048, "DSA": 2048, "EC": 224}

# separators, plus the camel-case joints of OpenSSL names such as
# "sha1WithRSAEncryption" or "pbeWithSHA1And128BitRC4"
_TOKEN_SPLIT = re.compile(r"[^A-Za-z0-9]+|(?<=[a-z0-9])(?:With|And)(?=[A-Z0-9])|(?<=\dBit)(?=[A-Z])")

_WEAK_LOWER = [(w.lower(), w) for w in WEAK_ALGORITHMS]


def algorithm_tokens(identifier: str) -> List[str]:
    return [t.lower() for t in _TOKEN_SPLIT.split(identifier) if t]


def match_weak_algorithm(identifier: Optional[str]) -> Optional[str]:
    """Return the weak-set entry ``identifier`` matches, if any.

    The whole identifier is compared first so that e.g.
    ``sha1WithRSAEncryption`` is reported as itself; otherwise its tokens are
    compared in weak-set order. Matching is set membership, never substring
    search.
    """
    if not identifier:
        return None
    whole = identifier.strip().lower()
    for lower, canonical in _WEAK_LOWER:
        if whole == lower:
            return canonical
    tokens = set(algorithm_tokens(identifier))
    for lower, canonical in _WEAK_LOWER:
        if lower in tokens:
            return canonical
    return None


def _weak_algorithm(entity: Entity) -> List[HygieneFinding]:
    if isinstance(entity, (ParsedCertificate, ParsedCSR)):
        identifier, what = entity.signature_algorithm, "Signature algorithm"
    elif isinstance(entity, ParsedKey):
        identifier, what = entity.protection_algorithm, "Key protection algorithm"
    else:
        return []
    hit = match_weak_algorithm(identifier)
    if hit is None:
        return []
    return [HygieneFinding("weak_algorithm", f"{what} {identifier} uses {hit}, which is considered weak")]


def _short_key(entity: Entity) -> List[HygieneFinding]:
    if isinstance(entity, (ParsedCertificate, ParsedCSR)):
        algorithm, bits = entity.key_algorithm, entity.key_bits
    elif isinstance(entity, ParsedKey):
        algorithm, bits = entity.algorithm, entity.key_bits
    else:
        return []

    minimum = MIN_KEY_BITS.get(algorithm or "")
    if bits is None or minimum is None:
        return [HygieneFinding("short_key", "Could not determine key length", "info")]
    if bits < minimum:
        return [HygieneFinding(
            "short_key",
            f"Key length is {bits} bits, below the {minimum}-bit minimum for {algorithm} keys",
        )]
    return []


def _unencrypted_key(entity: Entity) -> List[HygieneFinding]:
    if isinstance(entity, ParsedKey) and entity.encryption == "plaintext":
        return [HygieneFinding("unencrypted_key", "Private key is not encrypted")]
    return []


def _weak_mac(entity: Entity) -> List[HygieneFinding]:
    if not isinstance(entity, ParsedPfxBundle):
        return []
    if entity.mac_algorithm is None:
        return [HygieneFinding("weak_mac", "Bundle carries no password integrity MAC", "info")]
    hit = match_weak_algorithm(entity.mac_algorithm)
    if hit is None:
        return []
    return [HygieneFinding("weak_mac", f"MAC algorithm {entity.mac_algorithm} uses {hit}, which is considered weak")]


RULES: Dict[str, Check] = {
    "weak_algorithm": _weak_algorithm,
    "short_key": _short_key,
    "unencrypted_key": _unencrypted_key,
    "weak_mac": _weak_mac,
}


def evaluate(entity: Entity) -> List[HygieneFinding]:
    findings: List[HygieneFinding] = []
    for check in RULES.values():
        findings.extend(check(entity))
    return findings
