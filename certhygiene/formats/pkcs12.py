"""PKCS#12 (PFX) bundles.

The outer PFX structure is decoded with pyasn1 so that the integrity MAC
algorithm and the key bag types can be read without the password. Opening
the bundle itself is left to ``cryptography``.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional, Tuple

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.hazmat.primitives.serialization.pkcs12 import load_key_and_certificates
from pyasn1.codec.ber import decoder as ber_decoder
from pyasn1.error import PyAsn1Error
from pyasn1.type import univ
from pyasn1_modules import rfc7292

from ..common import secret_bytes
from ..errors import AuthenticationFailed, ParseError
from ..models import ParsedKey, ParsedPfxBundle, PfxEntry
from ..oids import DATA, ENCRYPTED_DATA, ENVELOPED_DATA, KEY_BAG, SHROUDED_KEY_BAG, digest_name
from . import pem
from .certificate import certificate_from_der
from .pkcs8 import Passphrase, describe_key, encrypted_key_protection

log = logging.getLogger(__name__)

MAX_SAFE_CONTENTS = 32
MAX_SAFE_BAGS = 256

KeyBag = Tuple[str, Optional[str]]


def _dotted(oid) -> str:
    return ".".join(str(x) for x in oid.asTuple())


def _decode(substrate: bytes, spec):
    obj, rest = ber_decoder.decode(substrate, asn1Spec=spec)
    if rest:
        raise ParseError("trailing data after PKCS#12 structure")
    return obj


def _decode_pfx(data: bytes):
    try:
        return _decode(data, rfc7292.PFX())
    except PyAsn1Error as e:
        raise ParseError(f"malformed PKCS#12 bundle: {e}") from e


def _mac_info(pfx) -> Tuple[Optional[str], Optional[int]]:
    mac_data = pfx["macData"]
    if not mac_data.isValue:
        return None, None
    oid = _dotted(mac_data["mac"]["digestAlgorithm"]["algorithm"])
    return digest_name(oid), int(mac_data["iterations"])


def _key_bags(pfx) -> Tuple[List[KeyBag], bool]:
    """Key bags visible without decryption, and whether encrypted content exists.

    Each bag is reported as ``(encryption_state, protection_algorithm)``.
    """
    if _dotted(pfx["authSafe"]["contentType"]) != DATA:
        # public-key integrity mode (signedData): nothing readable
        return [], True

    bags: List[KeyBag] = []
    has_encrypted = False
    seen = 0
    try:
        payload = _decode(bytes(pfx["authSafe"]["content"]), univ.OctetString())
        auth_safe = _decode(bytes(payload), rfc7292.AuthenticatedSafe())
        if len(auth_safe) > MAX_SAFE_CONTENTS:
            raise ParseError(f"PKCS#12 bundle holds more than {MAX_SAFE_CONTENTS} contents")
        for ci in auth_safe:
            ct = _dotted(ci["contentType"])
            if ct in (ENCRYPTED_DATA, ENVELOPED_DATA):
                has_encrypted = True
                continue
            if ct != DATA:
                continue
            inner = _decode(bytes(ci["content"]), univ.OctetString())
            for bag in _decode(bytes(inner), rfc7292.SafeContents()):
                seen += 1
                if seen > MAX_SAFE_BAGS:
                    raise ParseError(f"PKCS#12 bundle holds more than {MAX_SAFE_BAGS} bags")
                bag_id = _dotted(bag["bagId"])
                if bag_id == KEY_BAG:
                    bags.append(("plaintext", None))
                elif bag_id == SHROUDED_KEY_BAG:
                    bags.append(("encrypted", encrypted_key_protection(bytes(bag["bagValue"]))))
    except PyAsn1Error as e:
        raise ParseError(f"malformed PKCS#12 safe contents: {e}") from e
    return bags, has_encrypted


def parse_pfx(data: bytes, passphrase: Passphrase = None) -> ParsedPfxBundle:
    """Decode a PKCS#12 bundle.

    Without a passphrase only the MAC parameters are returned. With one, the
    bundle is opened and every certificate and key is extracted; a failure to
    open a well-formed bundle raises AuthenticationFailed.
    """
    pem.check_size(data)
    pfx = _decode_pfx(data)
    mac_algorithm, mac_iterations = _mac_info(pfx)
    if not passphrase:
        return ParsedPfxBundle(mac_algorithm=mac_algorithm, mac_iterations=mac_iterations)

    key_bags, has_encrypted = _key_bags(pfx)
    try:
        key, cert, additional = load_key_and_certificates(data, secret_bytes(passphrase))
    except UnsupportedAlgorithm as e:
        raise ParseError(f"unsupported PKCS#12 protection: {e}") from e
    except (ValueError, TypeError) as e:
        raise AuthenticationFailed("could not open PKCS#12 bundle: wrong passphrase?") from e

    leaf = certificate_from_der(cert.public_bytes(Encoding.DER)) if cert is not None else None
    parsed_key: Optional[ParsedKey] = None
    if key is not None:
        if key_bags:
            state, protection = key_bags[0]
        else:
            state, protection = ("encrypted" if has_encrypted else "plaintext"), None
        parsed_key = dataclasses.replace(
            describe_key(key, state, protection),
            certificate_subject=leaf.subject if leaf is not None else None,
        )

    entries: List[PfxEntry] = []
    if leaf is not None or parsed_key is not None:
        entries.append(PfxEntry(certificate=leaf, key=parsed_key))
    for extra in additional or []:
        entries.append(PfxEntry(certificate=certificate_from_der(extra.public_bytes(Encoding.DER)), key=None))
    log.debug("extracted %d entries from PKCS#12 bundle", len(entries))

    return ParsedPfxBundle(
        mac_algorithm=mac_algorithm,
        mac_iterations=mac_iterations,
        entries=tuple(entries),
        extracted=True,
    )
