from __future__ import annotations

import logging
from typing import Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.serialization import load_der_private_key, load_pem_private_key
from pyasn1.codec.der import decoder as der_decoder
from pyasn1.error import PyAsn1Error
from pyasn1_modules import rfc5208, rfc8018

from ..common import secret_bytes
from ..errors import AuthenticationFailed, ParseError, UndeterminedProperty
from ..models import ParsedKey
from ..oids import CIPHER_NAMES, PBE_NAMES, PBES2
from ..x509meta import key_algorithm, key_bits
from . import pem

log = logging.getLogger(__name__)

Passphrase = Union[str, bytes, bytearray, None]


def _dotted(oid) -> str:
    return ".".join(str(x) for x in oid.asTuple())


def _decode_exact(der: bytes, spec):
    obj, rest = der_decoder.decode(der, asn1Spec=spec)
    if rest:
        raise PyAsn1Error("trailing data after structure")
    return obj


def encrypted_key_protection(der: bytes) -> Optional[str]:
    """Name the scheme protecting a DER EncryptedPrivateKeyInfo.

    Returns None when ``der`` is not an EncryptedPrivateKeyInfo.
    """
    try:
        epki = _decode_exact(der, rfc5208.EncryptedPrivateKeyInfo())
    except PyAsn1Error:
        return None

    algo_oid = _dotted(epki["encryptionAlgorithm"]["algorithm"])
    if algo_oid != PBES2:
        return PBE_NAMES.get(algo_oid, algo_oid)
    try:
        params, _ = der_decoder.decode(bytes(epki["encryptionAlgorithm"]["parameters"]), asn1Spec=rfc8018.PBES2_params())
        enc_oid = _dotted(params["encryptionScheme"]["algorithm"])
    except PyAsn1Error:
        return "PBES2"
    return f"PBES2/{CIPHER_NAMES.get(enc_oid, enc_oid)}"


def _plaintext_algorithm(der: bytes) -> Optional[str]:
    # algorithm OID of a PKCS#8 key whose type cryptography does not load
    try:
        pki = _decode_exact(der, rfc5208.PrivateKeyInfo())
    except PyAsn1Error:
        return None
    return _dotted(pki["privateKeyAlgorithm"]["algorithm"])


def _legacy_protection(block: pem.PemBlock) -> str:
    cipher, _, _iv = block.headers.get("DEK-Info", "").partition(",")
    return cipher.strip() or "unknown"


def describe_key(key, encryption: str, protection: Optional[str]) -> ParsedKey:
    algo = key_algorithm(key)
    try:
        bits: Optional[int] = key_bits(key)
    except UndeterminedProperty as e:
        log.debug("%s", e)
        bits = None
    return ParsedKey(algorithm=algo, key_bits=bits, encryption=encryption, protection_algorithm=protection)


def parse_key(data: bytes, passphrase: Passphrase = None) -> ParsedKey:
    """Parse a PEM (PKCS#8 or traditional PKCS#1/SEC1) or DER private key.

    The encryption state is always determined. Algorithm and size of an
    encrypted key are only known after decryption, so without a passphrase
    they are returned as None.
    """
    pem.check_size(data)
    if pem.looks_like_pem(data):
        block = pem.first_block(data, pem.KEY_LABELS)
        if block is None:
            raise ParseError("no PRIVATE KEY block found in PEM input")
        if block.label == pem.ENCRYPTED_PKCS8_LABEL:
            protection = encrypted_key_protection(block.der) or "unknown"
            encrypted = True
        elif block.legacy_encrypted:
            protection = _legacy_protection(block)
            encrypted = True
        else:
            protection = None
            encrypted = False
        material, loader, der = block.text, load_pem_private_key, block.der
    else:
        protection = encrypted_key_protection(data)
        encrypted = protection is not None
        material, loader, der = data, load_der_private_key, data

    if encrypted and not passphrase:
        return ParsedKey(algorithm=None, key_bits=None, encryption="encrypted", protection_algorithm=protection)

    try:
        key = loader(material, password=secret_bytes(passphrase) if encrypted else None)
    except UnsupportedAlgorithm as e:
        algo = None if encrypted else _plaintext_algorithm(der)
        if algo is None:
            raise ParseError(f"unsupported private key: {e}") from e
        return ParsedKey(algorithm=algo, key_bits=None, encryption="plaintext")
    except (ValueError, TypeError) as e:
        if encrypted:
            raise AuthenticationFailed("could not decrypt private key: wrong passphrase?") from e
        raise ParseError(f"malformed private key: {e}") from e

    return describe_key(key, "encrypted" if encrypted else "plaintext", protection)
