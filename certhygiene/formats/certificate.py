from __future__ import annotations

import logging
from typing import List

from cryptography import x509

from ..errors import ParseError
from ..models import ParsedCertificate
from ..x509meta import public_key_info, rfc4514, signature_algorithm, validity
from . import pem

log = logging.getLogger(__name__)


def certificate_from_der(der: bytes) -> ParsedCertificate:
    try:
        cert = x509.load_der_x509_certificate(der)
        not_before, not_after = validity(cert)
        subject = rfc4514(cert.subject)
        issuer = rfc4514(cert.issuer)
        sig = signature_algorithm(cert)
    except ValueError as e:
        raise ParseError(f"malformed X.509 certificate: {e}") from e

    if not_before > not_after:
        raise ParseError("certificate notBefore is later than notAfter")

    algo, bits = public_key_info(cert)
    return ParsedCertificate(
        subject=subject,
        issuer=issuer,
        not_before=not_before,
        not_after=not_after,
        key_algorithm=algo,
        key_bits=bits,
        signature_algorithm=sig,
        der=der,
    )


def parse_certificates(data: bytes, limit: int = pem.MAX_BLOCKS) -> List[ParsedCertificate]:
    """Parse every certificate of a PEM bundle, or the single DER certificate.

    Bundles with more than ``limit`` PEM blocks raise ParseError.
    """
    pem.check_size(data)
    if not pem.looks_like_pem(data):
        return [certificate_from_der(data)]

    blocks = pem.iter_blocks(data, pem.CERT_LABELS, limit)
    if not blocks:
        raise ParseError("no CERTIFICATE block found in PEM input")
    return [certificate_from_der(b.der) for b in blocks]


def parse_certificate(data: bytes) -> ParsedCertificate:
    """Parse the first certificate of ``data`` (PEM or DER)."""
    pem.check_size(data)
    if pem.looks_like_pem(data):
        block = pem.first_block(data, pem.CERT_LABELS)
        if block is None:
            raise ParseError("no CERTIFICATE block found in PEM input")
        log.debug("decoding %s PEM block", block.label)
        return certificate_from_der(block.der)
    return certificate_from_der(data)
