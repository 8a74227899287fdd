"""Certificate chain verification.

Without an explicit CA the trust set is the certificates of the inspected
artifact itself, the same thing ``openssl verify -CAfile cert.pem cert.pem``
does. That only proves a self-signed certificate is intact and in date; it is
not a chain-of-trust check, and results carry ``mode="self"`` so reports can
say so.
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import Dict, List, Optional, Sequence

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm

from .common import HygieneFinding, utc_now
from .models import ParsedCertificate, VerificationMode, VerificationResult

log = logging.getLogger(__name__)

MAX_DEPTH = 8

OK = "ok"
EXPIRED = "expired"
NOT_YET_VALID = "not yet valid"
UNKNOWN_ISSUER = "unknown issuer"
SIGNATURE_MISMATCH = "signature mismatch"
UNSUPPORTED = "unsupported signature algorithm"
TOO_LONG = "chain too long"


def _time_reason(cert: ParsedCertificate, now: dt.datetime) -> Optional[str]:
    if now > cert.not_after:
        return EXPIRED
    if now < cert.not_before:
        return NOT_YET_VALID
    return None


def _signed_by(child: ParsedCertificate, issuer: ParsedCertificate) -> Optional[str]:
    try:
        x509.load_der_x509_certificate(child.der).verify_directly_issued_by(
            x509.load_der_x509_certificate(issuer.der)
        )
    except InvalidSignature:
        return SIGNATURE_MISMATCH
    except (ValueError, TypeError, UnsupportedAlgorithm):
        # names already match here, so this is an algorithm the library will not
        # check, e.g. md5 or sha1 signatures on current cryptography releases
        return UNSUPPORTED
    return None


def verify(
    certificate: ParsedCertificate,
    trust_anchors: Optional[Sequence[ParsedCertificate]] = None,
    now: Optional[dt.datetime] = None,
    mode: VerificationMode = "self",
) -> VerificationResult:
    """Verify ``certificate`` against ``trust_anchors``.

    With no anchors the certificate is verified against itself. The path is
    built by issuer name through the anchors and stops at the first
    self-issued certificate, or fails after ``MAX_DEPTH`` links.
    """
    now = now or utc_now()
    anchors: List[ParsedCertificate] = list(trust_anchors) if trust_anchors else [certificate]
    by_subject: Dict[str, List[ParsedCertificate]] = {}
    for a in anchors:
        by_subject.setdefault(a.subject, []).append(a)

    current = certificate
    for _depth in range(MAX_DEPTH):
        reason = _time_reason(current, now)
        if reason:
            return VerificationResult(False, reason, mode)

        candidates = by_subject.get(current.issuer, [])
        if not candidates:
            return VerificationResult(False, UNKNOWN_ISSUER, mode)

        failure = None
        issuer = None
        for cand in candidates:
            failure = _signed_by(current, cand)
            if failure is None:
                issuer = cand
                break
        if issuer is None:
            return VerificationResult(False, failure or SIGNATURE_MISMATCH, mode)

        if issuer.self_issued:
            reason = _time_reason(issuer, now)
            if reason:
                return VerificationResult(False, reason, mode)
            return VerificationResult(True, OK, mode)
        current = issuer

    log.debug("gave up building a path after %d links", MAX_DEPTH)
    return VerificationResult(False, TOO_LONG, mode)


def describe(result: VerificationResult) -> str:
    text = "OK" if result.valid else f"FAILED ({result.reason})"
    if result.mode == "self":
        text += " [self-verification only, not a chain-of-trust check]"
    return text


def finding(result: VerificationResult) -> Optional[HygieneFinding]:
    if result.valid:
        return None
    return HygieneFinding("chain_verification", f"Certificate verification failed: {result.reason}", "info")
