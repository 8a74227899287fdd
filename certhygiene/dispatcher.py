from __future__ import annotations

import datetime as dt
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from . import chain, rules
from .contracts import Report, ReportSection
from .errors import AuthenticationFailed, ParseError, UnrecognizedFormat
from .format_identify import guess_kind
from .formats import pem
from .formats.certificate import parse_certificates
from .formats.csr import parse_csr
from .formats.pkcs8 import Passphrase, parse_key
from .formats.pkcs12 import parse_pfx
from .models import ParsedCertificate, ParsedKey, VerificationMode
from .path_utils import read_artifact, resolve_path
from .report import build, bundle_summary, certificate_summary, csr_summary, key_summary
from .settings import Settings

log = logging.getLogger(__name__)


@dataclass
class _Job:
    artifact: str
    data: bytes = field(repr=False)
    passphrase: Passphrase = field(default=None, repr=False)
    ca: Optional[List[ParsedCertificate]] = None
    now: Optional[dt.datetime] = None


def _certificate_section(
    artifact: str,
    cert: ParsedCertificate,
    anchors: Sequence[ParsedCertificate],
    mode: VerificationMode,
    now: Optional[dt.datetime],
) -> ReportSection:
    result = chain.verify(cert, anchors, now=now, mode=mode)
    summary = certificate_summary(cert)
    summary["chain_verification"] = chain.describe(result)
    findings = rules.evaluate(cert)
    failure = chain.finding(result)
    if failure is not None:
        findings.append(failure)
    return build(artifact, "certificate", summary, findings)


def _key_section(artifact: str, key: ParsedKey, error: Optional[str] = None) -> ReportSection:
    return build(artifact, "private key", key_summary(key), rules.evaluate(key), error=error)


def _trust(job: _Job, own: Sequence[ParsedCertificate]) -> tuple[Sequence[ParsedCertificate], VerificationMode]:
    if job.ca:
        return job.ca, "ca"
    return own, "self"


def _key_sections(job: _Job, artifact: str) -> List[ReportSection]:
    try:
        return [_key_section(artifact, parse_key(job.data, job.passphrase))]
    except AuthenticationFailed as e:
        # the encryption state does not need the passphrase
        return [_key_section(artifact, parse_key(job.data), error=f"AuthenticationFailed: {e}")]


def _handle_key(job: _Job) -> List[ReportSection]:
    return _key_sections(job, job.artifact)


def _handle_csr(job: _Job) -> List[ReportSection]:
    csr = parse_csr(job.data)
    return [build(job.artifact, "CSR", csr_summary(csr), rules.evaluate(csr))]


def _handle_pem(job: _Job) -> List[ReportSection]:
    try:
        certs = parse_certificates(job.data)
    except ParseError as cert_error:
        log.debug("not a certificate (%s), trying private key", cert_error)
        try:
            return _key_sections(job, job.artifact)
        except ParseError as key_error:
            raise UnrecognizedFormat(
                f"{job.artifact} is neither a certificate ({cert_error}) nor a private key ({key_error})"
            ) from key_error

    anchors, mode = _trust(job, certs)
    sections = [_certificate_section(job.artifact, certs[0], anchors, mode, job.now)]
    if pem.looks_like_pem(job.data) and pem.first_block(job.data, pem.KEY_LABELS) is not None:
        key_artifact = f"{job.artifact} [private key]"
        try:
            sections.extend(_key_sections(job, key_artifact))
        except ParseError as e:
            sections.append(build(key_artifact, "private key", {}, [], error=f"ParseError: {e}"))
    return sections


def _handle_pfx(job: _Job) -> List[ReportSection]:
    bundle = parse_pfx(job.data)
    if not job.passphrase:
        return [build(job.artifact, "PKCS#12 bundle", bundle_summary(bundle), rules.evaluate(bundle))]

    try:
        bundle = parse_pfx(job.data, job.passphrase)
    except AuthenticationFailed as e:
        return [build(
            job.artifact, "PKCS#12 bundle", bundle_summary(bundle), rules.evaluate(bundle),
            error=f"AuthenticationFailed: {e}",
        )]

    sections = [build(job.artifact, "PKCS#12 bundle", bundle_summary(bundle), rules.evaluate(bundle))]
    anchors, mode = _trust(job, bundle.certificates)
    for n, entry in enumerate(bundle.entries, start=1):
        if entry.certificate is not None:
            sections.append(_certificate_section(
                f"{job.artifact} [certificate {n}]", entry.certificate, anchors, mode, job.now,
            ))
        if entry.key is not None:
            sections.append(_key_section(f"{job.artifact} [private key]", entry.key))
    return sections


_HANDLERS: Dict[str, Callable[[_Job], List[ReportSection]]] = {
    "pfx": _handle_pfx,
    "pem": _handle_pem,
    "csr": _handle_csr,
    "key": _handle_key,
}


def inspect_bytes(
    data: bytes,
    artifact: str,
    extension_hint: Optional[str] = None,
    passphrase: Passphrase = None,
    ca_data: Optional[bytes] = None,
    now: Optional[dt.datetime] = None,
) -> Report:
    """Inspect one artifact held in memory.

    Raises UnrecognizedFormat for unsupported types and ParseError for
    malformed containers. A wrong passphrase is reported in the returned
    report (``report.ok`` is False) so the checks that do not need it still
    appear.
    """
    kind = guess_kind(artifact, extension_hint)
    ca = None
    if ca_data is not None:
        try:
            ca = parse_certificates(ca_data, limit=pem.MAX_TRUST_ANCHORS)
        except ParseError as e:
            raise ParseError(f"CA file: {e}") from e

    job = _Job(artifact=artifact, data=data, passphrase=passphrase, ca=ca, now=now)
    log.info("inspecting %s as %s", artifact, kind)
    report = Report()
    for section in _HANDLERS[kind](job):
        report.add(section)
    return report


def inspect(
    path: str | os.PathLike[str],
    extension_hint: Optional[str] = None,
    passphrase: Passphrase = None,
    ca_path: Optional[str | os.PathLike[str]] = None,
    settings: Optional[Settings] = None,
) -> Report:
    settings = settings or Settings.from_env()
    p = resolve_path(path)
    data = read_artifact(p, settings.MAX_INPUT_BYTES)
    ca_data = read_artifact(resolve_path(ca_path), settings.MAX_INPUT_BYTES) if ca_path else None
    return inspect_bytes(data, str(p), extension_hint=extension_hint, passphrase=passphrase, ca_data=ca_data)
