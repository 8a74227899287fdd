from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Union

from .common import UNDETERMINED, HygieneFinding, iso_utc
from .contracts import FindingItem, Report, ReportSection
from .models import ParsedCertificate, ParsedCSR, ParsedKey, ParsedPfxBundle

Value = Union[str, int, None]


def _render(value: Value) -> str:
    if value is None or value == "":
        return UNDETERMINED
    return str(value)


def _bits(bits: Optional[int]) -> Optional[str]:
    return None if bits is None else f"{bits} bits"


def certificate_summary(cert: ParsedCertificate) -> Dict[str, Value]:
    return {
        "subject": cert.subject,
        "issuer": cert.issuer,
        "not_before": iso_utc(cert.not_before),
        "not_after": iso_utc(cert.not_after),
        "key_algorithm": cert.key_algorithm,
        "key_length": _bits(cert.key_bits),
        "signature_algorithm": cert.signature_algorithm,
    }


def key_summary(key: ParsedKey) -> Dict[str, Value]:
    out: Dict[str, Value] = {
        "algorithm": key.algorithm,
        "key_length": _bits(key.key_bits),
        "encryption": key.encryption,
    }
    if key.encryption == "encrypted":
        out["protection_algorithm"] = key.protection_algorithm
    if key.certificate_subject:
        out["certificate"] = key.certificate_subject
    return out


def csr_summary(csr: ParsedCSR) -> Dict[str, Value]:
    return {
        "subject": csr.subject,
        "key_algorithm": csr.key_algorithm,
        "key_length": _bits(csr.key_bits),
        "signature_algorithm": csr.signature_algorithm,
    }


def bundle_summary(bundle: ParsedPfxBundle) -> Dict[str, Value]:
    return {
        "mac_algorithm": bundle.mac_algorithm or "none",
        "mac_iterations": bundle.mac_iterations,
        "entries": len(bundle.entries) if bundle.extracted else "not extracted (no passphrase)",
    }


def build(
    artifact_path: str,
    kind: str,
    summary: Mapping[str, Value],
    findings: Iterable[HygieneFinding],
    error: Optional[str] = None,
) -> ReportSection:
    """Aggregate one artifact's summary and findings, keeping their order."""
    return ReportSection(
        artifact=artifact_path,
        kind=kind,
        summary={k: _render(v) for k, v in summary.items()},
        findings=[FindingItem(rule=f.rule, severity=f.severity, message=f.message) for f in findings],
        error=error,
    )


def render_text(report: Report) -> str:
    lines: List[str] = []
    for section in report.sections:
        lines.append(f"Checking {section.kind}: {section.artifact}")
        for k, v in section.summary.items():
            lines.append(f"  {k.replace('_', ' ').capitalize()}: {v}")
        for f in section.findings:
            label = "Warning" if f.severity == "warning" else "Info"
            lines.append(f"  {label}: {f.message}")
        if section.error:
            lines.append(f"  Error: {section.error}")
        lines.append("")
    lines.append("File check completed." if report.ok else "File check failed.")
    return "\n".join(lines)
