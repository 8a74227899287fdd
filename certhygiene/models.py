from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Literal, Optional, Tuple

EncryptionState = Literal["encrypted", "plaintext"]
VerificationMode = Literal["self", "ca"]


@dataclass(frozen=True)
class ParsedCertificate:
    subject: str
    issuer: str
    not_before: dt.datetime
    not_after: dt.datetime
    key_algorithm: Optional[str]
    key_bits: Optional[int]
    signature_algorithm: str
    der: bytes = field(repr=False)

    @property
    def self_issued(self) -> bool:
        return self.subject == self.issuer


@dataclass(frozen=True)
class ParsedKey:
    algorithm: Optional[str]
    key_bits: Optional[int]
    encryption: EncryptionState
    protection_algorithm: Optional[str] = None
    # informational only, e.g. the subject of the certificate bundled with the key
    certificate_subject: Optional[str] = None


@dataclass(frozen=True)
class ParsedCSR:
    subject: str
    key_algorithm: Optional[str]
    key_bits: Optional[int]
    signature_algorithm: str


@dataclass(frozen=True)
class PfxEntry:
    certificate: Optional[ParsedCertificate]
    key: Optional[ParsedKey]


@dataclass(frozen=True)
class ParsedPfxBundle:
    mac_algorithm: Optional[str]
    mac_iterations: Optional[int]
    entries: Tuple[PfxEntry, ...] = ()
    extracted: bool = False

    @property
    def certificates(self) -> Tuple[ParsedCertificate, ...]:
        return tuple(e.certificate for e in self.entries if e.certificate is not None)


@dataclass(frozen=True)
class VerificationResult:
    valid: bool
    reason: str
    mode: VerificationMode = "self"
