# certhygiene/contracts.py
from __future__ import annotations
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field


class FindingItem(BaseModel):
    rule: str = Field(..., examples=["weak_algorithm", "short_key"])
    severity: Literal["info", "warning"]
    message: str


class ReportSection(BaseModel):
    artifact: str
    kind: str = Field(..., examples=["certificate", "private key", "CSR", "PKCS#12 bundle"])
    summary: Dict[str, str] = {}
    findings: List[FindingItem] = []
    error: Optional[str] = None


class Report(BaseModel):
    sections: List[ReportSection] = []

    @property
    def ok(self) -> bool:
        return all(s.error is None for s in self.sections)

    def add(self, section: ReportSection) -> None:
        self.sections.append(section)
