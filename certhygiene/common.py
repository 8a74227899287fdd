
import datetime as dt
from dataclasses import dataclass
from typing import Literal

UNDETERMINED = "undetermined"


def iso_utc(d: dt.datetime) -> str:
    if d.tzinfo is None:
        d = d.replace(tzinfo=dt.timezone.utc)
    return d.astimezone(dt.timezone.utc).isoformat().replace("+00:00", "Z")


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


Severity = Literal["info", "warning"]


@dataclass(frozen=True)
class HygieneFinding:
    rule: str
    message: str
    severity: Severity = "warning"


def secret_bytes(secret) -> bytes:
    if isinstance(secret, str):
        return secret.encode("utf-8")
    return bytes(secret)
