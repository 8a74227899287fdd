import os
from dataclasses import dataclass, field

DEFAULT_MAX_INPUT_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class Settings:
    LOG_LEVEL: str = field(default="INFO")
    MAX_INPUT_BYTES: int = field(default=DEFAULT_MAX_INPUT_BYTES)

    @staticmethod
    def from_env() -> "Settings":
        log_level = os.getenv("CERTHYGIENE_LOG_LEVEL", "INFO").upper()
        try:
            max_bytes = int(os.getenv("CERTHYGIENE_MAX_INPUT_BYTES", str(DEFAULT_MAX_INPUT_BYTES)))
            if max_bytes <= 0:
                raise ValueError
        except ValueError:
            max_bytes = DEFAULT_MAX_INPUT_BYTES
        return Settings(LOG_LEVEL=log_level, MAX_INPUT_BYTES=max_bytes)
