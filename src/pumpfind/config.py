from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Literal

from solders.pubkey import Pubkey

from .adapters.rpc_httpx import DEFAULT_RPC_URL
from .domain.decoding import CREATE_DATA_PREFIX, PUMP_PROGRAM_ID
from .domain.models import LogMarkers

OutputFormat = Literal["json", "parquet"]

DEFAULT_CONFIG_PATH = "config.json"

DEFAULT_ACCOUNT = "TSLvdd1pWpHVjahSpsvCXUbgwsL3JAcvokwaKt1eokM"
DEFAULT_START_BEFORE = (
    "nQWNjnJMVGFaqA7CzQQQMzM6gqacJTnzzFZHyKk1PM4H2axjR973jtMjvnVjVW7KjBPU1p7vBTZrAgsKtwozJZS"
)


class ConfigError(ValueError):
    pass


@dataclass(slots=True, frozen=True)
class Settings:
    rpc_url: str = DEFAULT_RPC_URL
    concurrency: int = 25
    account: str = DEFAULT_ACCOUNT
    start_before: str | None = DEFAULT_START_BEFORE
    total: int = 20_000
    page_size: int = 1_000
    batch_size: int = 1_000
    output_dir: str = "batches"
    output_format: OutputFormat = "json"
    match_suffix: str = "pump"
    program_id: str = PUMP_PROGRAM_ID
    data_prefix: str = CREATE_DATA_PREFIX
    max_attempts: int = 3
    retry_delay_s: float = 0.1
    timeout_s: float = 20
    manifest: str | None = None

    @property
    def markers(self) -> LogMarkers:
        return LogMarkers.for_program(self.program_id, self.data_prefix)

    def merged(self, **overrides: Any) -> "Settings":
        """Return a copy with every non-None override applied, then validated."""
        s = replace(self, **{k: v for k, v in overrides.items() if v is not None})
        s.validate()
        return s

    def validate(self) -> None:
        for name in ("concurrency", "total", "page_size", "batch_size", "max_attempts"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool) or v < 1:
                raise ConfigError(f"{name} must be a positive integer (got {v!r})")
        for name in ("retry_delay_s", "timeout_s"):
            v = getattr(self, name)
            if not isinstance(v, (int, float)) or isinstance(v, bool):
                raise ConfigError(f"{name} must be a number (got {v!r})")
        if self.retry_delay_s < 0 or self.timeout_s <= 0:
            raise ConfigError("retry_delay_s must be >= 0 and timeout_s > 0")
        for name in ("rpc_url", "account", "match_suffix", "program_id", "data_prefix", "output_dir"):
            if not isinstance(getattr(self, name), str):
                raise ConfigError(f"{name} must be a string (got {getattr(self, name)!r})")
        for name in ("start_before", "manifest"):
            v = getattr(self, name)
            if v is not None and not isinstance(v, str):
                raise ConfigError(f"{name} must be a string or null (got {v!r})")
        if self.output_format not in ("json", "parquet"):
            raise ConfigError(f"output_format must be 'json' or 'parquet' (got {self.output_format!r})")
        if not self.match_suffix:
            raise ConfigError("match_suffix must not be empty")
        try:
            Pubkey.from_string(self.account)
        except Exception as e:
            raise ConfigError(f"account is not a valid base58 public key: {self.account!r}") from e


# config.json keys (upper-case, as written by operators) -> Settings fields
_KEYS = {
    "RPC_URL": "rpc_url",
    "CONCURRENCY": "concurrency",
    "ACCOUNT": "account",
    "START_BEFORE_SIGNATURE": "start_before",
    "TOTAL": "total",
    "PAGE_SIZE": "page_size",
    "BATCH_SIZE": "batch_size",
    "OUTPUT_DIR": "output_dir",
    "OUTPUT_FORMAT": "output_format",
    "MATCH_SUFFIX": "match_suffix",
    "PROGRAM_ID": "program_id",
    "DATA_PREFIX": "data_prefix",
    "MAX_ATTEMPTS": "max_attempts",
    "RETRY_DELAY_S": "retry_delay_s",
    "TIMEOUT_S": "timeout_s",
    "MANIFEST": "manifest",
}
_FIELDS = {f.name for f in fields(Settings)}


def load_settings(path: str | None = DEFAULT_CONFIG_PATH) -> Settings:
    """
    Read `path` (JSON object) into Settings. A missing file means defaults.
    Keys may be the upper-case config names or the Settings field names; unknown keys are ignored.
    """
    if not path or not os.path.exists(path):
        return Settings()
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path}: invalid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: expected a JSON object")

    values: dict[str, Any] = {}
    for k, v in raw.items():
        name = _KEYS.get(k, k)
        if name in _FIELDS:
            values[name] = v
    try:
        s = Settings(**values)
    except TypeError as e:
        raise ConfigError(f"{path}: {e}") from e
    s.validate()
    return s
