"""Document store selection and session defaults."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Literal, TypeAlias, cast

from ehsreport.domain.periods import DEFAULT_KEY_PREFIX

from .env import float_env_var, optional_env_var
from .errors import UnsupportedBackendError

StoreBackend: TypeAlias = Literal["memory", "sqlite", "firebase"]

STORE_BACKENDS: Final[tuple[str, ...]] = ("memory", "sqlite", "firebase")
DEFAULT_STORE_BACKEND: Final[StoreBackend] = "sqlite"
DEFAULT_WAIT_SECONDS: Final[float] = 10.0


@dataclass(frozen=True, slots=True)
class ReportConfig:
    backend: StoreBackend = DEFAULT_STORE_BACKEND
    key_prefix: str = DEFAULT_KEY_PREFIX
    # How long one-shot commands wait for the first snapshot.
    wait_seconds: float = DEFAULT_WAIT_SECONDS


def get_report_config() -> ReportConfig:
    backend = (optional_env_var("EHSREPORT_STORE") or DEFAULT_STORE_BACKEND).lower()
    if backend not in STORE_BACKENDS:
        raise UnsupportedBackendError(backend)
    return ReportConfig(
        backend=cast("StoreBackend", backend),
        key_prefix=optional_env_var("EHSREPORT_KEY_PREFIX") or DEFAULT_KEY_PREFIX,
        wait_seconds=float_env_var("EHSREPORT_WAIT_SECONDS", DEFAULT_WAIT_SECONDS),
    )
