"""Registry settings: loaded from the environment or a JSON config file.

Environment variables (a .env file is honoured via python-dotenv):
    PROVENANCE_MAX_PRODUCTS       capacity ceiling for a fresh registry
    PROVENANCE_REGISTRATION_FEE   initial fee for a fresh registry
    PROVENANCE_PRODUCERS          comma-separated producer whitelist
    PROVENANCE_DATA_DIR           directory for state.json / events.jsonl
    PROVENANCE_LOG_LEVEL          logging level name (default WARNING)
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from provenance.registry.state import DEFAULT_MAX_PRODUCTS, DEFAULT_REGISTRATION_FEE


DEFAULT_DATA_DIR = Path("data")
DEFAULT_LOG_LEVEL = "WARNING"

ENV_PREFIX = "PROVENANCE_"


def _parse_int(name: str, raw: Any, default: int) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


def _parse_producers(raw: Any) -> tuple[str, ...]:
    if not raw:
        return ()
    if isinstance(raw, str):
        items = raw.split(",")
    else:
        items = list(raw)
    return tuple(p.strip() for p in items if p and p.strip())


@dataclass(frozen=True)
class RegistrySettings:
    """Hosting configuration for a registry process."""
    max_products: int = DEFAULT_MAX_PRODUCTS
    registration_fee: int = DEFAULT_REGISTRATION_FEE
    producers: tuple[str, ...] = field(default_factory=tuple)
    data_dir: Path = DEFAULT_DATA_DIR
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> RegistrySettings:
        """Build settings from un-prefixed, lower-case keys."""
        return cls(
            max_products=_parse_int(
                "max_products", values.get("max_products"), DEFAULT_MAX_PRODUCTS,
            ),
            registration_fee=_parse_int(
                "registration_fee",
                values.get("registration_fee"),
                DEFAULT_REGISTRATION_FEE,
            ),
            producers=_parse_producers(values.get("producers")),
            data_dir=Path(values.get("data_dir") or DEFAULT_DATA_DIR),
            log_level=str(values.get("log_level") or DEFAULT_LOG_LEVEL).upper(),
        )

    @classmethod
    def from_env(
        cls,
        env_file: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> RegistrySettings:
        """Load settings from PROVENANCE_* variables.

        Args:
            env_file: Optional .env file; existing variables are not overridden.
            environ: Mapping to read instead of os.environ (for tests).
        """
        if environ is None:
            load_dotenv(env_file)
            environ = os.environ
        values = {
            key[len(ENV_PREFIX):].lower(): value
            for key, value in environ.items()
            if key.startswith(ENV_PREFIX)
        }
        return cls.from_mapping(values)

    @classmethod
    def from_config_file(cls, path: Path) -> RegistrySettings:
        """Load settings from a JSON object with the same (lower-case) keys."""
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a JSON object")
        return cls.from_mapping(data)
