"""
Rosetta middleware configuration.

This module centralizes tunables for the HTTP service:
- host/port
- Lotus full-node endpoint and auth token
- expected network name (optional; otherwise queried from the node)
- sync tolerance (epochs) used to decide whether the node is synced
- request deadline and per-call node timeout
- logging level
- metrics toggle

Environment variables (examples):
  ROSETTA_HOST=0.0.0.0
  ROSETTA_PORT=8080
  ROSETTA_LOTUS_URL=http://127.0.0.1:1234/rpc/v0
  ROSETTA_LOTUS_TOKEN=eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...
  ROSETTA_NETWORK=mainnet
  ROSETTA_SYNC_TOLERANCE=0
  ROSETTA_REQUEST_TIMEOUT=10
  ROSETTA_NODE_TIMEOUT=5
  ROSETTA_LOG_LEVEL=INFO
  ROSETTA_METRICS_ENABLED=true

Notes
- Empty strings are treated as unset.
- Non-positive timeouts disable the corresponding limit.
- This module has no external deps (no dotenv). Use your process manager to inject env.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    return v


def _env_bool(name: str, default: bool) -> bool:
    v = _env(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_int(name: str, default: int) -> int:
    v = _env(name)
    if v is None:
        return default
    try:
        return int(v.strip())
    except ValueError:
        return default


def _env_seconds(name: str, default: Optional[float]) -> Optional[float]:
    """Parse a timeout in seconds; zero or negative means 'no limit'."""
    v = _env(name)
    if v is None:
        return default
    try:
        secs = float(v.strip())
    except ValueError:
        return default
    return secs if secs > 0 else None


@dataclass(frozen=True)
class NodeConfig:
    url: str = "http://127.0.0.1:1234/rpc/v0"
    token: Optional[str] = None
    # Per-call timeout applied when the caller supplies no deadline.
    timeout: Optional[float] = 5.0


@dataclass(frozen=True)
class RosettaConfig:
    host: str
    port: int
    node: NodeConfig
    network: Optional[str]
    sync_tolerance: int
    request_timeout: Optional[float]
    log_level: str
    metrics_enabled: bool

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


def load() -> RosettaConfig:
    """
    Build a RosettaConfig from environment variables with sensible defaults.
    """
    sync_tolerance = _env_int("ROSETTA_SYNC_TOLERANCE", 0)
    if sync_tolerance < 0:
        raise ValueError("ROSETTA_SYNC_TOLERANCE must be non-negative")

    node = NodeConfig(
        url=_env("ROSETTA_LOTUS_URL", NodeConfig.url) or NodeConfig.url,
        token=_env("ROSETTA_LOTUS_TOKEN"),
        timeout=_env_seconds("ROSETTA_NODE_TIMEOUT", NodeConfig.timeout),
    )

    return RosettaConfig(
        host=_env("ROSETTA_HOST", "127.0.0.1") or "127.0.0.1",
        port=_env_int("ROSETTA_PORT", 8080),
        node=node,
        network=_env("ROSETTA_NETWORK"),
        sync_tolerance=sync_tolerance,
        request_timeout=_env_seconds("ROSETTA_REQUEST_TIMEOUT", 10.0),
        log_level=(_env("ROSETTA_LOG_LEVEL", "INFO") or "INFO").upper(),
        metrics_enabled=_env_bool("ROSETTA_METRICS_ENABLED", True),
    )


__all__ = ["NodeConfig", "RosettaConfig", "load"]
