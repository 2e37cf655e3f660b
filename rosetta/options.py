"""
Static capability tables advertised by /network/options.

The registry is built once at process start and injected into the network
service, so the service never reaches for module globals and tests can swap
in their own tables.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from rosetta import errors
from rosetta.models import Error, OperationStatus
from rosetta.version import ROSETTA_SPEC_VERSION, __version__

BLOCKCHAIN_NAME = "Filecoin"

OPERATION_STATUS_SUCCESS = "Success"
OPERATION_STATUS_REVERTED = "Reverted"

# Downstream tooling matches these names and flags verbatim.
OPERATION_STATUSES: Tuple[OperationStatus, ...] = (
    OperationStatus(status=OPERATION_STATUS_SUCCESS, successful=True),
    OperationStatus(status=OPERATION_STATUS_REVERTED, successful=False),
)

OPERATION_TYPES: Tuple[str, ...] = ("Transfer", "Reward")


def _error_list() -> Tuple[Error, ...]:
    return tuple(Error(**d) for d in errors.catalog())


@dataclass(frozen=True)
class OptionsRegistry:
    blockchain: str = BLOCKCHAIN_NAME
    rosetta_version: str = ROSETTA_SPEC_VERSION
    middleware_version: str = __version__
    operation_statuses: Tuple[OperationStatus, ...] = field(default=OPERATION_STATUSES, init=False)
    operation_types: Tuple[str, ...] = OPERATION_TYPES
    errors: Tuple[Error, ...] = field(default_factory=_error_list)


def default_registry() -> OptionsRegistry:
    return OptionsRegistry()


__all__ = [
    "BLOCKCHAIN_NAME",
    "OPERATION_STATUS_SUCCESS",
    "OPERATION_STATUS_REVERTED",
    "OPERATION_STATUSES",
    "OPERATION_TYPES",
    "OptionsRegistry",
    "default_registry",
]
