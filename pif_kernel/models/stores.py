"""
Store registry: maps a store name to its project and cost models.

Used by the reporting and history selectors so that the same query code
serves Inflight and Approved.
"""

from __future__ import annotations

from enum import Enum

from pif_kernel.exceptions import UnknownStoreError
from pif_kernel.models.cost import ApprovedCost, InflightCost, StagingCost
from pif_kernel.models.project import ApprovedProject, InflightProject, StagingProject


class Store(str, Enum):
    STAGING = "staging"
    INFLIGHT = "inflight"
    APPROVED = "approved"


_STORE_MODELS = {
    Store.STAGING: (StagingProject, StagingCost),
    Store.INFLIGHT: (InflightProject, InflightCost),
    Store.APPROVED: (ApprovedProject, ApprovedCost),
}

REPORTABLE_STORES: tuple[Store, ...] = (Store.INFLIGHT, Store.APPROVED)


def resolve_store(store: str | Store, allowed: tuple[Store, ...] = REPORTABLE_STORES) -> Store:
    """Normalize a store name, raising UnknownStoreError for anything else."""
    try:
        resolved = Store(str(store.value if isinstance(store, Store) else store).lower())
    except ValueError:
        raise UnknownStoreError(str(store)) from None
    if resolved not in allowed:
        raise UnknownStoreError(str(store))
    return resolved


def models_for(store: str | Store, allowed: tuple[Store, ...] = REPORTABLE_STORES):
    """Return (project_model, cost_model) for a store name."""
    return _STORE_MODELS[resolve_store(store, allowed)]
