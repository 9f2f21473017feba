"""
pif_services -- Package init and public API.

Responsibility:
    Orchestration over pif_kernel and pif_ingestion.  This is the only layer
    that opens database sessions and decides commit or rollback.

Architecture position:
    Services.  Dependency direction:
        pif_services/  -> pif_ingestion/, pif_kernel/, pif_config/  (allowed)
        pif_kernel/    -> pif_services/                             (FORBIDDEN)
        pif_ingestion/ -> pif_services/                             (FORBIDDEN)
"""

from pif_services.orchestrator import PifPipeline

__all__ = [
    "PifPipeline",
]
