"""
pif_ingestion -- Submission intake for PIF workbooks.

Reads submitted files, types and validates the rows, reloads the staging
tables and commits the submitting site's rows to Inflight.

Architecture:
    pif_ingestion/ is a top-level package. It depends on pif_kernel and on
    the dataclasses of pif_config; nothing in pif_kernel imports from it.
"""
