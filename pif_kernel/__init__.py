"""
PIF Kernel - lifecycle and promotion core

A site-partitioned batch pipeline for Project Information Forms with:
- Inflight working store, replaced per site on commit
- Set-based upsert promotion into the Approved store
- Total replacement of approved cost facts on re-promotion
- Reporting-period-relative wide pivot views
"""

__version__ = "0.1.0"
