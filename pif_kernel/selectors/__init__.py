"""Selectors for the PIF kernel (read side)."""

from pif_kernel.selectors.history_selector import HistorySelector
from pif_kernel.selectors.wide_view_selector import WideViewSelector

__all__ = [
    "HistorySelector",
    "WideViewSelector",
]
