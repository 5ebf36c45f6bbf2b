"""Data Layer functions for the Log Analytics cost optimizer.

This module provides functions for managing analysis history in Cosmos DB:
- Save a completed analysis
- List recent analyses
- Delete an analysis
"""

from data_layer.save_analysis import build_history_record, save_analysis
from data_layer.get_analysis_history import delete_analysis, get_analysis_history

__all__ = [
    "build_history_record",
    "save_analysis",
    "get_analysis_history",
    "delete_analysis",
]
