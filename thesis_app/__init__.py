"""
Thesis App - Thesis Status & Reconciliation Engine

Derives a lifecycle status for each tracked investment thesis from live or
fallback prices and user-set thresholds, and reconciles that status with the
remote thesis store without duplicate fetches or concurrent writes.
"""

__version__ = "0.1.0"
__author__ = "Thesis Team"
