"""
Utility functions module.

Time Semantics:
- Quote timestamps (asOf) from the feed are authoritative when present
- Wall-clock time is only used as a fallback for observations without one
- Remote timestamps (last_updated, created_at) are parsed to aware UTC datetimes
"""
