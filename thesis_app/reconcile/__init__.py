"""
Reconciliation of derived thesis status with the remote thesis store.
"""
