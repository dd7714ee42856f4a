"""
Collaborator interfaces and their REST implementations.
"""
