"""
Normalization of raw thesis records into tracked items.
"""
