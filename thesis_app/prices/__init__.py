"""
Fallback price resolution for symbols without a live quote.
"""
