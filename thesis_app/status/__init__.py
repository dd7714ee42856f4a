"""
Thesis status derivation.

Derives on-track / achieved / breached / needs-review for each thesis from
its price levels and the current price, through an ordered rule table.
"""
