"""Whole-unit item quantities.

Balances, stakes, bids and ledger amounts live in INTEGER columns, so every
quantity must fit a signed 32-bit value.
"""

MAX_QUANTITY = 2_147_483_647


def exceeds_column(qty: int) -> bool:
    """True when ``abs(qty)`` cannot be stored in a quantity column."""
    return abs(qty) > MAX_QUANTITY
