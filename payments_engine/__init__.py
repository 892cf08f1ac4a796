"""
Payments Engine

Applies a sequential feed of deposits, withdrawals, disputes, resolves and
chargebacks to client accounts using exact fixed-point arithmetic, and
reports the final balances.
"""

__version__ = "1.0.0"
