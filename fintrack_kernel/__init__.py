"""
Fintrack Kernel

The balance-consistency core of a personal finance tracker:
- Every balance change is paired with a stored ledger record
- Atomic units of work (entry write + balance update commit together)
- Ownership checks on every record an actor touches
- Exact Decimal money, never binary floating point
"""

__version__ = "0.1.0"
