"""
Ledger Kernel

The ledger computation and integrity engine of a double-entry bookkeeping
application:
- Hierarchical chart of accounts with bottom-up balance roll-up
- Balanced, atomic journal entry commits with period locking
- Trial balance, general ledger and account detail reports
- Dual-approval purchase order state machine with optimistic concurrency
"""

__version__ = "0.1.0"
