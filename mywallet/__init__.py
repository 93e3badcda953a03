"""
MyWallet - Ledger Engine

The domain engine of a client-side personal-finance ledger: transactions,
person-to-person debts, savings goals, a percentage budget plan and
recurring transaction templates.

DESIGN PRINCIPLES:
1. One store owns every aggregate; all writes go through named mutations
2. Derived state (debt status) is computed, never stored independently
3. Background passes are idempotent and feed back as ordinary mutations
4. Corrupt or legacy data degrades to defaults, never crashes the app
5. Storage layer is swappable
"""

__version__ = "2.0.0"
__author__ = "MyWallet Team"
