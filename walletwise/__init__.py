"""
WalletWise - Source Package

A single-account money tracker with two AI-grounded views:
a multi-month balance forecast and a chat assistant that only
answers from the account's own transaction history.

DESIGN PRINCIPLES:
1. The ledger is the only thing that changes the balance
2. Balance always equals credits minus debits, and never goes negative
3. AI output is untrusted input, never a source of truth
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "WalletWise Team"
