"""
Read-only web API over the violation ledger.
"""
