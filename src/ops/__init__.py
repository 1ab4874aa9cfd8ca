"""
Operational helpers (logging).
"""
