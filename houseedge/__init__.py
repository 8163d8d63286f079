"""
HOUSEEDGE - Betting Analytics Engine

Odds normalization, expected value, sharp money detection,
staking policies, an append-only bet ledger and performance analytics.
"""

__version__ = "0.1.0"
