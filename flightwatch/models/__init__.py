"""
Data models module.

Immutable value types shared by the watchlist sync and entitlement engines.
"""
