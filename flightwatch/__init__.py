"""
flightwatch - Flight Watchlist and Subscription Engine

Keeps a user's watchlist of tracked flights in sync with a live flight data
source and gates premium features behind a subscription entitlement.
"""

__version__ = "0.1.0"
__author__ = "flightwatch Team"
