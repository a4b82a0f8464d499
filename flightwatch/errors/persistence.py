"""
Persistence error classifications.
"""

from typing import Optional, Dict, Any


class PersistenceError(Exception):
    """Key-value store read or write failure."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.operation = operation
        self.target = target
        self.context = context or {}
        self.recoverable = False
