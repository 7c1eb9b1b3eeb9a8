"""
Exceptions for programming-contract violations.

Expected outcomes (rejected bookings, denied claims, dropped clients) are
returned as data and never raised.
"""

from __future__ import annotations


class TycoonError(Exception):
    pass


class UnknownEntityError(TycoonError, KeyError):
    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"Unknown {kind}: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id

    def __str__(self) -> str:
        return self.args[0]


class InvalidChoiceError(TycoonError, ValueError):
    pass


class InvalidTransitionError(TycoonError):
    pass
