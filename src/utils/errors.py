"""Exception taxonomy for the interaction / measurement core.

Caller mistakes (bad positions, wrong arity, duplicate or unknown ids, a
focal residue that does not exist) raise immediately. Degenerate geometry
is never an error; see ``geometry.core`` for the numeric policy.

``ValidationError`` subclasses ``ValueError`` and ``NotFoundError`` subclasses
``LookupError`` so callers that only know the builtin hierarchy still catch
them.
"""
from __future__ import annotations

from typing import Union


class CoreError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(CoreError, ValueError):
    """Invalid input supplied by the caller."""


class InvalidPositionError(ValidationError):
    """A point is missing, not a 3-vector, or contains non-finite values."""


class ArityError(ValidationError):
    """Wrong number of points for the requested measurement kind."""

    def __init__(self, kind: str, expected: Union[int, str], got: int):
        self.kind = kind
        self.expected = expected
        self.got = got
        super().__init__(f"{kind} measurement needs {expected} points, got {got}")


class DuplicateIdError(ValidationError):
    """An id is already registered."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"id '{item_id}' is already registered")


class NotFoundError(CoreError, LookupError):
    """Lookup of an unknown measurement / interaction id."""

    def __init__(self, item_id: str, what: str = "visualization"):
        self.item_id = item_id
        super().__init__(f"{what} '{item_id}' not found")


class ResidueNotFoundError(NotFoundError):
    """Focal residue requested for localized detection does not exist."""

    def __init__(self, chain_id: str, residue_seq: int):
        self.chain_id = chain_id
        self.residue_seq = residue_seq
        super().__init__(f"{chain_id}:{residue_seq}", what="residue")


class RendererError(CoreError):
    """Raised by renderer adapters when a representation cannot be created or changed."""


__all__ = [
    "CoreError",
    "ValidationError",
    "InvalidPositionError",
    "ArityError",
    "DuplicateIdError",
    "NotFoundError",
    "ResidueNotFoundError",
    "RendererError",
]
