"""Exception types raised by the bid engine."""

from __future__ import annotations

from typing import Iterable


class BidEngineError(Exception):
    """Base class for all engine errors."""


class InputValidationError(BidEngineError, ValueError):
    """The service request cannot be evaluated as given."""

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid service request")


class CollaboratorUnavailable(BidEngineError, RuntimeError):
    """A routing or data collaborator failed or timed out."""

    def __init__(self, collaborator: str, detail: str):
        self.collaborator = collaborator
        self.detail = detail
        super().__init__(f"{collaborator} unavailable: {detail}")


class ConfigurationInvalid(BidEngineError, ValueError):
    """Engine configuration is outside its accepted bounds."""

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        super().__init__("Invalid pricing configuration: " + "; ".join(self.errors))
