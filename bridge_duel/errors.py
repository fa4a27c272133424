# bridge_duel/errors.py
from __future__ import annotations


class BridgeDuelError(Exception):
    """Base class for errors raised by bridge_duel."""


class ProtocolError(BridgeDuelError, ValueError):
    """A message or snapshot received from the channel could not be decoded."""


class InvariantViolation(BridgeDuelError, RuntimeError):
    """Raised when the game state breaks a structural rule (a bug, not a move)."""


class NotAuthoritativeError(BridgeDuelError):
    """Raised when a non-authoritative session attempts a host-only step."""

    def __init__(self, *, role: str, operation: str) -> None:
        self.role = role
        self.operation = operation
        super().__init__(f"{operation} may only run on the host, not on {role}")
