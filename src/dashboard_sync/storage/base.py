"""Abstract base class for the credential slot.

The dashboard keeps exactly one bearer token.  A ``CredentialStore`` is the
single place it lives between requests; ``SessionManager`` is its only
writer and ``ApiGateway`` only reads it.

Classes
-------
- CredentialStore  — abstract base for token slots
"""
from __future__ import annotations

from abc import ABC, abstractmethod


class CredentialStore(ABC):
    """A single slot holding the current bearer token.

    Implementations must be safe for sequential (single-threaded) use.
    """

    @abstractmethod
    def read(self) -> str | None:
        """Return the stored token, or None if the slot is empty."""

    @abstractmethod
    def write(self, token: str) -> None:
        """Store ``token``, replacing any previous value.

        Parameters
        ----------
        token:
            Opaque bearer token.  Must be non-empty.

        Raises
        ------
        ValueError
            If ``token`` is empty.
        """

    @abstractmethod
    def clear(self) -> None:
        """Empty the slot.  Clearing an empty slot is a no-op."""

    def has_token(self) -> bool:
        """Return True if a token is stored."""
        return self.read() is not None
