# Overview: Contract of the identity provider consumed by the session resolver.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable


class IdentityProviderError(Exception):
    """The provider could not answer (unreachable, timed out, store error)."""


@dataclass(frozen=True)
class ProviderSession:
    """
    What the provider knows about a valid credential.

    The provider is authoritative for authentication only; it carries no role.
    """
    session_id: int | str
    subject_id: int
    subject_name: str
    subject_email: str
    expires_at: datetime


@runtime_checkable
class IdentityProvider(Protocol):
    def validate_credential(self, credential: str) -> ProviderSession | None:
        """
        Return the session behind credential, or None when it is unknown,
        expired or revoked. Raise IdentityProviderError when the answer is
        unknown.
        """
        ...
