"""
Identity Models

Caller identity as resolved by identity bootstrap.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class IdentitySource(str, Enum):
    """How an identity was obtained."""

    SESSION = "session"  # reused a previously-authenticated backend session
    TOKEN = "token"  # bearer credential from the environment
    ANONYMOUS = "anonymous"
    LOCAL = "local"  # synthesized locally after every sign-in path failed


class Identity(BaseModel):
    """Opaque caller reference used to attribute authored content."""

    model_config = ConfigDict(frozen=True)

    id: str
    source: IdentitySource

    @property
    def persisted(self) -> bool:
        """False when the identity exists only in this process."""
        return self.source != IdentitySource.LOCAL


class AuthState(BaseModel):
    """One event of the readiness/identity stream."""

    model_config = ConfigDict(frozen=True)

    identity: Optional[Identity] = None
    ready: bool = False
