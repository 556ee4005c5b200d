"""
Caller identity resolved by the authenticator.

The two variants are mutually exclusive: a request is either a trusted
internal call (service-role ``apikey``) or an end user identified by a
verified bearer token. Neither is persisted; the identity only keys the
rate limiter and tags log lines.
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class InternalCaller:
    """Same-system caller holding the service-role credential."""

    kind = "internal"

    @property
    def rate_limit_key(self) -> str:
        return "internal"

    @property
    def log_id(self) -> str:
        return "internal"


@dataclass(frozen=True)
class UserCaller:
    """End user resolved from a bearer token."""

    id: str
    kind = "user"

    @property
    def rate_limit_key(self) -> str:
        return f"user:{self.id}"

    @property
    def log_id(self) -> str:
        return self.id


CallerIdentity = Union[InternalCaller, UserCaller]
