"""
Who is making a request.

Exactly one of these is resolved per request and handed to route handlers
explicitly; a request is never both a user and an admin.
"""
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Anonymous:
    pass


@dataclass(frozen=True)
class UserPrincipal:
    id: int
    username: str
    email: str


@dataclass(frozen=True)
class AdminPrincipal:
    id: int
    username: str


Principal = Union[Anonymous, UserPrincipal, AdminPrincipal]

ANONYMOUS = Anonymous()
