"""
ecomap_server.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) carried through a request.
- Define the role tags and decoded token claims.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime


class SubjectRole(enum.StrEnum):
    user = "user"
    waste_operator = "waste_operator"
    manager = "manager"


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity.
    """

    subject: str
    roles: frozenset[str]

    def has_role(self, role: str) -> bool:
        return role in self.roles


@dataclass(frozen=True, slots=True)
class TokenClaims:
    subject: str
    roles: frozenset[str]
    issued_at: datetime
    expires_at: datetime

    def principal(self) -> Principal:
        return Principal(subject=self.subject, roles=self.roles)


# --- Module Notes -----------------------------------------------------------
# Principals exist only for the lifetime of a token; nothing here is persisted.
