"""
Authentication Principals

A principal is the identity resolved from a bearer token: the platform
administrator, a company account, or one of a company's employees.
"""

import enum
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


class PrincipalKind(enum.Enum):
    """Kinds of account that can hold a token."""

    ADMIN = "admin"
    ENTREPRISE = "entreprise"
    EMPLOYE = "employe"


@dataclass
class Principal:
    """
    Resolved token identity.

    Attributes:
        kind: Account kind
        id: Row id of the account (None for the static admin account)
        email: Account email (None for the admin)
        username: Admin username
        entreprise_id: Owning company, for employees and companies
    """
    kind: PrincipalKind
    id: Optional[int] = None
    email: Optional[str] = None
    username: Optional[str] = None
    entreprise_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.kind == PrincipalKind.ADMIN

    @property
    def is_entreprise(self) -> bool:
        return self.kind == PrincipalKind.ENTREPRISE

    @property
    def is_employe(self) -> bool:
        return self.kind == PrincipalKind.EMPLOYE

    def can_act_as_employe(self, employe_id: int, employe_entreprise_id: Optional[int] = None) -> bool:
        """
        Employees may only act as themselves and companies only for their own
        staff (``employe_entreprise_id`` is the employee's company). Admins are
        not restricted.
        """
        if self.is_employe:
            return self.id == employe_id
        if self.is_entreprise:
            return employe_entreprise_id is not None and self.entreprise_id == employe_entreprise_id
        return True

    def can_view_entreprise(self, entreprise_id: int) -> bool:
        if self.is_admin:
            return True
        return self.entreprise_id == entreprise_id

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data
