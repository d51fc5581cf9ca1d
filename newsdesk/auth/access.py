"""
Controle de acesso por papel (admin | user | guest).

O chamador se identifica pelo cabeçalho ``X-Principal``; ausente, vazio ou
``anonymous`` é tratado como anônimo (guest). Principais listados em
ADMIN_PRINCIPALS são sempre admin.
"""
import logging
from typing import Optional

from newsdesk import config
from newsdesk.storage import accounts
from newsdesk.storage.models import UserRole

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"


class Unauthorized(Exception):
    def __init__(self, message: str):
        super().__init__(f"Unauthorized: {message}")


def normalize_principal(principal: Optional[str]) -> Optional[str]:
    if principal is None:
        return None
    principal = principal.strip()
    if not principal or principal == ANONYMOUS:
        return None
    return principal


def caller_role(principal: Optional[str]) -> UserRole:
    principal = normalize_principal(principal)
    if principal is None:
        return UserRole.guest
    if principal in config.ADMIN_PRINCIPALS:
        return UserRole.admin
    return accounts.get_role(principal) or UserRole.user


def is_admin(principal: Optional[str]) -> bool:
    return caller_role(principal) == UserRole.admin


def require_user(principal: Optional[str]) -> str:
    principal = normalize_principal(principal)
    if principal is None or caller_role(principal) == UserRole.guest:
        raise Unauthorized("only users can perform this action")
    return principal


def require_admin(principal: Optional[str]) -> str:
    if not is_admin(principal):
        logger.info("admin action refused for %r", principal)
        raise Unauthorized("only admins can perform this action")
    return normalize_principal(principal)


def assign_role(caller: Optional[str], user: str, role: UserRole):
    require_admin(caller)
    user = normalize_principal(user)
    if user is None:
        raise ValueError("cannot assign a role to the anonymous principal")
    if user in config.ADMIN_PRINCIPALS and role != UserRole.admin:
        raise ValueError(f"{user} is a configured admin and cannot be demoted")
    accounts.set_role(user, role)
    logger.info("role %s assigned to %s", role.value, user)
