# Capability checks kept apart from business logic, so the role model can
# change without touching the services.
from models.users import Role, User
from services.errors import Forbidden

# Which roles satisfy a required role
_GRANTS = {
    Role.ADMIN: {Role.ADMIN.value},
    Role.USER: {Role.ADMIN.value, Role.USER.value},
}


def has_role(actor: User, role: Role) -> bool:
    return bool(actor and actor.is_active and (actor.role or "").lower() in _GRANTS[role])


def requires_role(actor: User, role: Role) -> User:
    if not has_role(actor, role):
        raise Forbidden("Admin access required" if role is Role.ADMIN else "Forbidden")
    return actor
