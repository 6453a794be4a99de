# roster/core/auth.py
"""
Authorization policy: role -> capabilities over the Student collection.

    create : teacher or admin
    update : teacher or admin (edit form and the accepted toggle)
    delete : admin only

The policy functions are pure. The remote store enforces the same rules
with row-level security (see roster.database), so this module only decides
what the client attempts and which controls the rendering layer shows.
"""
from enum import Enum

from fastapi import Request

from roster.core.errors import PermissionDenied, to_http_exception
from roster.schemas.auth import ProfileRead


class Capability(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def is_admin(profile: ProfileRead | None) -> bool:
    return profile is not None and profile.role == "admin"


def is_teacher(profile: ProfileRead | None) -> bool:
    """Admin implies teacher."""
    return (profile is not None and profile.role == "teacher") or is_admin(profile)


def capabilities_for(profile: ProfileRead | None) -> frozenset[Capability]:
    caps: set[Capability] = set()
    if is_teacher(profile):
        caps.update({Capability.CREATE, Capability.UPDATE})
    if is_admin(profile):
        caps.add(Capability.DELETE)
    return frozenset(caps)


def can(profile: ProfileRead | None, capability: Capability) -> bool:
    return capability in capabilities_for(profile)


def check_capability(
    profile: ProfileRead | None,
    capability: Capability,
) -> PermissionDenied | None:
    """
    Pre-flight check for a mutating operation.

    Returns:
        None when allowed, otherwise the PermissionDenied to report.
    """
    if can(profile, capability):
        return None
    role = profile.role if profile is not None else "anonymous"
    return PermissionDenied(f"Role '{role}' may not {capability.value} students")


# ----- FastAPI dependencies -----


def require_capability(capability: Capability):
    """
    Route guard. The repository checks again, this only fails the request
    before the body is processed.

    Usage:

        @router.delete("/{id}", dependencies=[Depends(require_capability(Capability.DELETE))])
    """
    def _guard(request: Request) -> None:
        session = request.app.state.context.session
        denied = check_capability(session.profile, capability)
        if denied is not None:
            raise to_http_exception(denied)

    return _guard
