"""Caller identity for API requests.

API Gateway validates the JWT and forwards the identity as headers:
x-user-sub carries the user ID and x-user-role the role claim (guest when
absent). Requests without x-user-sub are rejected.
"""

from fastapi import Depends, Request

from booking.models import Caller, CallerRole, Unauthorized

USER_HEADER = "x-user-sub"
ROLE_HEADER = "x-user-role"


def get_caller(request: Request) -> Caller:
    """Build the Caller from gateway identity headers.

    Raises:
        Unauthorized: If the identity header is missing or the role unknown
    """
    user_sub = request.headers.get(USER_HEADER)
    if not user_sub:
        raise Unauthorized(details={"reason": "missing_identity"})

    role_value = request.headers.get(ROLE_HEADER, CallerRole.GUEST.value).lower()
    try:
        role = CallerRole(role_value)
    except ValueError:
        raise Unauthorized(details={"reason": "unknown_role", "role": role_value}) from None
    return Caller(user_id=user_sub, role=role)


def require_staff(caller: Caller = Depends(get_caller)) -> Caller:
    """Caller dependency that only admits managers and admins."""
    if not caller.is_privileged:
        raise Unauthorized(details={"user_id": caller.user_id, "role": caller.role.value})
    return caller
