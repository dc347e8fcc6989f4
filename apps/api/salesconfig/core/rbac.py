from collections.abc import Callable

from fastapi import Depends, HTTPException, status

from salesconfig.core.auth import AuthUser, get_current_user


ADMIN_ROLES = frozenset({"admin", "system.admin"})


def require_any_role(*roles: str) -> Callable[..., AuthUser]:
    accepted = frozenset(roles)

    async def checker(user: AuthUser = Depends(get_current_user)) -> AuthUser:
        if accepted.isdisjoint(user.roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing role: {' or '.join(sorted(accepted))}",
            )
        return user

    return checker


require_admin = require_any_role(*ADMIN_ROLES)
