from dataclasses import dataclass

from jose import JWTError, jwt
from starlette.requests import Request

from salesconfig.core.config import get_settings


ANONYMOUS = "anonymous"


@dataclass
class AuthUser:
    sub: str
    roles: list[str]
    project_id: str | None = None
    channel_id: str | None = None


def _anonymous() -> AuthUser:
    return AuthUser(sub=ANONYMOUS, roles=["guest"])


async def get_current_user(request: Request) -> AuthUser:
    auth_header = request.headers.get("authorization", "")
    token = auth_header.removeprefix("Bearer ") if auth_header.startswith("Bearer ") else ""
    if not token:
        return _anonymous()

    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return _anonymous()

    roles = payload.get("roles", ["user"])
    if not isinstance(roles, list):
        roles = ["user"]
    project_id = payload.get("project_id")
    channel_id = payload.get("channel_id")
    return AuthUser(
        sub=str(payload.get("sub", ANONYMOUS)),
        roles=[str(role) for role in roles],
        project_id=str(project_id) if project_id is not None else None,
        channel_id=str(channel_id) if channel_id is not None else None,
    )
