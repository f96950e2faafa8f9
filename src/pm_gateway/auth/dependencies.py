"""FastAPI dependency: get_current_principal.

Usage in any router:
    from src.pm_gateway.auth.dependencies import get_current_principal

    @router.post("/markets/{market_id}/claim")
    async def claim(principal: Annotated[str, Depends(get_current_principal)]):
        ...

Authorization (administrator / reporter gates) is NOT decided here: services
compare the principal against stored identity values.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from src.pm_common.errors import InvalidCredentialsError
from src.pm_gateway.auth.jwt_handler import decode_principal

# Tokens come from the external identity provider; tokenUrl only feeds Swagger UI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_principal(
    request: Request,
    token: str = Depends(oauth2_scheme),
) -> str:
    """Extract and validate the Bearer token, return the caller principal.

    The principal is also stored on request.state for the request log.
    """
    try:
        principal = decode_principal(token)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None
    request.state.principal = principal
    return principal
