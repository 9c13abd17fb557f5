from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool

from vibecoder.core.firebase import verify_id_token

# Missing credentials are reported as 401 by the dependency, not 403 by the scheme.
security_scheme = HTTPBearer(auto_error=False)

_UNAUTHENTICATED_DETAIL = "Please sign in to continue"


async def get_current_user_id(token: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)]) -> str:
  """Verify the Firebase ID token and return the caller's uid."""
  if token is None or not token.credentials:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=_UNAUTHENTICATED_DETAIL, headers={"WWW-Authenticate": "Bearer"})

  decoded_claims = await run_in_threadpool(verify_id_token, token.credentials)
  if not decoded_claims:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication credentials", headers={"WWW-Authenticate": "Bearer"})

  uid = decoded_claims.get("uid")
  if not uid:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token claims")
  return str(uid)
