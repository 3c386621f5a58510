import hmac
import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from psd_worker import config

logger = logging.getLogger(__name__)

bearer_security = HTTPBearer(auto_error=False)


def verify_api_key(
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(bearer_security)
    ],
) -> None:
    """Require `Authorization: Bearer <WORKER_API_KEY>` when a key is configured."""
    api_key = config.WORKER_API_KEY
    if not api_key:
        return

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not hmac.compare_digest(credentials.credentials.encode(), api_key.encode()):
        logger.warning("Rejected request with invalid API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "Bearer"},
        )
