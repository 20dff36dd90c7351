import hmac
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from brokerapi.config import Settings, get_settings
from brokerapi.core.exceptions import AuthenticationError

# 내부 서비스 토큰 스킴 (사용자 인증은 상위 HTTP 계층에서 처리)
security = HTTPBearer(auto_error=False)


def require_service_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> str:
    """`Authorization: Bearer <AUTH_TOKEN>` 검증"""
    if not settings.AUTH_TOKEN:
        raise AuthenticationError("Service token is not configured")
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Service token required")
    if not hmac.compare_digest(credentials.credentials, settings.AUTH_TOKEN):
        raise AuthenticationError("Invalid service token")
    return credentials.credentials
