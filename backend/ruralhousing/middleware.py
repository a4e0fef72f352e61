from typing import Any, Dict, Optional

import jwt
from django.conf import settings
from django.contrib.auth import get_user_model


class ApiTokenAuthMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        token = _extract_bearer_token(request)
        if token:
            claims = _verify_token(token)
            if claims:
                user = _get_user_from_claims(claims)
                if user:
                    request.user = user
                    request._cached_user = user
                    request._dont_enforce_csrf_checks = True
        return self.get_response(request)


def _extract_bearer_token(request) -> str:
    header = request.headers.get("Authorization", "")
    if not header:
        return ""
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return ""
    return parts[1].strip()


def _verify_token(token: str) -> Optional[Dict[str, Any]]:
    secret = (getattr(settings, "RURALHOUSING_TOKEN_SECRET", "") or "").strip()
    if not secret:
        return None
    issuer = getattr(settings, "RURALHOUSING_TOKEN_ISSUER", "") or None
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            issuer=issuer,
            options={"verify_exp": True, "require": ["sub", "exp"]},
        )
    except jwt.PyJWTError:
        return None


def _get_user_from_claims(claims: Dict[str, Any]):
    username = str(claims.get("sub") or "").strip()
    if not username:
        return None
    User = get_user_model()
    return User.objects.filter(username=username, is_active=True).first()
