# oasis/auth/tokens.py
import uuid
from datetime import datetime, timedelta
from typing import Optional

from jose import jwt, JWTError, ExpiredSignatureError
from jose.exceptions import JWTClaimsError

from oasis.config import get_settings
from oasis.errors import TokenMalformed, TokenExpired, TokenInvalidSignature


def issue_token(user_id: str, expires_in: Optional[timedelta] = None) -> str:
    """
    Issue a signed bearer token for user_id
    iat + a random jti make every token distinct, even within the same second.
    """
    settings = get_settings()
    now = datetime.utcnow()
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + (expires_in or settings.jwt_expires_in),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> str:
    """
    Verify token and return the user id it carries

    Raises:
        TokenMalformed: not a parseable JWT, no subject, or unusable claims
        TokenExpired: past its exp claim
        TokenInvalidSignature: signature does not match the secret
    """
    settings = get_settings()

    try:
        jwt.get_unverified_header(token)
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        raise TokenMalformed()

    if not isinstance(claims.get("sub"), str) or not claims["sub"]:
        raise TokenMalformed()

    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise TokenExpired()
    except JWTClaimsError:
        raise TokenMalformed()
    except JWTError:
        raise TokenInvalidSignature()

    return payload["sub"]


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token part of an "Authorization: Bearer <token>" header"""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
