"""Dual authentication for the recurring-tasks endpoints.

Service-to-service calls must present the shared secret (when one is
configured) in x-service-secret. Every call must present a bearer token that is
either a live user session or an automation token signed with the platform key.
"""
from fastapi import HTTPException, Request, status
from jose import jwt, JWTError
from pydantic import BaseModel
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple
import hmac
import logging

import httpx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from recurring_tasks.config import Settings
from recurring_tasks.errors import ConfigurationError
from recurring_tasks.utils.dt_utils import dt_now_utc

logger = logging.getLogger(__name__)

SERVICE_SECRET_HEADER = "x-service-secret"
AUTOMATION_TOKEN_LIFETIME = timedelta(minutes=5)


class CurrentUser(BaseModel):
    """Identity extracted from a verified bearer token."""
    user_id: str
    email: Optional[str] = None
    role: Optional[str] = None
    source: str = "session"  # session or automation

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _role_from_claims(claims: Dict[str, Any]) -> Optional[str]:
    app_metadata = claims.get("app_metadata") or {}
    if isinstance(app_metadata, dict) and app_metadata.get("role"):
        return app_metadata["role"]
    return claims.get("role")


def extract_bearer_token(request: Request) -> Optional[str]:
    """Return the bearer token from the Authorization header, if any."""
    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.lower().startswith("bearer "):
        return None
    token = auth_header[len("bearer "):].strip()
    return token or None


def load_verification_key(secret: str) -> Tuple[str, List[str]]:
    """
    Turn the configured JWT secret into a verification key and algorithms.

    Args:
        secret: Shared HS256 secret, or a PEM public/private key. Escaped
            "\\n" sequences are accepted.

    Returns:
        (key, algorithms) suitable for jose.jwt.decode
    """
    normalized = secret.replace("\\n", "\n") if "\\n" in secret else secret
    if not normalized.strip().startswith("-----BEGIN"):
        return normalized, ["HS256"]

    pem = normalized.strip().encode()
    if b"PUBLIC KEY" in pem:
        public_key = serialization.load_pem_public_key(pem)
    else:
        public_key = serialization.load_pem_private_key(pem, password=None).public_key()

    algorithm = "ES256" if isinstance(public_key, ec.EllipticCurvePublicKey) else "RS256"
    public_pem = public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return public_pem.decode(), [algorithm]


def load_signing_key(secret: str) -> Tuple[str, str]:
    """
    Turn the configured JWT secret into a signing key and algorithm.

    Raises:
        ConfigurationError: If the secret is a PEM public key, which cannot sign
    """
    normalized = secret.replace("\\n", "\n") if "\\n" in secret else secret
    if not normalized.strip().startswith("-----BEGIN"):
        return normalized, "HS256"

    pem = normalized.strip().encode()
    if b"PUBLIC KEY" in pem:
        raise ConfigurationError("SUPABASE_JWT_SECRET holds a public key; automation tokens cannot be signed")

    try:
        private_key = serialization.load_pem_private_key(pem, password=None)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"SUPABASE_JWT_SECRET is not a usable private key: {str(e)}") from e
    algorithm = "ES256" if isinstance(private_key, ec.EllipticCurvePrivateKey) else "RS256"
    return normalized.strip(), algorithm


def create_automation_token(settings: Settings, expires_in: timedelta = AUTOMATION_TOKEN_LIFETIME) -> str:
    """
    Sign a short-lived service_role token that RequestAuthenticator accepts.

    Raises:
        ConfigurationError: If no signing secret or project URL is configured
    """
    if not settings.jwt_secret:
        raise ConfigurationError("SUPABASE_JWT_SECRET is not configured")
    if not settings.auth_issuer:
        raise ConfigurationError("SUPABASE_URL is not configured")

    key, algorithm = load_signing_key(settings.jwt_secret)
    now = dt_now_utc()
    claims = {
        "sub": "service_role",
        "role": "service_role",
        "aud": "authenticated",
        "iss": settings.auth_issuer,
        "iat": now,
        "exp": now + expires_in,
    }
    headers = {"kid": settings.jwt_key_id} if settings.jwt_key_id and algorithm != "HS256" else None
    return jwt.encode(claims, key, algorithm=algorithm, headers=headers)


class SessionVerifier:
    """Checks whether a bearer token belongs to a live user session."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    async def verify(self, token: str) -> Optional[CurrentUser]:
        if not self.settings.supabase_url:
            return None

        headers = {"Authorization": f"Bearer {token}"}
        api_key = self.settings.anon_key or self.settings.service_role_key
        if api_key:
            headers["apikey"] = api_key

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.settings.remote_timeout_seconds) as client:
                response = await client.get(f"{self.settings.auth_issuer}/user", headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Session lookup failed: {str(e)}")
            return None

        if response.status_code != 200:
            return None
        try:
            user = response.json()
        except ValueError:
            return None
        if not isinstance(user, dict) or not user.get("id"):
            return None

        return CurrentUser(
            user_id=user["id"],
            email=user.get("email"),
            role=_role_from_claims(user),
            source="session",
        )


class RequestAuthenticator:
    """Applies the shared-secret and bearer-token checks to a request."""

    def __init__(self, settings: Settings, session_verifier: Optional[SessionVerifier] = None):
        self.settings = settings
        self.session_verifier = session_verifier or SessionVerifier(settings)
        self._key: Optional[Tuple[str, List[str]]] = None

    def check_service_secret(self, request: Request) -> bool:
        expected = self.settings.service_secret
        if not expected:
            return True
        provided = request.headers.get(SERVICE_SECRET_HEADER)
        if not provided:
            return False
        return hmac.compare_digest(provided.encode(), expected.encode())

    def verify_automation_token(self, token: str) -> Optional[CurrentUser]:
        """Verify a token signed with the platform's own key material."""
        if not self.settings.jwt_secret:
            return None
        if self._key is None:
            self._key = load_verification_key(self.settings.jwt_secret)
        key, algorithms = self._key

        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=algorithms,
                issuer=self.settings.auth_issuer,
                options={"verify_aud": False},
            )
        except JWTError as e:
            logger.warning(f"JWT verification failed: {str(e)}")
            return None

        subject = payload.get("sub") or payload.get("role")
        if not subject:
            logger.warning("JWT verification failed: token has neither sub nor role")
            return None

        return CurrentUser(
            user_id=subject,
            email=payload.get("email"),
            role=_role_from_claims(payload),
            source="automation",
        )

    async def authenticate_token(self, request: Request) -> CurrentUser:
        """
        Validate the bearer token of a request.

        Raises:
            HTTPException: 401 if the token is missing or neither check accepts it
        """
        token = extract_bearer_token(request)
        if not token:
            raise _unauthorized()

        user = await self.session_verifier.verify(token)
        if user is None:
            user = self.verify_automation_token(token)
        if user is None:
            raise _unauthorized()
        return user

    async def authenticate_service_request(self, request: Request) -> CurrentUser:
        """Both checks: shared secret (if configured) and bearer token."""
        if not self.check_service_secret(request):
            logger.warning("Rejected request with missing or wrong service secret")
            raise _unauthorized()
        return await self.authenticate_token(request)


def get_authenticator(request: Request) -> RequestAuthenticator:
    return request.app.state.authenticator


async def authorize_service_request(request: Request) -> CurrentUser:
    """Dependency for POST /recurring-tasks."""
    return await get_authenticator(request).authenticate_service_request(request)


async def get_current_user(request: Request) -> CurrentUser:
    """Dependency for user-facing endpoints: bearer token only."""
    return await get_authenticator(request).authenticate_token(request)


async def require_admin(request: Request) -> CurrentUser:
    """Dependency that additionally requires the admin role."""
    user = await get_current_user(request)
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized",
        )
    return user
