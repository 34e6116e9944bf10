"""Firebase Authentication: REST client and per-device auth state.

``IdentityClient`` is stateless and shared by the whole process; it talks to
the Identity Toolkit REST API and verifies Firebase ID tokens.
``IdentityProvider`` is the per-device half: it remembers who is signed in
and tells listeners whenever that changes, the way the browser SDK's
``onAuthStateChanged`` does.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from urllib import parse as urlparse

import requests
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
DEFAULT_REQUEST_URI = "http://localhost"

# Identity Toolkit error message -> client SDK style code
REST_ERROR_CODES = {
    "EMAIL_EXISTS": "auth/email-already-in-use",
    "EMAIL_NOT_FOUND": "auth/user-not-found",
    "INVALID_PASSWORD": "auth/wrong-password",
    "INVALID_LOGIN_CREDENTIALS": "auth/invalid-credential",
    "INVALID_EMAIL": "auth/invalid-email",
    "MISSING_PASSWORD": "auth/missing-password",
    "WEAK_PASSWORD": "auth/weak-password",
    "USER_DISABLED": "auth/user-disabled",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "auth/too-many-requests",
    "OPERATION_NOT_ALLOWED": "auth/operation-not-allowed",
    "INVALID_IDP_RESPONSE": "auth/invalid-credential",
}

AUTH_ERROR_MESSAGES = {
    "auth/invalid-credential": "Invalid email or password",
    "auth/user-not-found": "Invalid email or password",
    "auth/wrong-password": "Invalid email or password",
    "auth/too-many-requests": "Too many attempts. Try again later.",
    "auth/email-already-in-use": "This email is already in use",
    "auth/invalid-email": "Invalid email format",
    "auth/weak-password": "Password is too weak",
    "auth/missing-password": "Password is required",
    "auth/user-disabled": "This account has been disabled",
    "auth/network-request-failed": "Network error. Check your connection.",
}

# Per-operation fallback when the code has no specific message
OPERATION_FALLBACKS = {
    "sign_in": "Failed to sign in",
    "sign_up": "Failed to register",
    "popup": "Failed to sign in with Google",
    "password_reset": "Failed to send recovery email",
    "sign_out": "Failed to sign out",
    "token": "Session expired. Please sign in again.",
}


def message_for_code(code: Optional[str], operation: str = "sign_in") -> str:
    """Map a provider error code to the user-facing message."""
    if operation == "password_reset" and code in ("auth/user-not-found", "auth/invalid-email"):
        return "No account found with this email"
    return AUTH_ERROR_MESSAGES.get(code or "", OPERATION_FALLBACKS.get(operation, "Authentication failed"))


class AuthError(RuntimeError):
    """Raised by identity operations; carries the provider code."""

    def __init__(self, code: str, message: Optional[str] = None, *, operation: str = "sign_in") -> None:
        self.code = code
        self.operation = operation
        self.user_message = message or message_for_code(code, operation)
        super().__init__(f"{code}: {self.user_message}")


@dataclass(frozen=True, slots=True)
class AuthUser:
    """The signed-in account as reported by the identity provider."""

    uid: str
    email: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None
    provider_id: str = "password"

    def to_api_dict(self) -> Dict[str, Any]:
        return {"uid": self.uid, "email": self.email, "providerId": self.provider_id}


# =============================================================================
# REST client
# =============================================================================

class IdentityClient:
    """Thin wrapper over the Identity Toolkit REST API."""

    def __init__(
        self,
        api_key: str,
        *,
        project_id: Optional[str] = None,
        session: Optional[requests.Session] = None,
        base_url: str = IDENTITY_TOOLKIT_URL,
        timeout_seconds: int = 15,
    ) -> None:
        self.api_key = api_key
        self.project_id = project_id
        self.session = session or requests.Session()
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds

    def sign_up(self, email: str, password: str) -> AuthUser:
        data = self._post(
            "accounts:signUp",
            {"email": email, "password": password, "returnSecureToken": True},
            operation="sign_up",
        )
        return self._user_from_response(data)

    def sign_in(self, email: str, password: str) -> AuthUser:
        data = self._post(
            "accounts:signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
            operation="sign_in",
        )
        return self._user_from_response(data)

    def sign_in_with_idp(
        self,
        provider_id: str,
        provider_token: str,
        *,
        request_uri: str = DEFAULT_REQUEST_URI,
    ) -> AuthUser:
        """Exchange an identity provider credential (e.g. a Google ID token)."""
        post_body = urlparse.urlencode({"id_token": provider_token, "providerId": provider_id})
        data = self._post(
            "accounts:signInWithIdp",
            {
                "postBody": post_body,
                "requestUri": request_uri,
                "returnIdpCredential": True,
                "returnSecureToken": True,
            },
            operation="popup",
        )
        return self._user_from_response(data, provider_id=provider_id)

    def send_password_reset(self, email: str) -> None:
        self._post(
            "accounts:sendOobCode",
            {"requestType": "PASSWORD_RESET", "email": email},
            operation="password_reset",
        )

    def verify_id_token(self, token: str) -> AuthUser:
        """Verify a Firebase ID token minted for this project."""
        try:
            claims = id_token.verify_firebase_token(
                token, google_requests.Request(), audience=self.project_id
            )
        except ValueError as exc:
            raise AuthError("auth/invalid-user-token", operation="token") from exc

        if not claims:
            raise AuthError("auth/invalid-user-token", operation="token")
        uid = claims.get("user_id") or claims.get("sub")
        if not uid:
            raise AuthError("auth/invalid-user-token", operation="token")
        firebase_claims = claims.get("firebase") or {}
        return AuthUser(
            uid=uid,
            email=claims.get("email"),
            id_token=token,
            provider_id=firebase_claims.get("sign_in_provider", "password"),
        )

    def _post(self, endpoint: str, payload: Dict[str, Any], *, operation: str) -> Dict[str, Any]:
        url = f"{self.base_url}/{endpoint}"
        try:
            resp = self.session.post(
                url,
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise AuthError("auth/network-request-failed", operation=operation) from exc

        if resp.status_code >= 400:
            raise AuthError(_error_code(resp), operation=operation)
        return resp.json()

    @staticmethod
    def _user_from_response(data: Dict[str, Any], *, provider_id: str = "password") -> AuthUser:
        return AuthUser(
            uid=data["localId"],
            email=data.get("email"),
            id_token=data.get("idToken"),
            refresh_token=data.get("refreshToken"),
            provider_id=data.get("providerId") or provider_id,
        )


def _error_code(resp: requests.Response) -> str:
    try:
        message = resp.json().get("error", {}).get("message", "")
    except ValueError:
        return "auth/internal-error"
    # e.g. "WEAK_PASSWORD : Password should be at least 6 characters"
    key = message.split(":", 1)[0].strip()
    return REST_ERROR_CODES.get(key, f"auth/{key.lower().replace('_', '-')}" if key else "auth/internal-error")


# =============================================================================
# Per-device auth state
# =============================================================================

AuthStateListener = Callable[[Optional[AuthUser]], None]


class IdentityProvider:
    """Auth state for one device, backed by a shared ``IdentityClient``."""

    def __init__(self, client: IdentityClient) -> None:
        self._client = client
        self._current_user: Optional[AuthUser] = None
        self._listeners: List[AuthStateListener] = []

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._current_user

    def on_auth_state_changed(self, callback: AuthStateListener) -> Callable[[], None]:
        """Register a listener; it is called right away with the current user."""
        self._listeners.append(callback)
        callback(self._current_user)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def sign_up(self, email: str, password: str) -> AuthUser:
        return self._set_user(self._client.sign_up(email, password))

    def sign_in(self, email: str, password: str) -> AuthUser:
        return self._set_user(self._client.sign_in(email, password))

    def sign_in_with_popup(self, provider_id: str, provider_token: str) -> AuthUser:
        return self._set_user(self._client.sign_in_with_idp(provider_id, provider_token))

    def sign_in_with_token(self, token: str) -> AuthUser:
        """Adopt a session the browser already established with Firebase."""
        return self._set_user(self._client.verify_id_token(token))

    def send_password_reset(self, email: str) -> None:
        self._client.send_password_reset(email)

    def adopt(self, user: AuthUser) -> AuthUser:
        """Treat an already-authenticated user as signed in on this device."""
        return self._set_user(user)

    def sign_out(self) -> None:
        self._set_user(None)

    def _set_user(self, user: Optional[AuthUser]) -> Optional[AuthUser]:
        self._current_user = user
        for listener in list(self._listeners):
            listener(user)
        return user
