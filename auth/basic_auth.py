"""HTTP Basic authentication gate.

Every request is authenticated on its own; there are no sessions. The
credential store is built once from configuration and never mutated.

A store with no credentials grants every request. This is an explicit
operator opt-out (BLOB_EDITOR_USERS left empty) and is logged as a warning
at startup, see config/logging_config.py.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass

from fastapi import HTTPException, Request
from fastapi.responses import PlainTextResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from services.errors import AuthenticationFailure

logger = logging.getLogger(__name__)

# Denials are rendered by unauthorized_response, never by HTTPBasic itself
basic_scheme = HTTPBasic(auto_error=False)


def hash_secret(secret: str, salt: str = "") -> str:
    """Return the lowercase hex sha256 of salt + secret."""
    return hashlib.sha256((salt + secret).encode("utf-8")).hexdigest()


def _fixed_length(value: str) -> bytes:
    # Comparing digests keeps both operands the same length, so the
    # comparison time does not depend on the supplied value's length
    return hashlib.sha256(value.encode("utf-8")).digest()


@dataclass(frozen=True)
class Credential:
    """An authorized principal. The plaintext secret is never stored."""

    login: str
    salt: str
    digest: str


class CredentialStore:
    """Read-only set of authorized principals."""

    def __init__(self, credentials: tuple[Credential, ...] | list[Credential] = ()):
        self._credentials = tuple(credentials)

    def __len__(self) -> int:
        return len(self._credentials)

    @property
    def is_empty(self) -> bool:
        return not self._credentials

    def authorize(self, username: str | None, secret: str | None) -> bool:
        if self.is_empty:
            return True
        if username is None or secret is None:
            return False

        supplied_login = _fixed_length(username)
        # Every credential is checked, and both comparisons always run
        for cred in self._credentials:
            login_ok = hmac.compare_digest(supplied_login, _fixed_length(cred.login))
            digest_ok = hmac.compare_digest(
                hash_secret(secret, cred.salt).encode("ascii"),
                cred.digest.encode("ascii"),
            )
            if login_ok & digest_ok:
                return True
        return False


async def read_basic_credentials(request: Request) -> HTTPBasicCredentials | None:
    """Extract Basic credentials from the request.

    Returns None for a missing header, another scheme, or an undecodable value.
    """
    try:
        return await basic_scheme(request)
    except HTTPException:
        return None


def unauthorized_response(realm: str) -> PlainTextResponse:
    """The single response shape used for every authentication denial."""
    return PlainTextResponse(
        "Unauthorized\n",
        status_code=401,
        headers={"WWW-Authenticate": f'Basic realm="{realm}"'},
    )


async def require_basic_auth(request: Request) -> None:
    """Enforce Basic auth against app.state.credential_store."""
    store: CredentialStore = request.app.state.credential_store
    if store.is_empty:
        return

    credentials = await read_basic_credentials(request)
    if credentials is None:
        logger.info("Rejected request without usable Basic credentials")
        raise AuthenticationFailure("missing or malformed credentials")

    if not store.authorize(credentials.username, credentials.password):
        logger.info("Rejected Basic credentials for user %r", credentials.username)
        raise AuthenticationFailure("invalid credentials")
