"""
Authentication module — Builds EWS credentials for the configured auth mode.
NTLM and basic use a service-account password; certificate mode acquires a
hybrid modern auth token with MSAL.
"""

from __future__ import annotations

import base64
import getpass
import logging
import os
from typing import Any

from cryptography.hazmat.primitives.serialization import pkcs12, Encoding, PrivateFormat, NoEncryption
from cryptography.hazmat.primitives.hashes import SHA1
from exchangelib import BASIC, NTLM, OAUTH2, Credentials, OAuth2AuthorizationCodeCredentials
from oauthlib.oauth2 import OAuth2Token
import msal

from ..config import AuthConfig, CERT_PASSWORD_ENV_VAR, PASSWORD_ENV_VAR

logger = logging.getLogger("mailbox_audit.auth")

_PASSWORD_MODES = {
    "ntlm": NTLM,
    "basic": BASIC,
}


class AuthenticationError(Exception):
    """Raised when authentication fails."""
    pass


class Authenticator:
    """
    Produces exchangelib credentials.
    Supports:
      - NTLM / basic with a service account
      - Certificate-based app-only token (hybrid modern authentication)
    """

    def __init__(self, config: AuthConfig):
        self.config = config

    def build_credentials(self) -> tuple[Any, str]:
        """Return (credentials, exchangelib auth type) for the configured mode."""
        mode = self.config.mode.lower()
        if mode in _PASSWORD_MODES:
            return self._password_credentials(), _PASSWORD_MODES[mode]
        elif mode == "certificate":
            token = self._acquire_certificate_token()
            cert_config = self.config.certificate
            credentials = OAuth2AuthorizationCodeCredentials(
                client_id=cert_config.client_id,
                client_secret=None,
                tenant_id=cert_config.tenant_id,
                access_token=OAuth2Token({"access_token": token, "token_type": "Bearer"}),
            )
            return credentials, OAUTH2
        else:
            raise AuthenticationError(f"Unknown auth mode: {self.config.mode}")

    def _password_credentials(self) -> Credentials:
        username = self.config.username
        if not username:
            raise AuthenticationError("No username configured. Use --username or the config file.")

        password = self.config.password
        if not password:
            password = os.environ.get(PASSWORD_ENV_VAR, "")
        if not password:
            password = getpass.getpass(f"Enter the password for {username}: ")
        if not password:
            raise AuthenticationError(f"No password provided for {username}.")

        logger.info(f"Using {self.config.mode.upper()} credentials for {username}.")
        return Credentials(username=username, password=password)

    def _acquire_certificate_token(self) -> str:
        """App-only token for the on-premise EWS resource, signed with the PFX key."""
        cert = self.config.certificate
        if not cert:
            raise AuthenticationError("Certificate mode needs an auth.certificate section.")
        if not cert.resource:
            raise AuthenticationError("Certificate mode needs the EWS resource URL (--resource).")

        pfx_password = (
            cert.certificate_password
            or os.environ.get(CERT_PASSWORD_ENV_VAR, "")
            or getpass.getpass(f"PFX password for {cert.certificate_path}: ")
        )
        key_pem, thumbprint = load_pfx(cert.certificate_path, pfx_password)
        logger.info(f"Requesting EWS token for {cert.resource} (certificate {thumbprint})")

        app = msal.ConfidentialClientApplication(
            client_id=cert.client_id,
            authority=f"https://login.microsoftonline.com/{cert.tenant_id}",
            client_credential={"thumbprint": thumbprint, "private_key": key_pem},
        )
        result = app.acquire_token_for_client(scopes=[f"{cert.resource.rstrip('/')}/.default"])

        token = result.get("access_token")
        if not token:
            reason = result.get("error_description") or result.get("error") or "no token returned"
            raise AuthenticationError(f"Token request for {cert.resource} failed: {reason}")

        return token


def load_pfx(path: str, password: str) -> tuple[str, str]:
    """
    Read a base64-encoded PFX file.

    Returns:
        (PEM-encoded PKCS8 private key, SHA1 thumbprint as hex)
    """
    try:
        with open(path, "r") as fh:
            pfx = base64.b64decode(fh.read().strip())
    except FileNotFoundError:
        raise AuthenticationError(f"Certificate file not found: {path}")
    except (OSError, ValueError) as e:
        raise AuthenticationError(f"Cannot read certificate file {path}: {e}")

    try:
        key, certificate, _ = pkcs12.load_key_and_certificates(
            pfx, password.encode("utf-8") if password else None
        )
    except ValueError as e:
        raise AuthenticationError(f"Cannot open PFX {path}: {e}")
    if key is None or certificate is None:
        raise AuthenticationError(f"PFX {path} holds no private key and certificate pair.")

    key_pem = key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()).decode("utf-8")
    return key_pem, certificate.fingerprint(SHA1()).hex()
