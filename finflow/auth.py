# finflow/auth.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Optional
import logging

import gspread
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials

from finflow.results import AuthError

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]


@dataclass(frozen=True)
class GoogleSession:
    client: gspread.client.Client
    account: str


def sign_in(secrets: Optional[Mapping[str, Any]]) -> GoogleSession:
    """
    Authorize against Google with the service account stored in secrets
    (``[gcp_service_account]``). Remote save/load requires this session.
    """
    try:
        creds_info = dict(secrets["gcp_service_account"]) if secrets else None
    except (KeyError, TypeError):
        creds_info = None
    if not creds_info:
        raise AuthError("Missing [gcp_service_account] secrets; cannot sign in to Google")

    try:
        creds = Credentials.from_service_account_info(creds_info, scopes=SCOPES)
        client = gspread.authorize(creds)
    except (GoogleAuthError, ValueError, KeyError) as e:
        logger.error("Google sign-in failed: %s", e)
        raise AuthError(f"Google sign-in failed: {e}") from e

    account = creds_info.get("client_email", "service account")
    logger.info("Signed in to Google as %s", account)
    return GoogleSession(client=client, account=account)
