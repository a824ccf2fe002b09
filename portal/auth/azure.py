"""
Azure Entra External ID (SSO) integration.

Login redirects the browser to Entra; the callback exchanges the code,
resolves an existing portal account and completes the login through the
same success path as password logins. Accounts are never provisioned here.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated, Optional
from urllib.parse import quote

import msal
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool

from portal.auth.dependencies import DbSession, DispatcherDep, LoginContextDep, RateLimiterDep
from portal.auth.router import set_session_cookie
from portal.auth.schemas import AzureStatusResponse
from portal.auth.service import AuthService
from portal.auth.utils import normalize_email
from portal.config import settings
from portal.notifications import LoginMethod
from portal.services.repository import PortalRepository

logger = logging.getLogger(__name__)

AUTHORITY_TEMPLATE = "https://{tenant_id}.ciamlogin.com/"
# openid, profile and offline_access are added by msal itself
SCOPES = ["email"]


@dataclass
class AzureIdentity:
    email: Optional[str]
    azure_id: str
    first_name: str = ""
    last_name: str = ""


class AzureAuthClient:
    """Thin wrapper over an msal ConfidentialClientApplication."""

    def __init__(self, client_id: str, tenant_id: str, client_secret: str):
        self.app = msal.ConfidentialClientApplication(
            client_id=client_id,
            client_credential=client_secret,
            authority=AUTHORITY_TEMPLATE.format(tenant_id=tenant_id),
        )

    def build_auth_url(self, redirect_uri: str) -> str:
        return self.app.get_authorization_request_url(
            SCOPES,
            redirect_uri=redirect_uri,
            prompt="select_account",
        )

    def acquire_identity(self, code: str, redirect_uri: str) -> Optional[AzureIdentity]:
        """
        Exchange the authorization code and extract the account claims.

        Returns:
            AzureIdentity, or None when Entra rejected the code
        """
        result = self.app.acquire_token_by_authorization_code(
            code,
            scopes=SCOPES,
            redirect_uri=redirect_uri,
        )
        if "error" in result:
            logger.error(
                "Azure token exchange failed: %s (%s)",
                result.get("error"),
                result.get("error_description"),
            )
            return None

        claims = result.get("id_token_claims") or {}
        oid = claims.get("oid") or claims.get("sub")
        if not oid:
            return None

        tid = claims.get("tid")
        return AzureIdentity(
            email=claims.get("preferred_username") or claims.get("email"),
            azure_id=f"{oid}.{tid}" if tid else oid,
            first_name=claims.get("given_name", ""),
            last_name=claims.get("family_name", ""),
        )


@lru_cache()
def _build_client() -> AzureAuthClient:
    return AzureAuthClient(
        client_id=settings.azure_client_id,
        tenant_id=settings.azure_tenant_id,
        client_secret=settings.azure_client_secret,
    )


def get_azure_client() -> Optional[AzureAuthClient]:
    """The SSO client, or None when Azure credentials are not configured."""
    if not settings.azure_auth_enabled:
        return None
    return _build_client()


AzureClientDep = Annotated[Optional[AzureAuthClient], Depends(get_azure_client)]


def get_redirect_uri(request: Request) -> str:
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc
    path = settings.azure_redirect_path
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{proto}://{host}{path}"


def _auth_error(code: str) -> RedirectResponse:
    return RedirectResponse(url=f"/auth?error={quote(code, safe='')}", status_code=302)


status_router = APIRouter(prefix="/api/auth/azure", tags=["Azure SSO"])
router = APIRouter(prefix="/auth/azure", tags=["Azure SSO"])


@status_router.get("/status", response_model=AzureStatusResponse)
async def azure_status() -> AzureStatusResponse:
    """Lets the front end decide whether to show the SSO button."""
    return AzureStatusResponse(
        enabled=settings.azure_auth_enabled,
        configured=bool(settings.azure_client_id and settings.azure_tenant_id),
    )


@router.get("/login")
async def azure_login(request: Request, client: AzureClientDep) -> RedirectResponse:
    if client is None:
        return _auth_error("azure_not_configured")

    try:
        auth_url = await run_in_threadpool(client.build_auth_url, get_redirect_uri(request))
    except Exception:
        logger.exception("Azure login redirect failed")
        return _auth_error("azure_login_failed")

    return RedirectResponse(url=auth_url, status_code=302)


@router.get("/callback")
async def azure_callback(
    request: Request,
    client: AzureClientDep,
    session: DbSession,
    rate_limiter: RateLimiterDep,
    notifications: DispatcherDep,
    context: LoginContextDep,
    code: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
) -> RedirectResponse:
    """
    Complete the SSO login.

    The account is matched by email first, then by linked Azure id. A changed
    Azure id is re-linked. Unknown users are refused.
    """
    if error:
        logger.error(f"Azure callback error: {error} {error_description or ''}".strip())
        return _auth_error(error)
    if client is None:
        return _auth_error("azure_not_configured")
    if not code:
        return _auth_error("no_code")

    try:
        identity = await run_in_threadpool(client.acquire_identity, code, get_redirect_uri(request))
    except Exception:
        logger.exception("Azure callback processing failed")
        return _auth_error("callback_failed")

    if identity is None:
        return _auth_error("no_account")
    if not identity.email:
        return _auth_error("no_email")

    repository = PortalRepository(session)
    user = await repository.get_user_by_email(normalize_email(identity.email))
    if user is None:
        user = await repository.get_user_by_azure_id(identity.azure_id)

    if user is None or not user.is_active:
        logger.info(f"Azure login refused, no portal account for {identity.email}")
        return _auth_error("user_not_found")

    if user.azure_id != identity.azure_id:
        await repository.link_azure_account(user, identity.azure_id)

    auth_service = AuthService(session, rate_limiter, notifications)
    result = await auth_service.complete_login(user, context, LoginMethod.AZURE_SSO)

    response = RedirectResponse(url="/", status_code=302)
    set_session_cookie(response, result)
    return response
