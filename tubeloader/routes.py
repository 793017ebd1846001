import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse, RedirectResponse
from oauthlib.oauth2.rfc6749.errors import OAuth2Error
from requests.exceptions import RequestException

from tubeloader.config import API_PREFIX
from tubeloader.errors import JobNotFoundError, ValidationError
from tubeloader.models.job import CredentialBundle, RedirectContext
from tubeloader.schemas.job import AppConfig, JobList, JobOut
from tubeloader.schemas.upload import UploadRequest, UploadResponse
from tubeloader.services.google_auth import (
    SESSION_STATE,
    SESSION_TOKENS,
    SESSION_VERIFIER,
    authorization_url,
    build_flow,
    credential_from_session,
    exchange_code,
    resolve_redirect_uri,
)
from tubeloader.services.upload_service import UploadService

logger = logging.getLogger(__name__)

router = APIRouter()


# --------------------------------------------------
# Dependencies
# --------------------------------------------------
def get_uploads(request: Request) -> UploadService:
    return request.app.state.uploads


def require_credential(request: Request) -> CredentialBundle:
    credential = credential_from_session(request.session)
    if credential is None:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Sign in with Google first.",
        )
    return credential


def redirect_uri_for(request: Request) -> str:
    return resolve_redirect_uri(str(request.base_url))


# --------------------------------------------------
# Client config
# --------------------------------------------------
@router.get(f"{API_PREFIX}/config", response_model=AppConfig)
def app_config(request: Request, uploads: UploadService = Depends(get_uploads)):
    return {
        "redirectUri": redirect_uri_for(request),
        "maxConcurrentUploads": uploads.scheduler.capacity,
        "maxBulkItems": uploads.max_bulk_items,
    }


# --------------------------------------------------
# Google sign-in
# --------------------------------------------------
@router.get("/auth/google")
def google_login(request: Request):
    flow = build_flow(redirect_uri_for(request))
    url, state = authorization_url(flow)

    request.session[SESSION_STATE] = state
    request.session[SESSION_VERIFIER] = getattr(flow, "code_verifier", None)

    return RedirectResponse(url, status_code=302)


@router.get("/auth/google/callback")
def google_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
):
    if not state or state != request.session.get(SESSION_STATE):
        return PlainTextResponse("Invalid OAuth state. Please retry sign-in.", status_code=400)

    try:
        flow = build_flow(
            redirect_uri_for(request),
            state=state,
            code_verifier=request.session.get(SESSION_VERIFIER),
        )
        tokens = exchange_code(flow, code, request.session.get(SESSION_TOKENS))
    except (OAuth2Error, RequestException, ValueError) as e:
        logger.warning("Google sign-in failed: %s", e)
        return RedirectResponse(f"/?auth=error&message={quote(str(e))}", status_code=302)

    request.session[SESSION_TOKENS] = tokens
    request.session.pop(SESSION_STATE, None)
    request.session.pop(SESSION_VERIFIER, None)

    return RedirectResponse("/?auth=success", status_code=302)


@router.get(f"{API_PREFIX}/auth/status")
def auth_status(request: Request):
    return {"authenticated": credential_from_session(request.session) is not None}


@router.post(f"{API_PREFIX}/auth/logout")
def logout(request: Request):
    request.session.clear()
    return {"ok": True}


# --------------------------------------------------
# Bulk upload
# --------------------------------------------------
@router.post(f"{API_PREFIX}/upload", response_model=UploadResponse)
def upload(
    req: UploadRequest,
    request: Request,
    credential: CredentialBundle = Depends(require_credential),
    uploads: UploadService = Depends(get_uploads),
):
    redirect_context = RedirectContext(redirect_uri=redirect_uri_for(request))

    try:
        job_ids = uploads.submit(req.items, credential, redirect_context)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.reason)

    return {"jobIds": job_ids}


# --------------------------------------------------
# Job Status
# --------------------------------------------------
@router.get(f"{API_PREFIX}/jobs", response_model=JobList)
def list_jobs(
    _credential: CredentialBundle = Depends(require_credential),
    uploads: UploadService = Depends(get_uploads),
):
    return {"jobs": [job.to_dict() for job in uploads.recent_jobs()]}


@router.get(f"{API_PREFIX}/jobs/{{job_id}}", response_model=JobOut)
def job_status(
    job_id: str,
    _credential: CredentialBundle = Depends(require_credential),
    uploads: UploadService = Depends(get_uploads),
):
    try:
        return uploads.get_job(job_id).to_dict()
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
