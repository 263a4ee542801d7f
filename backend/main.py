"""
Waitlist API
Main FastAPI application
"""
import html
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
import uvicorn

from config import WaitlistConfig, load_config
from errors import ValidationError
from mode import select_mode
from models import SignupResponse, validate_email
from remote import RemoteClient, make_remote_client
from signup import (
    CompletionUpdater,
    SignupCoordinator,
    SubmissionState,
    SubmissionStatus,
)
from storage import FileStorage
from waitlist import LocalEntryStore

CONFIG = load_config()

logging.basicConfig(
    level=CONFIG.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release the remote client on shutdown."""
    yield
    close_remote_client()


app = FastAPI(
    lifespan=lifespan,
    title="Waitlist",
    description="Collects waitlist emails, upserted once per address",
    version="1.0.0"
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify your frontend URL
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.config = CONFIG
app.state.local_store = LocalEntryStore(FileStorage(CONFIG.storage_dir))


# Singleton remote client, created on first remote write
_remote_instance: Optional[RemoteClient] = None

def get_remote_client() -> RemoteClient:
    """Get or create the remote client singleton"""
    global _remote_instance
    if _remote_instance is None:
        _remote_instance = make_remote_client(app.state.config)
    return _remote_instance


def close_remote_client() -> None:
    global _remote_instance
    close = getattr(_remote_instance, "close", None)
    if close is not None:
        close()
        logger.info("Closed remote waitlist client")
    _remote_instance = None


def _config() -> WaitlistConfig:
    return app.state.config


async def _read_email(request: Request) -> str:
    """Pull ``email`` from a JSON body or a form post."""
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            payload = await request.json()
        except ValueError:
            return ""
        if isinstance(payload, dict):
            return str(payload.get("email", ""))
        return ""
    form = await request.form()
    return str(form.get("email", ""))


async def _validated_email(request: Request) -> str:
    try:
        return validate_email(await _read_email(request))
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid email")


def _failure_response(state: SubmissionState) -> JSONResponse:
    body = SignupResponse(status=state.status.value, email=state.email, error=state.error)
    return JSONResponse(status_code=503, content=body.model_dump())


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "ok", "mode": select_mode(_config()).value}


@app.post("/api/waitlist")
async def waitlist_signup(request: Request):
    """Record a waitlist email from the landing form or JSON clients."""
    email = await _validated_email(request)
    coordinator = SignupCoordinator(_config(), app.state.local_store, get_remote_client)
    state = await run_in_threadpool(coordinator.submit, email)

    if state.status is not SubmissionStatus.SUCCEEDED:
        return _failure_response(state)

    if "text/html" in request.headers.get("accept", ""):
        return RedirectResponse(url=state.next_url, status_code=303)

    return SignupResponse(status=state.status.value, email=state.email, next_url=state.next_url)


@app.get("/complete-signup", response_class=HTMLResponse)
async def complete_signup_page(email: str = ""):
    """Second step of the signup flow"""
    safe_email = html.escape(email, quote=True)
    return HTMLResponse(
        content=(
            "<!doctype html><html><head><title>Complete signup</title>"
            "<meta charset='utf-8'></head><body style='font-family:Arial,sans-serif;"
            "background:#0a0a0a;color:#f8fafc;display:flex;align-items:center;justify-content:center;"
            "min-height:100vh;margin:0;'><div style='text-align:center;max-width:480px;padding:32px;'>"
            f"<h1 style='margin-bottom:12px;'>You're on the list, {safe_email}</h1>"
            "<form method='post' action='/api/waitlist/complete'>"
            f"<input type='hidden' name='email' value='{safe_email}'>"
            "<button type='submit'>Finish signup</button></form>"
            "</div></body></html>"
        ),
        status_code=200,
    )


@app.post("/api/waitlist/complete")
async def waitlist_complete(request: Request):
    """Mark an email as having finished signup, creating it if needed."""
    email = await _validated_email(request)
    updater = CompletionUpdater(_config(), app.state.local_store, get_remote_client)
    state = await run_in_threadpool(updater.complete, email)

    if state.status is not SubmissionStatus.SUCCEEDED:
        return _failure_response(state)

    return SignupResponse(status=state.status.value, email=state.email)


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
