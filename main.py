import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from config import Settings, load_settings
from database import DocumentStore, decode_cursor, encode_cursor
from errors import (
    EmailNotVerifiedError,
    PendingApprovalError,
    ProfileExistsError,
    ProfileNotFoundError,
    StoreError,
    ValidationError,
    install_error_handlers,
)
from gate import AuthorizationGate, google_profile, new_profile
from identity import Identity, IdentityProvider
from log import configure_logging
from schemas import (
    ContactMessage,
    ContactRequest,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    SessionRecord,
    SessionResponse,
    ViolationEvent,
    ViolationRequest,
    utc_timestamp,
)
from sessions import bearer_token, create_token, read_token

LOGGER = logging.getLogger("portal.api")

router = APIRouter()


# ----------------------
# Dependencies
# ----------------------

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity


def get_gate(request: Request) -> AuthorizationGate:
    return request.app.state.gate


def current_identity(
    authorization: Optional[str] = Header(None),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Identity:
    return provider.verify(bearer_token(authorization))


def current_session(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> SessionRecord:
    return read_token(bearer_token(authorization), settings.secret_key)


def require_role(session: SessionRecord, roles: List[str]):
    if session.role not in roles:
        raise HTTPException(status_code=403, detail="Forbidden")


def admin_guard(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> Optional[SessionRecord]:
    """Admin reads stay open unless REQUIRE_ADMIN_SESSION is switched on."""
    if not settings.require_admin_session:
        return None
    session = read_token(bearer_token(authorization), settings.secret_key)
    require_role(session, ["admin"])
    return session


def _missing(*values: Optional[str]) -> bool:
    return any(not (v and v.strip()) for v in values)


# ----------------------
# Basic routes
# ----------------------

@router.get("/")
def index(settings: Settings = Depends(get_settings)):
    page = settings.templates_dir / "index.html"
    if not page.exists():
        raise HTTPException(status_code=404, detail="Not Found")
    return FileResponse(page)


@router.get("/test")
def test_connections(
    settings: Settings = Depends(get_settings),
    store: DocumentStore = Depends(get_store),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if settings.database_url else "❌ Not Set",
        "database_name": settings.database_name,
        "identity": "✅ Initialized" if provider.available else "❌ Not Initialized",
        "connection_status": "Not Connected",
        "collections": [],
    }
    if store.available:
        try:
            response["collections"] = store.collection_names()
            response["database"] = "✅ Connected & Working"
            response["connection_status"] = "Connected"
        except StoreError as e:
            response["database"] = f"⚠️ Connected but error: {e.message}"
    return response


@router.get("/static/js/firebase-config.js")
def firebase_config(request: Request, settings: Settings = Depends(get_settings)):
    return request.app.state.scripts.TemplateResponse(
        request,
        "firebase-config.js",
        {"config": settings.web_options()},
        media_type="application/javascript",
    )


# ----------------------
# Event log endpoints
# ----------------------

@router.post("/api/log/violation", response_model=MessageResponse)
def log_violation(body: ViolationRequest, store: DocumentStore = Depends(get_store)):
    if _missing(body.student_id, body.violation_type):
        raise ValidationError("Missing required fields")
    event = ViolationEvent(
        student_id=body.student_id,
        violation_type=body.violation_type,
        timestamp=utc_timestamp(body.timestamp),
        evidence_url=body.evidence_url or None,
    )
    try:
        store.append(ViolationEvent.COLLECTION, event.to_document())
    except StoreError as exc:
        raise HTTPException(status_code=500, detail="Internal Server Error") from exc
    LOGGER.warning("Violation Logged: %s for %s", event.violation_type, event.student_id)
    return MessageResponse(message="Violation logged successfully")


@router.get("/api/admin/reports")
def list_reports(
    limit: int = Query(50, ge=1, le=500),
    store: DocumentStore = Depends(get_store),
    _admin: Optional[SessionRecord] = Depends(admin_guard),
):
    try:
        return store.recent(ViolationEvent.COLLECTION, limit=limit)
    except StoreError as exc:
        raise HTTPException(status_code=500, detail="Failed to fetch reports") from exc


@router.get("/api/admin/feedbacks")
def list_feedbacks(
    response: Response,
    limit: Optional[int] = Query(None, ge=1, le=500),
    cursor: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
    _admin: Optional[SessionRecord] = Depends(admin_guard),
):
    # Without a page size every message is returned, newest first.
    before = decode_cursor(cursor) if cursor else None
    try:
        feedbacks = store.recent(ContactMessage.COLLECTION, limit=limit, before=before)
    except StoreError as exc:
        raise HTTPException(status_code=500, detail="Failed to fetch feedbacks") from exc
    if limit is not None and len(feedbacks) == limit:
        last = feedbacks[-1]
        response.headers["X-Next-Cursor"] = encode_cursor(last["timestamp"], last["id"])
    return feedbacks


@router.post("/api/contact", response_model=MessageResponse)
def submit_contact(body: ContactRequest, store: DocumentStore = Depends(get_store)):
    if _missing(body.name, body.email, body.message):
        raise ValidationError("Missing required fields")
    msg = ContactMessage(
        name=body.name,
        email=body.email,
        phone=body.phone or None,
        message=body.message,
        timestamp=utc_timestamp(),
    )
    try:
        store.append(ContactMessage.COLLECTION, msg.to_document())
    except StoreError as exc:
        raise HTTPException(status_code=500, detail="Failed to send message") from exc
    LOGGER.info("New Contact Message from %s", msg.email)
    return MessageResponse(message="Message sent successfully!")


# ----------------------
# Auth endpoints
# ----------------------

@router.post("/api/auth/register", response_model=RegisterResponse)
def register(
    body: RegisterRequest,
    caller: Identity = Depends(current_identity),
    store: DocumentStore = Depends(get_store),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    if _missing(body.username):
        raise ValidationError("Missing required fields")
    profile = new_profile(caller, body.username.strip(), body.role)
    store.create_profile(caller.uid, profile.to_document())

    # Force a fresh login so verification and approval are checked there.
    provider.sign_out(caller.uid)

    if profile.role == "teacher":
        message = "Registered! Verify email and await admin approval."
    else:
        message = "Registered! Verify your email to log in."
    return RegisterResponse(message=message, role=profile.role, approved=profile.approved)


@router.post("/api/auth/session", response_model=SessionResponse)
def create_session(
    caller: Identity = Depends(current_identity),
    store: DocumentStore = Depends(get_store),
    provider: IdentityProvider = Depends(get_identity_provider),
    gate: AuthorizationGate = Depends(get_gate),
    settings: Settings = Depends(get_settings),
):
    if not caller.email_verified:
        provider.sign_out(caller.uid)
        raise EmailNotVerifiedError()

    if caller.is_google and not gate.is_privileged(caller.email):
        if store.get_profile(caller.uid) is None:
            try:
                store.create_profile(caller.uid, google_profile(caller).to_document())
            except ProfileExistsError:
                # A concurrent session request created it first.
                pass
            else:
                LOGGER.info("Created student profile for Google user %s", caller.uid)

    try:
        decision = gate.resolve(caller)
    except (ProfileNotFoundError, PendingApprovalError) as exc:
        LOGGER.info("Access denied for %s: %s", caller.uid, exc.message)
        provider.sign_out(caller.uid)
        raise

    token = create_token(decision.session, settings.secret_key, settings.jwt_exp_min)
    return SessionResponse(
        destination=decision.destination,
        role=decision.session.role,
        session=decision.session,
        token=token,
    )


@router.get("/api/auth/me", response_model=SessionRecord)
def me(session: SessionRecord = Depends(current_session)):
    return session


# ----------------------
# Application factory
# ----------------------

def create_app(
    settings: Optional[Settings] = None,
    store: Optional[DocumentStore] = None,
    identity: Optional[IdentityProvider] = None,
) -> FastAPI:
    """Build the API with its store and identity handles created once, here."""
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Proctoring Portal API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = store if store is not None else DocumentStore.connect(
        settings.database_url, settings.database_name
    )
    app.state.identity = identity if identity is not None else IdentityProvider.from_service_account(
        settings.service_account
    )
    app.state.gate = AuthorizationGate(app.state.store, settings.admin_emails)
    app.state.scripts = Jinja2Templates(directory=str(settings.script_templates_dir))

    install_error_handlers(app, settings.templates_dir)
    app.include_router(router)
    if settings.templates_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(settings.templates_dir)), name="pages")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    LOGGER.info("Server running at http://localhost:%s", app.state.settings.port)
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
