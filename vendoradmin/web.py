"""Browser interface for the vendor management console."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
from fastapi import FastAPI, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from .auth import AuthClient, AuthenticationFailed
from .client import VendorClient
from .config import ConsoleSettings, load_settings
from .console import ActionOutcome, Confirmer, NoticeBuffer, VendorConsole
from .security import StaticTokenProvider
from .sessions import ConsoleSession, ConsoleSessionManager

logger = logging.getLogger("vendoradmin.web")

SESSION_KEY = "console_session"
BASE_DIR = Path(__file__).resolve().parent
STATIC_DIR = BASE_DIR / "static"
TEMPLATE_DIR = BASE_DIR / "templates"


class FormConfirmation(Confirmer):
    """Answers the delete prompt with the choice submitted on the confirmation page."""

    def __init__(self, answer: str) -> None:
        self._answer = (answer or "").strip().lower()

    def confirm(self, message: str) -> bool:
        return self._answer == "yes"


def _format_date(value: Optional[datetime]) -> str:
    if value is None:
        return "unknown date"
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%d %b %Y")


def _template_environment() -> Jinja2Templates:
    templates = Jinja2Templates(directory=str(TEMPLATE_DIR))
    templates.env.filters["format_date"] = _format_date
    return templates


templates = _template_environment()


def _session_context(session: ConsoleSession, **extra: Any) -> Dict[str, Any]:
    context: Dict[str, Any] = {"session": session, "user_name": session.user_name}
    context.update(extra)
    return context


def create_app(
    settings: Optional[ConsoleSettings] = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    auth_client: Optional[AuthClient] = None,
    session_manager: Optional[ConsoleSessionManager] = None,
) -> FastAPI:
    """Create the vendor console web application."""

    if settings is None:
        settings = load_settings()
    if not settings.session_secret:
        raise RuntimeError("VENDORADMIN_SESSION_SECRET must be configured to use the web console")

    if auth_client is None:
        auth_client = AuthClient(
            settings.api_base_url,
            timeout=settings.request_timeout,
            verify=settings.verify,
            transport=transport,
        )
    sessions = session_manager or ConsoleSessionManager(ttl=settings.session_ttl)

    app = FastAPI(title="Vendor Console", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.settings = settings
    app.state.sessions = sessions
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie="vendorconsole_session",
        https_only=settings.secure_cookies,
        same_site="lax",
        max_age=int(settings.session_ttl.total_seconds()),
    )
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    def _current(request: Request) -> Optional[ConsoleSession]:
        session_id = request.session.get(SESSION_KEY)
        if not session_id:
            return None
        session = sessions.resolve(session_id)
        if session is None:
            request.session.pop(SESSION_KEY, None)
        return session

    def _redirect(request: Request, name: str) -> RedirectResponse:
        return RedirectResponse(request.url_for(name), status_code=status.HTTP_303_SEE_OTHER)

    def _build_console(token: str, notices: NoticeBuffer) -> VendorConsole:
        client = VendorClient(
            settings.api_base_url,
            StaticTokenProvider(token),
            timeout=settings.request_timeout,
            verify=settings.verify,
            transport=transport,
        )
        return VendorConsole(client, notifier=notices)

    @app.get("/", name="root")
    async def root(request: Request):
        if _current(request) is None:
            return _redirect(request, "show_login")
        return _redirect(request, "vendors")

    @app.get("/login", response_class=HTMLResponse, name="show_login")
    async def login_form(request: Request):
        if _current(request) is not None:
            return _redirect(request, "vendors")
        error = request.session.pop("login_error", None)
        email = request.session.pop("login_email", "")
        return templates.TemplateResponse(request, "login.html", {"email": email, "error": error})

    @app.post("/login", name="process_login")
    async def process_login(request: Request, email: str = Form(""), password: str = Form("")):
        try:
            result = await auth_client.login(email, password)
        except AuthenticationFailed as exc:
            request.session["login_error"] = str(exc)
            request.session["login_email"] = email
            return _redirect(request, "show_login")

        previous = request.session.get(SESSION_KEY)
        if previous:
            sessions.destroy(previous)

        notices = NoticeBuffer()
        session_id = sessions.create(
            _build_console(result.token, notices),
            notices,
            user_name=result.user_name,
            user_role=result.user_role,
        )
        request.session.clear()
        request.session[SESSION_KEY] = session_id
        logger.info("%s signed in to the vendor console", email.strip())
        return _redirect(request, "vendors")

    @app.get("/logout", name="logout")
    async def logout(request: Request):
        session_id = request.session.get(SESSION_KEY)
        if session_id:
            sessions.destroy(session_id)
        request.session.clear()
        return _redirect(request, "show_login")

    @app.get("/vendors", response_class=HTMLResponse, name="vendors")
    async def vendors(request: Request):
        session = _current(request)
        if session is None:
            return _redirect(request, "show_login")

        console = session.console
        if not console.loaded and not console.loading:
            await console.load()

        requested = request.query_params.get("page")
        if requested is not None:
            try:
                page = int(requested)
            except ValueError:
                page = 0
            await console.go_to_page(page)

        notices = session.notices.drain()
        context = _session_context(session, console=console, stats=console.stats, notices=notices)
        return templates.TemplateResponse(request, "vendors.html", context)

    @app.post("/vendors/refresh", name="refresh_vendors")
    async def refresh_vendors(request: Request):
        session = _current(request)
        if session is None:
            return _redirect(request, "show_login")
        await session.console.refresh()
        return _redirect(request, "vendors")

    @app.post("/vendors/{record_id}/freeze", name="toggle_freeze")
    async def toggle_freeze(request: Request, record_id: str):
        session = _current(request)
        if session is None:
            return _redirect(request, "show_login")
        outcome = await session.console.toggle_freeze(record_id)
        if outcome is ActionOutcome.BUSY:
            session.notices.error("Another action is still running for this vendor.")
        return _redirect(request, "vendors")

    @app.post("/vendors/{record_id}/role", name="toggle_role")
    async def toggle_role(request: Request, record_id: str):
        session = _current(request)
        if session is None:
            return _redirect(request, "show_login")
        outcome = await session.console.toggle_role(record_id)
        if outcome is ActionOutcome.MISSING:
            session.notices.error("Vendor not found on this page.")
        elif outcome is ActionOutcome.BUSY:
            session.notices.error("Another action is still running for this vendor.")
        return _redirect(request, "vendors")

    @app.get("/vendors/{record_id}/delete", response_class=HTMLResponse, name="confirm_delete")
    async def confirm_delete(request: Request, record_id: str):
        session = _current(request)
        if session is None:
            return _redirect(request, "show_login")
        record = session.console.working_set.get(record_id)
        if record is None:
            session.notices.error("Vendor not found on this page.")
            return _redirect(request, "vendors")
        return templates.TemplateResponse(request, "delete.html", _session_context(session, record=record))

    @app.post("/vendors/{record_id}/delete", name="delete_vendor")
    async def delete_vendor(request: Request, record_id: str, confirm: str = Form("")):
        session = _current(request)
        if session is None:
            return _redirect(request, "show_login")
        outcome = await session.console.delete(record_id, confirmer=FormConfirmation(confirm))
        if outcome is ActionOutcome.BUSY:
            session.notices.error("Another action is still running for this vendor.")
        return _redirect(request, "vendors")

    return app


__all__ = ["FormConfirmation", "create_app", "templates"]
