# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from healthapp.auth.passwords import PasswordHasher
from healthapp.auth.session import SessionManager
from healthapp.auth.users import CredentialStore
from healthapp.config import Settings
from healthapp.errors import (
    DuplicateUser,
    HashingError,
    HealthAppError,
    InvalidCredentials,
    NotFoundOrForbidden,
    StoreError,
)
from healthapp.infra.document_store import DocumentCollection
from healthapp.permissions import AuthorizationGuard, CurrentUser, current_user_optional, require_user, safe_next
from healthapp.services.achievement_service import AchievementService
from healthapp.services.goal_service import GoalService

logger = logging.getLogger("healthapp.api")

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

router = APIRouter()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def _render(request: Request, template_name: str, ctx: Optional[dict] = None, status_code: int = 200):
    """TemplateResponse wrapper injecting the navigation state."""
    user = getattr(request.state, "user", None)
    base_ctx = {
        "logged_in": user is not None,
        "current_user": user,
    }
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)


def _server_error(message: str) -> PlainTextResponse:
    """Log the active exception and answer with a detail-free 500."""
    logger.exception(message)
    return PlainTextResponse(message, status_code=500)


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def _credentials(request: Request) -> CredentialStore:
    return request.app.state.credentials


def _sessions(request: Request) -> SessionManager:
    return request.app.state.sessions


def _goals(request: Request) -> GoalService:
    return request.app.state.goals


def _achievements(request: Request) -> AchievementService:
    return request.app.state.achievements


# ----------------------------------------------------------------------
# Public pages
# ----------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def home(request: Request):
    return _render(request, "home.html")


@router.get("/about", response_class=HTMLResponse)
def about(request: Request):
    return _render(request, "about.html")


# ----------------------------------------------------------------------
# Registration, login, logout
# ----------------------------------------------------------------------


@router.get("/register", response_class=HTMLResponse)
def register_get(request: Request):
    return _render(request, "register.html", {"error": "", "username": ""})


@router.post("/register")
async def register_post(request: Request, username: str = Form(""), password: str = Form("")):
    logger.info("Attempting to register user: %s", username.strip())
    try:
        await _credentials(request).register(username, password)
    except DuplicateUser:
        return _render(
            request, "register.html", {"error": "User already exists", "username": username}, status_code=409
        )
    except ValueError:
        return _render(
            request,
            "register.html",
            {"error": "Username and password are required", "username": username},
            status_code=400,
        )
    except (StoreError, HashingError):
        return _server_error("Error registering user")
    return _redirect("/login")


@router.get("/login", response_class=HTMLResponse)
def login_get(request: Request, next: str = "/dashboard"):
    if getattr(request.state, "user", None):
        return _redirect(safe_next(next))
    return _render(request, "login.html", {"next": next, "error": "", "username": ""})


@router.post("/login")
async def login_post(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    next: str = Form("/dashboard"),
):
    logger.info("Attempting to log in user: %s", username.strip())
    try:
        user_id = await _credentials(request).authenticate(username, password)
    except InvalidCredentials:
        return _render(
            request,
            "login.html",
            {"next": next, "error": "Invalid username or password", "username": username},
            status_code=401,
        )
    except (StoreError, HashingError):
        return _server_error("Error during login")

    settings: Settings = request.app.state.settings
    handle = _sessions(request).create(user_id)
    resp = _redirect(safe_next(next))
    resp.set_cookie(
        settings.cookie_name,
        handle,
        max_age=settings.session_max_age,
        **settings.cookie_settings(),
    )
    return resp


@router.api_route("/logout", methods=["GET", "POST"])
def logout(request: Request):
    settings: Settings = request.app.state.settings
    handle = request.cookies.get(settings.cookie_name, "")
    if handle and not _sessions(request).destroy(handle):
        logger.debug("Logout with no live session")
    user = getattr(request.state, "user", None)
    if user is not None:
        logger.info("User logged out: %s", user.username)
    resp = _redirect("/")
    resp.delete_cookie(settings.cookie_name)
    return resp


# ----------------------------------------------------------------------
# Dashboard
# ----------------------------------------------------------------------


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(request: Request, user: CurrentUser = Depends(require_user)):
    goals = await _goals(request).list(user.id)
    achievement_count = await _achievements(request).count(user.id)
    return _render(
        request,
        "dashboard.html",
        {"goals": goals, "goal_count": len(goals), "achievement_count": achievement_count},
    )


# ----------------------------------------------------------------------
# Goals
# ----------------------------------------------------------------------


@router.get("/goals", response_class=HTMLResponse)
async def goals_list(request: Request, user: CurrentUser = Depends(require_user)):
    try:
        goals = await _goals(request).list(user.id)
    except StoreError:
        return _server_error("Error retrieving goals")
    return _render(request, "goals.html", {"goals": goals})


@router.post("/goals")
async def goals_create(
    request: Request,
    category: str = Form(...),
    description: str = Form(...),
    due_date: str = Form(..., alias="dueDate"),
    user: CurrentUser = Depends(require_user),
):
    try:
        await _goals(request).create(user.id, category, description, due_date)
    except StoreError:
        return _server_error("Error adding goal")
    return _redirect("/dashboard")


@router.get("/goals/{goal_id}/edit", response_class=HTMLResponse)
async def goal_edit_form(request: Request, goal_id: str, user: CurrentUser = Depends(require_user)):
    try:
        goal = await _goals(request).get(goal_id, user.id)
    except NotFoundOrForbidden:
        return PlainTextResponse("Goal not found", status_code=404)
    except StoreError:
        return _server_error("Error retrieving goal")
    return _render(request, "goal_edit.html", {"goal": goal})


async def _update_goal(request: Request, goal_id: str, user: CurrentUser, fields: dict):
    try:
        await _goals(request).update(goal_id, user.id, fields)
    except NotFoundOrForbidden:
        logger.warning("Goal %s not updated for user %s: no matching goal", goal_id, user.id)
        return PlainTextResponse("Error updating goal", status_code=500)
    except StoreError:
        return _server_error("Error updating goal")
    return _redirect("/dashboard")


async def _delete_goal(request: Request, goal_id: str, user: CurrentUser):
    try:
        await _goals(request).delete(goal_id, user.id)
    except NotFoundOrForbidden:
        logger.warning("Goal %s not deleted for user %s: no matching goal", goal_id, user.id)
        return PlainTextResponse("Error deleting goal", status_code=500)
    except StoreError:
        return _server_error("Error deleting goal")
    return _redirect("/dashboard")


@router.put("/goals/{goal_id}")
async def goal_update(
    request: Request,
    goal_id: str,
    category: str = Form(...),
    description: str = Form(...),
    due_date: str = Form(..., alias="dueDate"),
    user: CurrentUser = Depends(require_user),
):
    fields = {"category": category, "description": description, "due_date": due_date}
    return await _update_goal(request, goal_id, user, fields)


@router.post("/goals/{goal_id}/edit")
async def goal_update_form(
    request: Request,
    goal_id: str,
    category: str = Form(...),
    description: str = Form(...),
    due_date: str = Form(..., alias="dueDate"),
    user: CurrentUser = Depends(require_user),
):
    """HTML forms cannot send PUT; same behaviour as ``PUT /goals/{goal_id}``."""
    fields = {"category": category, "description": description, "due_date": due_date}
    return await _update_goal(request, goal_id, user, fields)


@router.delete("/goals/{goal_id}")
async def goal_delete(request: Request, goal_id: str, user: CurrentUser = Depends(require_user)):
    return await _delete_goal(request, goal_id, user)


@router.post("/goals/{goal_id}/delete")
async def goal_delete_form(request: Request, goal_id: str, user: CurrentUser = Depends(require_user)):
    return await _delete_goal(request, goal_id, user)


# ----------------------------------------------------------------------
# Achievements
# ----------------------------------------------------------------------


@router.post("/achievements")
async def achievements_create(
    request: Request,
    goal_id: str = Form("", alias="goalId"),
    timestamp: str = Form(""),
    details: str = Form(...),
    user: CurrentUser = Depends(require_user),
):
    try:
        await _achievements(request).create(user.id, goal_id, timestamp, details)
    except StoreError:
        return _server_error("Error recording achievement")
    return _redirect("/dashboard")


@router.get("/achievements", response_class=HTMLResponse)
async def achievements_list(request: Request, user: CurrentUser = Depends(require_user)):
    try:
        achievements = await _achievements(request).list(user.id)
    except StoreError:
        return _server_error("Error retrieving achievements")
    return _render(request, "achievements.html", {"achievements": achievements})


# ----------------------------------------------------------------------
# App factory
# ----------------------------------------------------------------------


def create_app(settings: Optional[Settings] = None, *, hasher: Optional[PasswordHasher] = None) -> FastAPI:
    """Build the app with its own collections, credential store and sessions."""
    settings = settings or Settings.from_env()
    settings.data_dir.mkdir(parents=True, exist_ok=True)

    hasher = hasher or PasswordHasher(time_cost=settings.hash_time_cost)
    sessions = SessionManager(settings.secret_key, salt=settings.session_salt, max_age=settings.session_max_age)

    app = FastAPI(title="healthapp")
    app.state.settings = settings
    app.state.sessions = sessions
    app.state.guard = AuthorizationGuard(sessions)
    app.state.credentials = CredentialStore(DocumentCollection(settings.collection_path("users")), hasher)
    app.state.goals = GoalService(DocumentCollection(settings.collection_path("goals")))
    app.state.achievements = AchievementService(DocumentCollection(settings.collection_path("achievements")))

    @app.middleware("http")
    async def _auth_middleware(request: Request, call_next):
        request.state.user = await current_user_optional(request)
        return await call_next(request)

    @app.exception_handler(HealthAppError)
    async def _healthapp_error_handler(request: Request, exc: HealthAppError):
        logger.error("Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path, exc_info=exc)
        return PlainTextResponse("Internal Server Error", status_code=500)

    app.include_router(router)
    logger.info("healthapp ready (data dir: %s)", settings.data_dir)
    return app
