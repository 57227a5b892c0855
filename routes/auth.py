import logging
from authlib.integrations.starlette_client import OAuth, OAuthError
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from psycopg_pool import AsyncConnectionPool

from config import Settings
from db import getDB
from errors import AuthenticationError, AuthorizationError
from projection import effective_role, public_user

logger = logging.getLogger(__name__)

router = APIRouter()

# --- Google OAuth client ---

def build_oauth(settings: Settings) -> OAuth:
    """One OAuth registry per app, built from that app's credentials."""
    oauth = OAuth()
    oauth.register(
        name="google",
        server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        client_kwargs={"scope": "openid email profile"},
    )
    return oauth


USER_COLUMNS = (
    "id, google_id, email, name, profile_picture, role, writer_status, "
    "rating, total_ratings, whatsapp_number, university_stream"
)


def is_valid_university_email(email: str | None, domain: str) -> bool:
    return bool(email) and email.lower().endswith(domain.lower())


async def find_or_create_oauth_user(conn, profile: dict) -> dict:
    """
    Look the Google account up by its subject id, creating the user on
    first login. `profile` is Google's OpenID userinfo (sub, email, name,
    picture).
    """
    async with conn.cursor() as cur:
        await cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE google_id = %s", (profile["sub"],))
        user = await cur.fetchone()
        if user:
            logger.info("Existing user %s logged in", user["id"])
            return user

        await cur.execute(
            f"""
            INSERT INTO users (google_id, email, name, profile_picture)
            VALUES (%s, %s, %s, %s)
            RETURNING {USER_COLUMNS}
            """,
            (profile["sub"], profile["email"], profile.get("name"), profile.get("picture")),
        )
        user = await cur.fetchone()
    logger.info("Created user %s for %s", user["id"], profile["email"])
    return user


# --- Identity dependencies ---

async def get_current_user(request: Request, conn: AsyncConnectionPool = Depends(getDB)):
    """
    Return the logged-in user as a dict, or None.

    The session cookie only carries user_id; the row is re-read on every
    request so role and writer_status changes show up immediately.
    """
    user_id = request.session.get("user_id")
    if not user_id:
        return None

    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        request.session.clear()
        return None

    async with conn.cursor() as cur:
        await cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = %s", (user_id,))
        user = await cur.fetchone()

    if not user:
        # Stale session for a row that no longer exists
        request.session.clear()
        return None
    return user


async def get_authenticated_user(user: dict | None = Depends(get_current_user)) -> dict:
    if user is None:
        raise AuthenticationError()
    return user


async def get_current_client_user(user: dict = Depends(get_authenticated_user)) -> dict:
    if effective_role(user["role"]) != "client":
        raise AuthorizationError("Only clients can post assignment requests")
    return user


async def get_current_writer_user(user: dict = Depends(get_authenticated_user)) -> dict:
    if user["role"] != "writer":
        raise AuthorizationError("Only writers can accept assignment requests")
    return user


# --- OAuth handoff ---

@router.get("/auth/google")
async def google_login(request: Request):
    google = request.app.state.oauth.google
    return await google.authorize_redirect(request, request.app.state.settings.google_callback_url)


@router.get("/auth/google/callback")
async def google_callback(request: Request, conn: AsyncConnectionPool = Depends(getDB)):
    app_settings = request.app.state.settings
    login_url = f"{app_settings.FRONTEND_URL}/login"

    try:
        token = await request.app.state.oauth.google.authorize_access_token(request)
    except OAuthError as e:
        logger.warning("OAuth callback failed: %s", e)
        return RedirectResponse(url=f"{login_url}?error=server")

    profile = token.get("userinfo") or {}
    email = profile.get("email")
    if not profile.get("sub") or not is_valid_university_email(email, app_settings.UNIVERSITY_EMAIL_DOMAIN):
        logger.info("Rejected login for %s", email)
        return RedirectResponse(url=f"{login_url}?error=unauthorized")

    user = await find_or_create_oauth_user(conn, profile)
    request.session["user_id"] = user["id"]
    return RedirectResponse(url=f"{app_settings.FRONTEND_URL}/dashboard")


@router.get("/auth/logout")
async def logout(request: Request):
    # An empty session makes SessionMiddleware expire the cookie
    request.session.clear()
    return RedirectResponse(url=f"{request.app.state.settings.FRONTEND_URL}/login")


@router.get("/api/auth/status")
async def auth_status(user: dict | None = Depends(get_current_user)):
    return {"isAuthenticated": user is not None, "user": public_user(user)}
