import logging
from fastapi import APIRouter, Body, Depends
from psycopg_pool import AsyncConnectionPool

from db import getDB
from errors import NotFoundError, ValidationError
from projection import PUBLIC_USER_FIELDS, shape_profile, shape_writer
from routes.auth import get_authenticated_user

logger = logging.getLogger(__name__)

router = APIRouter()

WRITER_STATUSES = ("active", "busy", "inactive")
ROLES = ("client", "writer", "student")
RETURNING_USER = "RETURNING " + ", ".join(PUBLIC_USER_FIELDS)


# =========================================================
# 1. Writers directory
# =========================================================
@router.get("/api/writers")
async def list_writers(
    user: dict = Depends(get_authenticated_user),
    conn: AsyncConnectionPool = Depends(getDB),
):
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT u.*, wp.sample_work_image
            FROM users u
            LEFT JOIN writer_portfolios wp ON wp.writer_id = u.id
            WHERE u.writer_status IS NOT NULL
            ORDER BY u.rating DESC
            """
        )
        rows = await cur.fetchall()
    return [shape_writer(r) for r in rows]


@router.get("/api/writers/{writer_id}")
async def get_writer(
    writer_id: int,
    user: dict = Depends(get_authenticated_user),
    conn: AsyncConnectionPool = Depends(getDB),
):
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT u.*, wp.sample_work_image
            FROM users u
            LEFT JOIN writer_portfolios wp ON wp.writer_id = u.id
            WHERE u.id = %s
            """,
            (writer_id,),
        )
        row = await cur.fetchone()

    if not row:
        raise NotFoundError("Writer not found")
    return shape_writer(row)


# =========================================================
# 2. Own profile
# =========================================================
@router.get("/api/profile")
async def get_profile(
    user: dict = Depends(get_authenticated_user),
    conn: AsyncConnectionPool = Depends(getDB),
):
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT u.*, wp.sample_work_image, wp.description AS portfolio_description
            FROM users u
            LEFT JOIN writer_portfolios wp ON wp.writer_id = u.id
            WHERE u.id = %s
            """,
            (user["id"],),
        )
        row = await cur.fetchone()

    if not row:
        raise NotFoundError("User not found")
    return shape_profile(row)


@router.put("/api/profile")
async def update_profile(
    payload: dict = Body(...),
    user: dict = Depends(get_authenticated_user),
    conn: AsyncConnectionPool = Depends(getDB),
):
    """
    Partial update: fields left out of the body keep their current value.
    Switching to the writer role also gives the user a writer_status, so
    they show up in the writers directory.
    """
    role = payload.get("role")
    if role is not None and role not in ROLES:
        raise ValidationError("Invalid role")

    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            UPDATE users
            SET name = COALESCE(%s, name),
                whatsapp_number = COALESCE(%s, whatsapp_number),
                university_stream = COALESCE(%s, university_stream),
                role = COALESCE(%s, role),
                writer_status = CASE WHEN %s THEN COALESCE(writer_status, 'active') ELSE writer_status END
            WHERE id = %s
            {RETURNING_USER}
            """,
            (payload.get("name"), payload.get("whatsapp_number"),
             payload.get("university_stream"), role, role == "writer", user["id"]),
        )
        row = await cur.fetchone()

    if not row:
        raise NotFoundError("User not found")
    return row


@router.put("/api/profile/writer")
async def update_writer_profile(
    payload: dict = Body(...),
    user: dict = Depends(get_authenticated_user),
    conn: AsyncConnectionPool = Depends(getDB),
):
    """
    Saving the writer profile is what turns a user into a writer.
    """
    writer_status = payload.get("writer_status") or "active"
    if writer_status not in WRITER_STATUSES:
        raise ValidationError("Invalid writer status")

    logger.info("Updating writer profile for user %s (status %s)", user["id"], writer_status)
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            UPDATE users
            SET university_stream = %s,
                whatsapp_number = %s,
                writer_status = %s,
                role = 'writer'
            WHERE id = %s
            {RETURNING_USER}
            """,
            (payload.get("university_stream"), payload.get("whatsapp_number"), writer_status, user["id"]),
        )
        row = await cur.fetchone()

    if not row:
        raise NotFoundError("User not found")
    return row


@router.post("/api/profile/portfolio")
async def upsert_portfolio(
    payload: dict = Body(...),
    user: dict = Depends(get_authenticated_user),
    conn: AsyncConnectionPool = Depends(getDB),
):
    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO writer_portfolios (writer_id, sample_work_image, description)
            VALUES (%s, %s, %s)
            ON CONFLICT (writer_id)
            DO UPDATE SET
                sample_work_image = EXCLUDED.sample_work_image,
                description = EXCLUDED.description
            RETURNING *
            """,
            (user["id"], payload.get("sample_work_image"), payload.get("description")),
        )
        return await cur.fetchone()


@router.post("/api/update-whatsapp")
async def update_whatsapp(
    payload: dict = Body(...),
    user: dict = Depends(get_authenticated_user),
    conn: AsyncConnectionPool = Depends(getDB),
):
    whatsapp_number = payload.get("whatsapp_number")
    if not whatsapp_number:
        raise ValidationError("WhatsApp number is required")

    async with conn.cursor() as cur:
        await cur.execute(
            "UPDATE users SET whatsapp_number = %s WHERE id = %s RETURNING id",
            (whatsapp_number, user["id"]),
        )
    logger.info("Updated WhatsApp number for user %s", user["id"])
    return {"message": "WhatsApp number updated successfully"}
