import logging
from fastapi import APIRouter, Body, Depends, status
from psycopg_pool import AsyncConnectionPool

import lifecycle
from db import getDB
from errors import AuthorizationError
from projection import effective_role, rated_requests, shape_my_assignment, shape_open_request
from routes.auth import get_authenticated_user, get_current_client_user, get_current_writer_user

logger = logging.getLogger(__name__)

router = APIRouter()

# Shared columns for both "my assignments" views
ASSIGNMENT_VIEW_COLUMNS = """
    ar.id AS request_id,
    ar.course_name, ar.course_code, ar.assignment_type,
    ar.num_pages, ar.deadline, ar.estimated_cost,
    a.created_at,
    {status} AS status,
    a.completed_at,
    writer.id AS writer_id,
    writer.name AS writer_name,
    writer.email AS writer_email,
    writer.profile_picture AS writer_profile_picture,
    COALESCE(writer.rating, 0.0) AS writer_rating,
    COALESCE(writer.total_ratings, 0) AS writer_total_ratings,
    writer.whatsapp_number AS writer_whatsapp_number,
    client.id AS client_id,
    client.name AS client_name,
    client.email AS client_email,
    client.profile_picture AS client_profile_picture,
    COALESCE(client.rating, 0.0) AS client_rating,
    COALESCE(client.total_ratings, 0) AS client_total_ratings,
    client.whatsapp_number AS client_whatsapp_number
"""

# A client sees every request they posted, assigned or not
CLIENT_ASSIGNMENTS_SQL = f"""
    SELECT {ASSIGNMENT_VIEW_COLUMNS.format(status="COALESCE(a.status::text, 'pending')")}
    FROM assignment_requests ar
    LEFT JOIN assignments a ON ar.id = a.request_id
    LEFT JOIN users writer ON a.writer_id = writer.id
    JOIN users client ON ar.client_id = client.id
    WHERE ar.client_id = %s
    ORDER BY ar.created_at DESC
"""

# A writer only sees what they accepted
WRITER_ASSIGNMENTS_SQL = f"""
    SELECT {ASSIGNMENT_VIEW_COLUMNS.format(status="a.status::text")}
    FROM assignments a
    JOIN assignment_requests ar ON a.request_id = ar.id
    JOIN users writer ON a.writer_id = writer.id
    JOIN users client ON ar.client_id = client.id
    WHERE a.writer_id = %s
    ORDER BY a.created_at DESC
"""


@router.post("/api/assignment-requests", status_code=status.HTTP_201_CREATED)
async def create_assignment_request(
    payload: dict = Body(...),
    user: dict = Depends(get_current_client_user),
    conn: AsyncConnectionPool = Depends(getDB),
):
    return await lifecycle.create_request(conn, user["id"], payload)


@router.get("/api/assignment-requests")
async def list_assignment_requests(
    user: dict = Depends(get_authenticated_user),
    conn: AsyncConnectionPool = Depends(getDB),
):
    rows = await lifecycle.list_open_requests(conn)
    return [shape_open_request(r) for r in rows]


@router.post("/api/assignment-requests/{request_id}/accept")
async def accept_assignment_request(
    request_id: int,
    user: dict = Depends(get_current_writer_user),
    conn: AsyncConnectionPool = Depends(getDB),
):
    return await lifecycle.accept_request(conn, request_id, user["id"])


@router.put("/api/assignments/{assignment_id}/complete")
async def complete_assignment(
    assignment_id: int,
    user: dict = Depends(get_authenticated_user),
    conn: AsyncConnectionPool = Depends(getDB),
):
    return await lifecycle.complete_assignment(conn, assignment_id, user["id"])


@router.get("/api/my-assignments")
async def my_assignments(
    user: dict = Depends(get_authenticated_user),
    conn: AsyncConnectionPool = Depends(getDB),
):
    role = effective_role(user["role"])
    if role == "client":
        sql = CLIENT_ASSIGNMENTS_SQL
    elif role == "writer":
        sql = WRITER_ASSIGNMENTS_SQL
    else:
        raise AuthorizationError("Invalid user role")

    logger.info("Fetching assignments for user %s as %s", user["id"], role)
    async with conn.cursor() as cur:
        await cur.execute(sql, (user["id"],))
        rows = await cur.fetchall()

        await cur.execute(
            "SELECT assignment_request_id, rated_id FROM ratings WHERE rater_id = %s",
            (user["id"],),
        )
        rated = rated_requests(await cur.fetchall())

    return {
        "role": role,
        "assignments": [shape_my_assignment(r, role, rated) for r in rows],
    }
