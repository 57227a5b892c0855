# lifecycle.py
"""
Assignment request lifecycle: open -> assigned -> completed.

"expired" is never stored. An open request whose expiration_deadline has
passed is just filtered out of the listing.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import psycopg

from errors import AuthorizationError, ConflictError, NotFoundError, ServerError, ValidationError

logger = logging.getLogger(__name__)

REQUEST_LIFETIME = timedelta(days=7)
COST_STEP = 50

# Column ceilings from the assignment_requests table
MAX_LENGTHS = {
    "course_name": (255, "Course name must be less than 255 characters"),
    "course_code": (50, "Course code must be less than 50 characters"),
    "assignment_type": (100, "Assignment type must be less than 100 characters"),
}
REQUIRED_FIELDS = ("course_name", "course_code", "assignment_type", "num_pages", "deadline", "estimated_cost")


@dataclass
class RequestDraft:
    course_name: str
    course_code: str
    assignment_type: str
    num_pages: int
    deadline: datetime
    estimated_cost: int


def round_cost(value) -> int:
    """Nearest multiple of 50, halves rounded up (25 -> 50, 482 -> 500)."""
    return int(math.floor(float(value) / COST_STEP + 0.5)) * COST_STEP


def compute_expiration(created_at: datetime) -> datetime:
    return created_at + REQUEST_LIFETIME


def _parse_int(value) -> int:
    if isinstance(value, bool):
        raise ValueError(value)
    if isinstance(value, (int, float)):
        return int(value)
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        return int(float(text))


def _parse_deadline(value) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_request_payload(payload: dict) -> RequestDraft:
    missing = [f for f in REQUIRED_FIELDS if payload.get(f) in (None, "")]
    if missing:
        raise ValidationError("All fields are required", f"Missing: {', '.join(missing)}")

    try:
        num_pages = _parse_int(payload["num_pages"])
        cost = float(payload["estimated_cost"])
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("Number of pages and estimated cost must be numbers")
    if not math.isfinite(cost):
        raise ValidationError("Number of pages and estimated cost must be numbers")
    if num_pages < 1:
        raise ValidationError("Number of pages must be at least 1")

    text_fields = {}
    for field, (limit, message) in MAX_LENGTHS.items():
        value = str(payload[field]).strip()
        if len(value) > limit:
            raise ValidationError(message)
        text_fields[field] = value

    try:
        deadline = _parse_deadline(payload["deadline"])
    except (TypeError, ValueError):
        raise ValidationError("Deadline must be a valid date")

    return RequestDraft(
        num_pages=num_pages,
        deadline=deadline,
        estimated_cost=round_cost(cost),
        **text_fields,
    )


async def create_request(conn, client_id: int, payload: dict, now: datetime | None = None) -> dict:
    draft = validate_request_payload(payload)
    created_at = now or datetime.now(timezone.utc)
    expiration = compute_expiration(created_at)

    logger.info("Creating assignment request for client %s (cost %s)", client_id, draft.estimated_cost)
    try:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO assignment_requests
                (client_id, course_name, course_code, assignment_type, num_pages,
                 deadline, estimated_cost, status, created_at, expiration_deadline)
                VALUES (%s, %s, %s, %s, %s, %s, %s, 'open', %s, %s)
                RETURNING *
                """,
                (
                    client_id, draft.course_name, draft.course_code, draft.assignment_type,
                    draft.num_pages, draft.deadline, draft.estimated_cost, created_at, expiration,
                ),
            )
            return await cur.fetchone()
    except psycopg.Error as e:
        logger.exception("Error creating assignment request")
        raise ServerError(message=str(e)) from e


async def list_open_requests(conn) -> list[dict]:
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT
                ar.id, ar.course_name, ar.course_code, ar.assignment_type,
                ar.num_pages, ar.deadline, ar.estimated_cost, ar.status,
                ar.created_at, ar.expiration_deadline,
                u.id AS client_id,
                u.name AS client_name,
                u.rating AS client_rating,
                u.total_ratings AS client_total_ratings,
                u.profile_picture AS client_profile_picture
            FROM assignment_requests ar
            JOIN users u ON u.id = ar.client_id
            WHERE ar.status = 'open'
              AND (ar.expiration_deadline IS NULL OR ar.expiration_deadline > NOW())
            ORDER BY ar.created_at DESC
            """
        )
        rows = await cur.fetchall()
    logger.info("Found %d open assignment requests", len(rows))
    return rows


async def accept_request(conn, request_id: int, writer_id: int) -> dict:
    """
    Hand an open request to a writer.

    The `status = 'open'` guard makes concurrent accepts safe: only one
    UPDATE can match, the loser sees zero rows and gets ConflictError.
    Everything up to the writer status flip commits or rolls back together.
    """
    try:
        async with conn.transaction():
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    UPDATE assignment_requests
                    SET status = 'assigned'
                    WHERE id = %s AND status = 'open'
                    RETURNING *
                    """,
                    (request_id,),
                )
                request = await cur.fetchone()
                if not request:
                    raise ConflictError()

                await cur.execute(
                    """
                    INSERT INTO assignments (request_id, writer_id, client_id, status)
                    VALUES (%s, %s, %s, 'in_progress')
                    RETURNING id
                    """,
                    (request_id, writer_id, request["client_id"]),
                )
                assignment = await cur.fetchone()

                await cur.execute(
                    "UPDATE users SET writer_status = 'busy' WHERE id = %s RETURNING id",
                    (writer_id,),
                )
    except psycopg.Error as e:
        logger.exception("Error accepting assignment request %s", request_id)
        raise ServerError(message=str(e)) from e

    logger.info("Writer %s accepted request %s (assignment %s)", writer_id, request_id, assignment["id"])

    async with conn.cursor() as cur:
        await cur.execute("SELECT whatsapp_number FROM users WHERE id = %s", (request["client_id"],))
        client = await cur.fetchone()

    return {**request, "client_whatsapp": client["whatsapp_number"] if client else None}


async def complete_assignment(conn, assignment_id: int, writer_id: int) -> dict:
    async with conn.cursor() as cur:
        await cur.execute(
            "SELECT id FROM assignments WHERE id = %s AND writer_id = %s",
            (assignment_id, writer_id),
        )
        if not await cur.fetchone():
            raise AuthorizationError("You are not authorized to complete this assignment")

        await cur.execute(
            """
            UPDATE assignments
            SET status = 'completed', completed_at = NOW()
            WHERE id = %s
            RETURNING *
            """,
            (assignment_id,),
        )
        assignment = await cur.fetchone()

    if not assignment:
        raise NotFoundError("Assignment not found")
    logger.info("Assignment %s marked completed by writer %s", assignment_id, writer_id)
    return assignment
