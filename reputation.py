# reputation.py
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

import psycopg

from errors import AuthorizationError, NotFoundError, ServerError, ValidationError

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


@dataclass
class RatingOutcome:
    rating_id: int
    updated: bool
    average: Decimal
    total: int
    assignment_id: int | None

    @property
    def assignment_completed(self) -> bool:
        return self.assignment_id is not None


def average_rating(scores) -> Decimal:
    """Mean of the scores rounded half-up to 2 places, 0.00 when empty."""
    scores = list(scores)
    if not scores:
        return Decimal("0.00")
    total = sum(Decimal(s) for s in scores)
    return (total / len(scores)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def validate_rating_payload(payload: dict) -> dict:
    if any(payload.get(f) in (None, "") for f in ("rated_id", "rating", "assignment_request_id")):
        raise ValidationError("Missing required fields")

    try:
        rated_id = int(payload["rated_id"])
        request_id = int(payload["assignment_request_id"])
    except (TypeError, ValueError):
        raise ValidationError("rated_id and assignment_request_id must be integers")

    score = payload["rating"]
    if isinstance(score, str) and score.strip().isdigit():
        score = int(score)
    if isinstance(score, bool) or not isinstance(score, int) or not 1 <= score <= 5:
        raise ValidationError("Rating must be an integer between 1 and 5")

    comment = payload.get("comment")
    return {
        "rated_id": rated_id,
        "rating": score,
        "comment": comment.strip() if isinstance(comment, str) else None,
        "assignment_request_id": request_id,
    }


def check_rating_parties(parties: dict, rater_id: int, rated_id: int) -> None:
    """
    The client rates the writer and the writer rates the client. Nobody
    else may rate on this request.
    """
    if rater_id == parties["client_id"]:
        counterpart = parties["writer_id"]
    elif rater_id == parties["writer_id"]:
        counterpart = parties["client_id"]
    else:
        raise AuthorizationError("You are not part of this assignment")

    if counterpart is None or rated_id != counterpart:
        raise AuthorizationError("You can only rate the other party of this assignment")


async def refresh_aggregate(cur, user_id: int) -> tuple[Decimal, int]:
    """Rewrite users.rating / total_ratings from every rating the user holds."""
    await cur.execute("SELECT rating FROM ratings WHERE rated_id = %s", (user_id,))
    scores = [r["rating"] for r in await cur.fetchall()]
    average = average_rating(scores)
    await cur.execute(
        "UPDATE users SET rating = %s, total_ratings = %s WHERE id = %s RETURNING id",
        (average, len(scores), user_id),
    )
    return average, len(scores)


async def submit_rating(conn, rater_id: int, payload: dict) -> RatingOutcome:
    """
    Record a rating, refresh the rated user's aggregate and complete the
    assignment, all in one transaction.

    Only the two parties of the assignment can rate, and only each other.
    A second submission for the same (rater, request) overwrites the first.
    """
    data = validate_rating_payload(payload)
    request_id = data["assignment_request_id"]
    rated_id = data["rated_id"]
    if rated_id == rater_id:
        raise ValidationError("You cannot rate yourself")

    try:
        async with conn.transaction():
            async with conn.cursor() as cur:
                # 0. Who is on each side of this request
                await cur.execute(
                    """
                    SELECT ar.client_id, a.writer_id
                    FROM assignment_requests ar
                    LEFT JOIN assignments a ON a.request_id = ar.id
                    WHERE ar.id = %s
                    """,
                    (request_id,),
                )
                parties = await cur.fetchone()
                if not parties:
                    raise NotFoundError("Assignment request not found")
                check_rating_parties(parties, rater_id, rated_id)

                # 1. Upsert keyed on (rater_id, assignment_request_id)
                await cur.execute(
                    "SELECT id, rated_id FROM ratings WHERE rater_id = %s AND assignment_request_id = %s",
                    (rater_id, request_id),
                )
                existing = await cur.fetchone()

                if existing:
                    await cur.execute(
                        """
                        UPDATE ratings
                        SET rated_id = %s, rating = %s, comment = %s, created_at = CURRENT_TIMESTAMP
                        WHERE rater_id = %s AND assignment_request_id = %s
                        RETURNING id, rated_id
                        """,
                        (rated_id, data["rating"], data["comment"], rater_id, request_id),
                    )
                else:
                    await cur.execute(
                        """
                        INSERT INTO ratings (rater_id, rated_id, rating, comment, assignment_request_id)
                        VALUES (%s, %s, %s, %s, %s)
                        RETURNING id, rated_id
                        """,
                        (rater_id, rated_id, data["rating"], data["comment"], request_id),
                    )
                rating_row = await cur.fetchone()

                # 2. Recompute every aggregate the upsert touched
                if existing and existing["rated_id"] != rating_row["rated_id"]:
                    await refresh_aggregate(cur, existing["rated_id"])
                average, total = await refresh_aggregate(cur, rating_row["rated_id"])

                # 3. Rating a request closes its assignment
                await cur.execute(
                    """
                    UPDATE assignments
                    SET status = 'completed', completed_at = CURRENT_TIMESTAMP
                    WHERE request_id = %s
                    RETURNING id
                    """,
                    (request_id,),
                )
                assignment = await cur.fetchone()
    except psycopg.Error as e:
        logger.exception("Error submitting rating for request %s", request_id)
        raise ServerError(message=str(e)) from e

    if assignment:
        logger.info("Assignment %s marked completed by rating", assignment["id"])
    else:
        logger.info("No assignment found for request %s, rating stored anyway", request_id)

    return RatingOutcome(
        rating_id=rating_row["id"],
        updated=existing is not None,
        average=average,
        total=total,
        assignment_id=assignment["id"] if assignment else None,
    )


async def rating_summary(conn, user_id: int) -> dict:
    async with conn.cursor() as cur:
        await cur.execute("SELECT rating, total_ratings FROM users WHERE id = %s", (user_id,))
        user = await cur.fetchone()

        await cur.execute(
            """
            SELECT r.id, r.rating, r.comment, r.created_at, r.assignment_request_id,
                   u.id AS rater_id, u.name AS rater_name, u.profile_picture AS rater_profile_picture,
                   ar.course_name
            FROM ratings r
            JOIN users u ON r.rater_id = u.id
            LEFT JOIN assignment_requests ar ON r.assignment_request_id = ar.id
            WHERE r.rated_id = %s
            ORDER BY r.created_at DESC
            """,
            (user_id,),
        )
        ratings = await cur.fetchall()

    return {
        "ratings": ratings,
        "averageRating": float(user["rating"] or 0) if user else 0.0,
        "totalRatings": int(user["total_ratings"] or 0) if user else 0,
    }
