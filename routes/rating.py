# routes/rating.py
from fastapi import APIRouter, Body, Depends, status
from psycopg_pool import AsyncConnectionPool

import reputation
from db import getDB
from routes.auth import get_authenticated_user

router = APIRouter(tags=["rating"])


@router.post("/api/ratings", status_code=status.HTTP_201_CREATED)
async def create_rating(
    payload: dict = Body(...),
    user: dict = Depends(get_authenticated_user),
    conn: AsyncConnectionPool = Depends(getDB),
):
    outcome = await reputation.submit_rating(conn, user["id"], payload)

    if outcome.assignment_completed:
        message = "Rating submitted successfully and assignment marked as completed"
    else:
        message = "Rating submitted successfully"
    return {
        "message": message,
        "rating_id": outcome.rating_id,
        "updated": outcome.updated,
        "assignment_completed": outcome.assignment_completed,
        "rated_user": {"rating": outcome.average, "total_ratings": outcome.total},
    }


@router.get("/api/my-ratings")
async def my_ratings(
    user: dict = Depends(get_authenticated_user),
    conn: AsyncConnectionPool = Depends(getDB),
):
    return await reputation.rating_summary(conn, user["id"])
