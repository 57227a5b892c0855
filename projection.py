# projection.py
"""
Pure reshaping of flat SQL rows into the nested JSON the frontend expects.

Nothing here touches the database, so every endpoint's response shape can
be tested with plain dicts.
"""

USER_BLOCK_FIELDS = ("name", "email", "profile_picture", "rating", "total_ratings", "whatsapp_number")
REQUEST_FIELDS = ("course_name", "course_code", "assignment_type", "num_pages", "deadline", "estimated_cost")
PUBLIC_USER_FIELDS = (
    "id", "email", "name", "profile_picture", "role", "writer_status",
    "rating", "total_ratings", "whatsapp_number", "university_stream", "created_at",
)


def effective_role(role: str | None) -> str | None:
    # Students post requests, so they see the client view
    return "client" if role == "student" else role


def user_block(row: dict, prefix: str, fields=USER_BLOCK_FIELDS) -> dict | None:
    """
    Collect `<prefix>_id`, `<prefix>_name`, ... into one nested dict.
    Returns None when the joined user is missing (e.g. no writer yet).
    """
    user_id = row.get(f"{prefix}_id")
    if user_id is None:
        return None

    block = {"id": user_id}
    for field in fields:
        block[field] = row.get(f"{prefix}_{field}")
    if "rating" in block:
        block["rating"] = block["rating"] or 0
    if "total_ratings" in block:
        block["total_ratings"] = block["total_ratings"] or 0
    return block


def public_user(user: dict | None) -> dict | None:
    """The subset of a session user that /api/auth/status reveals."""
    if not user:
        return None
    return {key: user.get(key) for key in ("id", "name", "email", "role", "profile_picture")}


def shape_open_request(row: dict) -> dict:
    shaped = {
        "id": row["id"],
        "client": user_block(row, "client", ("name", "rating", "total_ratings", "profile_picture")),
    }
    for field in REQUEST_FIELDS:
        shaped[field] = row.get(field)
    shaped["expiration_deadline"] = row.get("expiration_deadline")
    shaped["status"] = row.get("status")
    shaped["created_at"] = row.get("created_at")
    return shaped


def rated_requests(rating_rows: list[dict]) -> dict:
    """Map assignment_request_id -> rated_id for ratings the caller gave."""
    return {r["assignment_request_id"]: r["rated_id"] for r in rating_rows}


def shape_my_assignment(row: dict, role: str, rated: dict) -> dict:
    """
    One entry of /api/my-assignments.

    Only the caller's own direction is checked: a client can have rated the
    writer, a writer can have rated the client. The other flag is always
    False because nobody rates themselves.
    """
    writer = user_block(row, "writer")
    client = user_block(row, "client")
    request_id = row["request_id"]

    has_rated_writer = False
    has_rated_client = False
    if role == "client":
        has_rated_writer = writer is not None and rated.get(request_id) == writer["id"]
    elif role == "writer":
        has_rated_client = client is not None and rated.get(request_id) == client["id"]

    shaped = {
        "id": request_id,
        "request_id": request_id,
        "writer": writer,
        "client": client,
        "status": row.get("status"),
        "created_at": row.get("created_at"),
        "completed_at": row.get("completed_at"),
    }
    for field in REQUEST_FIELDS:
        shaped[field] = row.get(field)
    shaped["has_rated_writer"] = has_rated_writer
    shaped["has_rated_client"] = has_rated_client
    return shaped


def shape_profile(row: dict) -> dict:
    profile = {key: row.get(key) for key in PUBLIC_USER_FIELDS}
    description = row.get("portfolio_description")
    image = row.get("sample_work_image")
    profile["portfolio"] = (
        {"description": description, "sample_work_image": image}
        if description or image else None
    )
    return profile


def shape_writer(row: dict) -> dict:
    writer = {key: row.get(key) for key in PUBLIC_USER_FIELDS}
    writer["sample_work_image"] = row.get("sample_work_image")
    return writer
