from projection import (
    effective_role, public_user, rated_requests, shape_my_assignment,
    shape_open_request, shape_profile, shape_writer, user_block,
)


def assignment_row(**overrides):
    row = {
        "request_id": 11,
        "course_name": "Operating Systems",
        "course_code": "CS301",
        "assignment_type": "Lab report",
        "num_pages": 5,
        "deadline": "2026-11-01T18:00:00+00:00",
        "estimated_cost": 500,
        "created_at": None,
        "status": "in_progress",
        "completed_at": None,
        "writer_id": 7,
        "writer_name": "Ravi",
        "writer_email": "ravi@student.iul.ac.in",
        "writer_profile_picture": None,
        "writer_rating": 4.5,
        "writer_total_ratings": 2,
        "writer_whatsapp_number": "8880002222",
        "client_id": 3,
        "client_name": "Asha",
        "client_email": "asha@student.iul.ac.in",
        "client_profile_picture": None,
        "client_rating": None,
        "client_total_ratings": None,
        "client_whatsapp_number": "9990001111",
    }
    row.update(overrides)
    return row


def test_student_is_treated_as_client():
    assert effective_role("student") == "client"
    assert effective_role("client") == "client"
    assert effective_role("writer") == "writer"


def test_user_block_defaults_ratings_to_zero():
    block = user_block(assignment_row(), "client")
    assert block["id"] == 3
    assert block["rating"] == 0
    assert block["total_ratings"] == 0


def test_missing_writer_is_null():
    row = assignment_row(writer_id=None, status="pending")
    shaped = shape_my_assignment(row, "client", {})
    assert shaped["writer"] is None
    assert shaped["has_rated_writer"] is False


def test_client_sees_only_writer_flag():
    rated = rated_requests([{"assignment_request_id": 11, "rated_id": 7}])
    shaped = shape_my_assignment(assignment_row(), "client", rated)
    assert shaped["has_rated_writer"] is True
    assert shaped["has_rated_client"] is False


def test_client_flag_ignores_rating_of_someone_else():
    rated = rated_requests([{"assignment_request_id": 11, "rated_id": 99}])
    shaped = shape_my_assignment(assignment_row(), "client", rated)
    assert shaped["has_rated_writer"] is False


def test_writer_sees_only_client_flag():
    rated = rated_requests([{"assignment_request_id": 11, "rated_id": 3}])
    shaped = shape_my_assignment(assignment_row(), "writer", rated)
    assert shaped["has_rated_client"] is True
    assert shaped["has_rated_writer"] is False


def test_writer_has_not_rated_client_for_other_request():
    rated = rated_requests([{"assignment_request_id": 12, "rated_id": 3}])
    shaped = shape_my_assignment(assignment_row(), "writer", rated)
    assert shaped["has_rated_client"] is False


def test_my_assignment_shape():
    shaped = shape_my_assignment(assignment_row(), "writer", {})
    assert shaped["id"] == shaped["request_id"] == 11
    assert shaped["writer"]["whatsapp_number"] == "8880002222"
    assert shaped["client"]["name"] == "Asha"
    assert shaped["estimated_cost"] == 500


def test_open_request_shape():
    row = {
        "id": 11, "course_name": "OS", "course_code": "CS301", "assignment_type": "Essay",
        "num_pages": 3, "deadline": None, "estimated_cost": 300, "status": "open",
        "created_at": None, "expiration_deadline": None,
        "client_id": 3, "client_name": "Asha", "client_rating": None,
        "client_total_ratings": 0, "client_profile_picture": "pic.png",
    }
    shaped = shape_open_request(row)
    assert shaped["client"] == {
        "id": 3, "name": "Asha", "rating": 0, "total_ratings": 0, "profile_picture": "pic.png",
    }
    assert "client_name" not in shaped
    assert shaped["status"] == "open"


def test_profile_portfolio_present_or_null():
    with_portfolio = shape_profile({"id": 1, "google_id": "g", "portfolio_description": "Essays"})
    assert with_portfolio["portfolio"] == {"description": "Essays", "sample_work_image": None}
    assert "google_id" not in with_portfolio

    assert shape_profile({"id": 1})["portfolio"] is None


def test_writer_shape_hides_google_id():
    writer = shape_writer({"id": 7, "google_id": "g-7", "sample_work_image": "img.png"})
    assert writer["sample_work_image"] == "img.png"
    assert "google_id" not in writer


def test_public_user():
    assert public_user(None) is None
    user = public_user({"id": 1, "name": "Asha", "email": "a@x", "role": "client",
                        "profile_picture": None, "google_id": "g", "whatsapp_number": "1"})
    assert set(user) == {"id", "name", "email", "role", "profile_picture"}
