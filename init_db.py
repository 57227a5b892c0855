# init_db.py
import logging
import psycopg

from config import settings

logger = logging.getLogger(__name__)

# IF NOT EXISTS everywhere so this can run on every startup
INIT_SQL = """
-- 1. Enum types for roles and statuses
DO $$ BEGIN
    IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'user_role') THEN
        CREATE TYPE user_role AS ENUM ('client', 'writer', 'student');
    END IF;
    IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'writer_status') THEN
        CREATE TYPE writer_status AS ENUM ('active', 'busy', 'inactive');
    END IF;
    IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'request_status') THEN
        CREATE TYPE request_status AS ENUM ('open', 'assigned', 'expired');
    END IF;
    IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'assignment_status') THEN
        CREATE TYPE assignment_status AS ENUM ('in_progress', 'completed');
    END IF;
END $$;

-- 2. users (created on first Google login)
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    google_id VARCHAR(255) NOT NULL UNIQUE,
    email VARCHAR(255) NOT NULL UNIQUE,
    name VARCHAR(255),
    profile_picture TEXT,
    role user_role NOT NULL DEFAULT 'student',
    writer_status writer_status,
    rating NUMERIC(3, 2) NOT NULL DEFAULT 0,
    total_ratings INT NOT NULL DEFAULT 0,
    whatsapp_number VARCHAR(20),
    university_stream VARCHAR(100),
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- 3. assignment_requests (posted by clients)
CREATE TABLE IF NOT EXISTS assignment_requests (
    id SERIAL PRIMARY KEY,
    client_id INT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    course_name VARCHAR(255) NOT NULL,
    course_code VARCHAR(50) NOT NULL,
    assignment_type VARCHAR(100) NOT NULL,
    num_pages INT NOT NULL CHECK (num_pages > 0),
    deadline TIMESTAMPTZ NOT NULL,
    estimated_cost INT NOT NULL CHECK (estimated_cost % 50 = 0),
    status request_status NOT NULL DEFAULT 'open',
    created_at TIMESTAMPTZ DEFAULT NOW(),
    expiration_deadline TIMESTAMPTZ
);

-- 4. assignments (one per accepted request)
CREATE TABLE IF NOT EXISTS assignments (
    id SERIAL PRIMARY KEY,
    request_id INT NOT NULL UNIQUE REFERENCES assignment_requests(id) ON DELETE CASCADE,
    writer_id INT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    client_id INT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    status assignment_status NOT NULL DEFAULT 'in_progress',
    created_at TIMESTAMPTZ DEFAULT NOW(),
    completed_at TIMESTAMPTZ
);

-- 5. ratings (one per rater per request)
CREATE TABLE IF NOT EXISTS ratings (
    id SERIAL PRIMARY KEY,
    rater_id INT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    rated_id INT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    rating INT NOT NULL CHECK (rating BETWEEN 1 AND 5),
    comment TEXT,
    assignment_request_id INT NOT NULL REFERENCES assignment_requests(id) ON DELETE CASCADE,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    UNIQUE (rater_id, assignment_request_id)
);

-- 6. writer_portfolios (one per writer, upserted)
CREATE TABLE IF NOT EXISTS writer_portfolios (
    id SERIAL PRIMARY KEY,
    writer_id INT NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
    sample_work_image TEXT,
    description TEXT
);

CREATE INDEX IF NOT EXISTS idx_requests_open ON assignment_requests(status, expiration_deadline);
CREATE INDEX IF NOT EXISTS idx_ratings_rated ON ratings(rated_id);
"""

# Columns added after the first deploy: (table, column, DDL)
COLUMN_MIGRATIONS = [
    ("users", "whatsapp_number", "ALTER TABLE users ADD COLUMN whatsapp_number VARCHAR(20)"),
    ("users", "university_stream", "ALTER TABLE users ADD COLUMN university_stream VARCHAR(100)"),
    ("assignment_requests", "expiration_deadline",
     "ALTER TABLE assignment_requests ADD COLUMN expiration_deadline TIMESTAMPTZ"),
    ("assignments", "completed_at", "ALTER TABLE assignments ADD COLUMN completed_at TIMESTAMPTZ"),
]


def init_database(database_url: str | None = None) -> bool:
    """
    Create the tables and add any columns older databases are missing.

    Uses a plain synchronous connection because it runs once at startup,
    before the async pool exists. Returns False instead of raising so a
    database outage does not stop the server from booting.
    """
    try:
        logger.info("Checking database schema")
        with psycopg.connect(database_url or settings.DATABASE_URL) as conn:
            with conn.cursor() as cur:
                cur.execute(INIT_SQL)

                for table, column, ddl in COLUMN_MIGRATIONS:
                    cur.execute(
                        "SELECT column_name FROM information_schema.columns "
                        "WHERE table_name = %s AND column_name = %s",
                        (table, column),
                    )
                    if not cur.fetchone():
                        logger.info("Adding missing column %s.%s", table, column)
                        cur.execute(ddl)

            conn.commit()
            logger.info("Database schema is up to date")
            return True
    except psycopg.Error:
        logger.exception("Database initialization failed")
        return False


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_database()
