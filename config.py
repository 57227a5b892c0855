# config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """
    All deploy-specific values live here. The local and production
    deployments differ only in these values, so they are injected
    into create_app() instead of forking the server.
    """
    DATABASE_URL: str = "dbname=writify user=postgres host=localhost port=5432"
    DB_POOL_MIN_SIZE: int = 1
    DB_POOL_MAX_SIZE: int = 10

    SESSION_SECRET: str = "your-secret-key"
    SESSION_MAX_AGE: int = 24 * 60 * 60  # 24 hours
    COOKIE_SECURE: bool = False

    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""

    FRONTEND_URL: str = "http://localhost:3000"
    BACKEND_URL: str = "http://localhost:5000"

    UNIVERSITY_EMAIL_DOMAIN: str = "@student.iul.ac.in"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",  # .env also carries script-only keys like NEON_DATABASE_URL
    )

    @property
    def google_callback_url(self) -> str:
        return f"{self.BACKEND_URL.rstrip('/')}/auth/google/callback"


settings = Settings()
