from typing import List

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application Information
    app_name: str = Field(default="Quiz Platform")
    app_description: str = Field(default="Quiz sessions, scoring and completion API")
    app_version: str = Field(default="1.0.0")
    app_url: str = Field(default="http://localhost:8000")
    debug: bool = Field(default=True)
    production: bool = Field(default=False)
    timezone: str = Field(default="UTC")

    # Database Configuration
    database_url: str = Field(default="")
    db_host: str = Field(default="127.0.0.1")
    db_port: int = Field(default=5432)
    db_database: str = Field(default="quizzes")
    db_username: str = Field(default="home")
    db_password: str = Field(default="123")

    # Security Settings
    cors_allowed_origins: List[str] = Field(default=["http://localhost:3000"])

    # JWT Configuration
    jwt_secret: str = Field(default="your-secret-key-change-in-production")
    jwt_algorithm: str = Field(default="HS256")
    jwt_user_expiration: int = Field(default=7)
    jwt_issuer: str = Field(default="Quiz Platform")

    # Logging
    log_level: str = Field(default="info")
    log_file: str = Field(default="logs/app.log")

    # Redis
    redis_url: str = Field(default="redis://localhost:6379")
    quiz_state_ttl: int = Field(default=60 * 60 * 24)

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_storage_uri: str = Field(default="memory://")
    rate_limit_default: str = Field(default="100/minute")
    quiz_submit_rate_limit: str = Field(default="20/minute")

    # Quiz client
    api_base_url: str = Field(default="http://localhost:8000")
    api_timeout: float = Field(default=10.0)

    @staticmethod
    def _parse_csv(value, default):
        if isinstance(value, str):
            items = [x.strip() for x in value.split(",") if x.strip()]
            return items if items else default
        if isinstance(value, list):
            return value
        return default

    @field_validator("cors_allowed_origins", mode="before")
    def validate_cors(cls, v):
        return cls._parse_csv(v, ["http://localhost:3000"])

    @property
    def sqlalchemy_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return "postgresql+psycopg2://{user}:{password}@{host}:{port}/{database}".format(
            user=self.db_username,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_database,
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


def load_settings():
    try:
        settings = Settings()
        print("✅ Settings loaded successfully!")
        return settings
    except ValidationError as e:
        print("❌ Validation Error:", e)
        raise


settings = load_settings()
