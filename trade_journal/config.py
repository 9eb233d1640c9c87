from typing import List, Union
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
import json


class Settings(BaseSettings):
    app_name: str = Field(default="Trade Journal API")

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./journal.db")
    database_echo: bool = Field(default=False)

    # Security
    jwt_secret: str = Field(default="")  # empty -> random per-process secret
    jwt_algorithm: str = Field(default="HS256")
    jwt_expiration: int = Field(default=86400)  # 24 hours

    # HTTP
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    api_prefix: str = Field(default="/api")

    # Attachments
    upload_dir: str = Field(default="uploads")
    uploads_url_prefix: str = Field(default="/uploads")
    max_upload_bytes: int = Field(default=5 * 1024 * 1024)
    allowed_image_extensions: Union[str, List[str]] = Field(
        default=[".png", ".jpg", ".jpeg", ".gif", ".webp"]
    )

    # CORS - accepts both string and list
    cors_origins: Union[str, List[str]] = Field(default=["*"])

    # Logging
    log_dir: str = Field(default="logs")
    log_level: str = Field(default="INFO")

    @field_validator('cors_origins', 'allowed_image_extensions', mode='before')
    @classmethod
    def parse_list(cls, v):
        """Parse list settings from a JSON array or a comma separated string"""
        if isinstance(v, str):
            # Try to parse as JSON array first
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass

            # If not JSON, split by comma
            return [item.strip() for item in v.split(',') if item.strip()]

        return v

    @field_validator('allowed_image_extensions')
    @classmethod
    def normalize_extensions(cls, v):
        return [ext.lower() if ext.startswith('.') else f".{ext.lower()}" for ext in v]

    @field_validator('api_prefix', 'uploads_url_prefix')
    @classmethod
    def normalize_prefix(cls, v):
        v = v.strip().rstrip('/')
        if v and not v.startswith('/'):
            v = f"/{v}"
        return v

    class Config:
        env_file = ".env"
        extra = "allow"

    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite."""
        return self.database_url.startswith("sqlite")

    def token_lifetime_hours(self) -> float:
        """Get the bearer token lifetime in hours, for logging."""
        return self.jwt_expiration / 3600


settings = Settings()
