"""
Application settings

Read once from the environment at startup and handed to the app factory.
Nothing else in the service looks at os.environ.
"""
import os
from dataclasses import dataclass, field
from typing import List


def _split(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str = "mongodb://127.0.0.1:27017"
    database_name: str = "hypermart"
    jwt_secret: str = "change-me"
    token_ttl_hours: int = 24
    bcrypt_rounds: int = 10
    upload_dir: str = "uploads"
    max_image_bytes: int = 2 * 1024 * 1024
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    invoice_max_attempts: int = 20
    port: int = 8000
    log_level: str = "INFO"
    api_prefix: str = ""

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_name=os.getenv("DATABASE_NAME", cls.database_name),
            jwt_secret=os.getenv("JWT_SECRET", cls.jwt_secret),
            token_ttl_hours=int(os.getenv("TOKEN_TTL_HOURS", cls.token_ttl_hours)),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", cls.bcrypt_rounds)),
            upload_dir=os.getenv("UPLOAD_DIR", cls.upload_dir),
            max_image_bytes=int(os.getenv("MAX_IMAGE_BYTES", cls.max_image_bytes)),
            cors_origins=_split(os.getenv("CORS_ORIGINS", "*")),
            invoice_max_attempts=int(os.getenv("INVOICE_MAX_ATTEMPTS", cls.invoice_max_attempts)),
            port=int(os.getenv("PORT", cls.port)),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            api_prefix=os.getenv("API_PREFIX", cls.api_prefix).rstrip("/"),
        )
