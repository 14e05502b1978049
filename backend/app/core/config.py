"""
Centralized configuration management using Pydantic Settings.

Settings are loaded from environment variables and an optional .env file.
Validation happens at import time so a misconfigured deployment fails fast.
"""

from typing import List, Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Secrets (SECRET_KEY, HimKosh key file) must never be committed.
    """

    # API Configuration
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version 1 prefix for all endpoints"
    )
    project_name: str = Field(
        default="HP Homestay Registration",
        description="Project name displayed in API docs"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/homestay.db",
        description="Database connection URL (SQLite or PostgreSQL)"
    )

    # Security Configuration
    secret_key: str = Field(
        ...,
        description="Secret key for JWT token signing (generate with: openssl rand -hex 32)"
    )
    access_token_expire_minutes: int = Field(
        default=60,
        description="JWT access token expiration time in minutes"
    )

    # CORS Configuration
    cors_origins: List[str] = Field(
        default=["http://localhost:5173"],
        description="Allowed CORS origins (frontend URLs)"
    )
    cors_allow_credentials: bool = Field(
        default=True,
        description="Allow cookies/credentials in CORS requests"
    )

    # Workflow Configuration
    correction_resubmit_target: Literal["da", "dtdo"] = Field(
        default="da",
        description="Where corrected applications return: DA scrutiny or DTDO review"
    )
    inspection_early_override_days: int = Field(
        default=7,
        ge=0,
        description="How many days before the scheduled date an inspection may be reported"
    )
    inspection_override_min_reason: int = Field(
        default=15,
        ge=1,
        description="Minimum length of the early inspection justification"
    )
    certificate_validity_years: int = Field(
        default=1,
        ge=1,
        description="Validity of an issued registration certificate in years"
    )
    otp_ttl_minutes: int = Field(
        default=10,
        ge=1,
        description="Lifetime of a DTDO send-back OTP"
    )
    otp_max_attempts: int = Field(
        default=5,
        ge=1,
        description="Wrong send-back OTP entries allowed before the code is withdrawn"
    )

    # HimKosh Payment Gateway
    himkosh_payment_url: str = Field(
        default="https://himkosh.hp.nic.in/echallan/WebPages/wrfApplicationRequest.aspx",
        description="HimKosh challan request endpoint"
    )
    himkosh_verify_url: str = Field(
        default="https://himkosh.hp.nic.in/eChallan/webpages/AppVerification.aspx",
        description="HimKosh double-verification endpoint"
    )
    himkosh_merchant_code: str = Field(default="", description="HimKosh merchant code")
    himkosh_dept_id: str = Field(default="", description="Department ID issued by treasury")
    himkosh_service_code: str = Field(default="", description="Service code for homestay fees")
    himkosh_ddo: str = Field(default="", description="Drawing and disbursing officer code")
    himkosh_head1: str = Field(default="", description="Primary budget head")
    himkosh_head2: Optional[str] = Field(default=None, description="Optional secondary budget head")
    himkosh_head2_amount: Optional[float] = Field(
        default=None,
        description="Fixed amount booked against the secondary head"
    )
    himkosh_return_url: str = Field(
        default="http://localhost:8000/api/v1/payments/himkosh/callback",
        description="Callback URL HimKosh posts the encrypted response to"
    )
    himkosh_key_file: str = Field(
        default="./data/echallan.key",
        description="Path to the AES key file shared by the treasury"
    )

    # Notifications
    notification_webhook_url: Optional[str] = Field(
        default=None,
        description="Optional SMS/email relay endpoint; in-app only when unset"
    )
    notification_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="HTTP timeout for the notification relay"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=True, description="Emit JSON log lines (plain text when false)")

    # Rate limiting (requests per minute per client IP)
    rate_limit_strict_per_minute: int = Field(
        default=10,
        ge=1,
        description="Limit for login, payment initiation and DA send-back"
    )
    rate_limit_default_per_minute: int = Field(
        default=120,
        ge=1,
        description="Limit for every other endpoint"
    )
    disable_rate_limit: bool = Field(
        default=False,
        description="Turn rate limiting off (tests, load testing)"
    )
    rate_limit_trust_forwarded_for: bool = Field(
        default=True,
        description="Key clients by X-Forwarded-For; turn off when not behind a reverse proxy"
    )

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | List[str]) -> List[str]:
        """
        Parse cors_origins from JSON string or list.

        Supports comma-separated origins for easier .env configuration.
        """
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """
        Validate that secret_key is properly configured.

        Raises ValueError if still using placeholder value or too short.
        """
        if not v or v.strip() == "":
            raise ValueError(
                "SECRET_KEY is required and cannot be empty. "
                "Generate one with: openssl rand -hex 32"
            )
        if v in ["generate-with-openssl-rand-hex-32", "CHANGE_ME_32_CHARS_MIN", "your-secret-key-here"]:
            raise ValueError(
                "SECRET_KEY must be set to a secure random value (not placeholder). "
                "Generate one with: openssl rand -hex 32"
            )
        if len(v) < 32:
            raise ValueError(
                f"SECRET_KEY must be at least 32 characters long for security. "
                f"Current length: {len(v)}. Generate with: openssl rand -hex 32"
            )
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Only SQLite and PostgreSQL URLs are supported."""
        if not v or v.strip() == "":
            raise ValueError("DATABASE_URL is required and cannot be empty")

        valid_schemes = ["sqlite", "sqlite+aiosqlite", "postgresql", "postgresql+asyncpg"]
        if not any(v.startswith(scheme + "://") or v.startswith(scheme + ":///") for scheme in valid_schemes):
            raise ValueError(
                f"DATABASE_URL must start with one of: {', '.join(valid_schemes)}. "
                f"Got: {v[:20]}..."
            )
        return v

    @field_validator("himkosh_head2", mode="before")
    @classmethod
    def blank_head2_is_none(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v


# Global settings instance
settings = Settings()
