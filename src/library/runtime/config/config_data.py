"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, computed_field


class CORSConfig(BaseModel):
    """CORS configuration for the application."""

    origins: list[str] = Field(default=["http://localhost:3000"])
    allow_credentials: bool = True
    allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    )
    allow_headers: list[str] = Field(default=["*"])


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="json", description="Log format")
    file: str | None = Field(default="logs/app.log", description="Log file path")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    url: str = Field(
        default="sqlite:///./library.db",
        description="Database connection URL",
    )
    pool_size: int = Field(default=20, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")
    echo: bool = Field(default=False, description="Echo SQL statements")

    @computed_field
    @property
    def is_sqlite(self) -> bool:
        """Whether the configured URL targets SQLite."""
        return self.url.startswith("sqlite")


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="localhost", description="Application host")
    port: int = Field(default=5000, description="Application port")
    session_signing_secret: str | None = Field(
        default=None, description="Secret for signing session JWTs"
    )
    cors: CORSConfig = Field(
        default_factory=CORSConfig, description="CORS configuration"
    )

    @property
    def base_url(self) -> str:
        """Construct the base URL from host and port."""
        scheme = "https" if self.environment == "production" else "http"
        return f"{scheme}://{self.host}:{self.port}"


class SecurityConfig(BaseModel):
    """Security configuration for authentication and sessions."""

    cookie_name: str = Field(default="token", description="Session cookie name")
    cookie_samesite: Literal["lax", "strict", "none"] = Field(
        default="strict", description="SameSite cookie attribute"
    )
    secure_cookies: bool = Field(
        default=True, description="Force secure cookies in production"
    )
    token_ttl_seconds: int = Field(
        default=24 * 60 * 60, description="Lifetime of issued session tokens"
    )
    jwt_algorithm: str = Field(default="HS256", description="Token signing algorithm")
    allow_admin_registration: bool = Field(
        default=False,
        description="Allow self-registration with the admin role",
    )


class LendingConfig(BaseModel):
    """Loan policy configuration."""

    default_loan_days: int = Field(
        default=14, ge=1, description="Loan length when the borrower gives none"
    )


class CatalogConfig(BaseModel):
    """Catalog listing configuration."""

    default_page_size: int = Field(
        default=10, ge=1, description="Page size when the caller gives none"
    )


class UploadsConfig(BaseModel):
    """Cover image upload configuration."""

    directory: str = Field(
        default="uploads/images", description="Directory holding cover images"
    )
    url_prefix: str = Field(
        default="/uploads", description="Path the cover directory is served under"
    )
    allowed_extensions: list[str] = Field(
        default_factory=lambda: [".png", ".jpg", ".jpeg", ".gif", ".webp"],
        description="Accepted cover image extensions",
    )
    max_bytes: int = Field(
        default=5 * 1024 * 1024, description="Maximum cover image size in bytes"
    )


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
    security: SecurityConfig = Field(
        default_factory=SecurityConfig, description="Security configuration"
    )
    lending: LendingConfig = Field(
        default_factory=LendingConfig, description="Loan policy configuration"
    )
    catalog: CatalogConfig = Field(
        default_factory=CatalogConfig, description="Catalog listing configuration"
    )
    uploads: UploadsConfig = Field(
        default_factory=UploadsConfig, description="Cover upload configuration"
    )
