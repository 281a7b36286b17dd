from __future__ import annotations
from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    database_url: str = Field(..., alias="DATABASE_URL")

    auth_jwks_url: str = Field("http://localhost:8001/auth/jwks", alias="AUTH_JWKS_URL")
    token_issuer: str | None = Field(default=None, alias="TOKEN_ISSUER")

    # QR payloads printed on bins
    qr_secret: str | None = Field(default=None, alias="QR_SECRET")
    qr_require_signature: bool = Field(default=False, alias="QR_REQUIRE_SIGNATURE")
    qr_box_size: int = Field(default=6, alias="QR_BOX_SIZE")
    qr_border: int = Field(default=2, alias="QR_BORDER")

    # Uploaded bin pictures
    image_max_width: int = Field(default=800, alias="IMAGE_MAX_WIDTH")

    reports_page_size: int = Field(default=8, alias="REPORTS_PAGE_SIZE")

    # Redis
    redis_url: str = Field("redis://127.0.0.1:6379/0", alias="REDIS_URL")
    rl_enabled: bool = Field(default=True, alias="RL_ENABLED")
    rl_window_seconds: int = Field(default=60, alias="RL_WINDOW_SECONDS")
    rl_max_reqs: int = Field(default=30, alias="RL_MAX_REQS")

    # NATS
    enable_nats: bool = Field(default=True, alias="ENABLE_NATS")
    nats_urls: str = Field("nats://127.0.0.1:4222", alias="NATS_URLS")
    nats_subject_occupancy: str = Field("bins.occupancy", alias="NATS_SUBJECT_OCCUPANCY")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_origins: str = Field(
        "http://localhost:3000,http://127.0.0.1:3000",
        alias="CORS_ORIGINS",
    )

    class Config:
        env_file = ".env"
        env_prefix = ""
        case_sensitive = False

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def qr_signing_enabled(self) -> bool:
        return bool(self.qr_secret)

_settings: Settings | None = None
def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
