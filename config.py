from decimal import Decimal

from pydantic import PrivateAttr
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Investor Onboarding API"
    environment: str = "development"
    debug: bool = False
    log_level: str = "info"
    host: str = "0.0.0.0"
    port: int = 3005
    # Comma-separated proxies whose X-Forwarded-For uvicorn trusts
    forwarded_allow_ips: str = "127.0.0.1"

    database_url: str = "sqlite+aiosqlite:///./investor_onboarding.db"

    # ─── Gates ────────────────────────────────────
    allowed_origins: str = "http://localhost:5173,http://127.0.0.1:5173"
    enforce_origin: bool = True
    secret_token: str = ""
    rate_limit_max_requests: int = 10
    rate_limit_window_seconds: int = 3600
    rate_limit_backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    lock_timeout_seconds: float = 10.0
    stage_timeout_seconds: float = 30.0

    # ─── Storage ──────────────────────────────────
    storage_root: str = "./storage"
    root_folder_name: str = "Investor Documents"
    public_base_url: str = "http://localhost:3005"
    sheet_name: str = "Investors"
    audit_enabled: bool = True
    audit_sheet_name: str = "Logs"

    # ─── Submission limits ────────────────────────
    min_investment_amount: Decimal = Decimal("1000")
    min_image_bytes: int = 100
    max_image_bytes: int = 20 * 1024 * 1024

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "frozen": True,
    }

    _is_sqlite: bool = PrivateAttr(default=False)
    _origins: tuple[str, ...] = PrivateAttr(default=())

    def model_post_init(self, __context: object) -> None:
        _scheme = self.database_url.split(":")[0].lower()
        object.__setattr__(self, "_is_sqlite", "sqlite" in _scheme)
        origins = tuple(o.strip() for o in self.allowed_origins.split(",") if o.strip())
        object.__setattr__(self, "_origins", origins)

    @property
    def is_sqlite(self) -> bool:
        return self._is_sqlite

    @property
    def origin_list(self) -> tuple[str, ...]:
        return self._origins

    @property
    def origin_enforced(self) -> bool:
        """Production always enforces the allow-list regardless of ``enforce_origin``."""
        return self.enforce_origin or self.environment == "production"


settings = Settings()
