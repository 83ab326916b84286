from decimal import Decimal

from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    endpoint_url: str = "http://localhost:3005/api/submissions"
    # Pre-shared per environment; never typed by the user
    secret_token: str = ""
    origin: str = "http://localhost:5173"
    request_timeout_seconds: float = 60.0

    min_investment_amount: Decimal = Decimal("1000")
    draft_path: str = "./.investor_drafts.json"
    max_image_width: int = 800
    image_quality: float = 0.7

    # ─── Notification e-mail ──────────────────────
    notify_email: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_sender: str = ""
    smtp_password: str = ""

    model_config = {
        "env_prefix": "INVESTOR_FORM_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "frozen": True,
    }
