# hosteldesk/core/config.py
from typing import Dict, List, Optional, Union
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    # ==== Інфраструктура ====
    database_url: str = "postgresql+asyncpg://app:app@db:5432/hosteldesk"
    redis_url: str = "redis://redis:6379/0"

    # ==== Безпека / Auth ====
    jwt_secret: str = "changeme"
    jwt_alg: str = "HS256"
    jwt_expires_min: int = 60 * 12  # робоча зміна

    # ==== CORS ====
    # CORS_ORIGINS=http://localhost:3000,http://127.0.0.1:3000,...
    cors_origins: Union[str, List[str]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # ==== Нотифікації (rq + webhook) ====
    notifications_enabled: bool = True
    notifications_queue: str = "notifications"
    webhook_url: Optional[str] = None
    webhook_secret: Optional[str] = None

    # ==== Bootstrap Admin ====
    admin_email: str = "admin@example.com"
    admin_password: str = "ChangeMe123!"
    admin_first_name: str = "Hostel"
    admin_last_name: str = "Admin"

    # ==== SLA: години на вирішення за пріоритетом ====
    sla_resolution_hours: Dict[str, int] = {
        "EMERGENCY": 4,
        "HIGH": 8,
        "MEDIUM": 36,
        "LOW": 48,
    }
    sla_breach_factor: float = 1.2

    # ==== Логування / Оточення ====
    env: str = "dev"          # dev|staging|prod
    log_level: str = "INFO"   # DEBUG|INFO|WARNING|ERROR

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                try:
                    import json
                    parsed = json.loads(s)
                    return [str(i).strip() for i in parsed if str(i).strip()]
                except ValueError:
                    pass
            return [i.strip() for i in s.split(",") if i.strip()]
        return v

    @field_validator("sla_resolution_hours")
    @classmethod
    def _normalize_sla_hours(cls, v: Dict[str, int]) -> Dict[str, int]:
        # SLA_RESOLUTION_HOURS='{"urgent": 2, "low": 72}': ключі як у TicketPriority
        out: Dict[str, int] = {}
        for key, hours in v.items():
            name = key.strip().upper()
            if name == "URGENT":
                name = "EMERGENCY"
            if hours <= 0:
                raise ValueError(f"SLA hours for {name} must be positive")
            out[name] = hours
        return out


settings = Settings()
