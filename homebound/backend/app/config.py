from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Runtime ---
    ENV: str = "dev"  # dev|prod
    HOMEBOUND_DB_URL: str = "sqlite+aiosqlite:///./homebound.db"

    # --- Minimal admin auth (API key) ---
    # Send: X-API-Key: <key>
    API_KEY: str | None = None

    # --- Where active destinations come from ---
    # db: integration_endpoints table via SQLAlchemy
    # table_api: generic REST table store (GET ?table=<name>)
    DESTINATION_SOURCE: Literal["db", "table_api"] = "db"
    TABLE_API_BASE_URL: str = "http://localhost:8080/api/api.php"
    TABLE_API_DESTINATIONS_TABLE: str = "zapier_settings"
    TABLE_API_TIMEOUT_S: float = 10.0

    # --- Endpoint admin ---
    # Comma-separated host suffixes, e.g. "zapier.com". Empty = any https host.
    WEBHOOK_ALLOWED_HOSTS: str = ""

    # --- Fan-out delivery ---
    FANOUT_RATE_MAX_REQUESTS: int = 100
    FANOUT_RATE_WINDOW_S: float = 60.0
    FANOUT_TIMEOUT_S: float = 30.0
    FANOUT_RETRIES: int = 3
    FANOUT_BACKOFF_BASE_S: float = 1.0  # 2s, 4s, 8s ...
    FANOUT_TRANSPORT_MODE: Literal["opaque", "transparent"] = "opaque"
    FANOUT_USER_AGENT: str = "HomeboundApp/1.0"
    FANOUT_ORIGIN: str = "server"
    FANOUT_VALIDATE: bool = True
    FANOUT_SANITIZE: bool = True

    def allowed_hosts(self) -> list[str]:
        return [h.strip().lower() for h in self.WEBHOOK_ALLOWED_HOSTS.split(",") if h.strip()]


settings = Settings()
