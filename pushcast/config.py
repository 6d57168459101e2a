from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Server identity. Tokens are only accepted when their home_server matches.
    SERVER_DOMAIN: str = "localhost"

    # Web Push (VAPID). Generate with: npx web-push generate-vapid-keys
    # The public half is handed to clients; the private half never leaves the dispatcher.
    VAPID_PRIVATE_KEY: str = ""
    VAPID_PUBLIC_KEY: str = ""
    VAPID_CLAIMS_EMAIL: str = "mailto:admin@localhost"

    # Broadcast fan-out
    PUSH_MAX_WORKERS: int = 8
    PUSH_TIMEOUT_SECONDS: float = 10.0
    PUSH_TTL_SECONDS: int = 86_400
    # Delete subscriptions the push service reports as gone (HTTP 404/410)
    PUSH_PRUNE_GONE: bool = True

    # Notification display (background agent)
    NOTIFICATION_TAG_PREFIX: str = "union-event"
    NOTIFICATION_ICON: str = "/favicon.png"

    model_config = {"env_file": ".env"}


settings = Settings()
