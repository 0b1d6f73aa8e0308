import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


@dataclass
class Settings:
    """
    Runtime configuration.
    Built once by the entry point and handed to create_app().
    """

    database_url: str = "sqlite:///./grocery.db"

    # Session tokens
    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7
    cookie_name: str = "app_session_id"

    # Identity auto-promoted to admin on upsert
    owner_open_id: str | None = None

    # Money (minor units)
    delivery_charge: int = 4000
    free_delivery_threshold: int = 50000

    # Delivery OTP
    delivery_otp_ttl_minutes: int = 30
    delivery_otp_max_resends: int = 5

    # Outgoing mail
    email_host: str = "smtp.gmail.com"
    email_port: int = 587
    email_host_user: str | None = None
    email_host_password: str | None = None

    log_level: str = "INFO"

    @property
    def email_enabled(self) -> bool:
        return bool(self.email_host_user and self.email_host_password)

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            secret_key=os.getenv("SECRET_KEY", defaults.secret_key),
            algorithm=os.getenv("ALGORITHM", defaults.algorithm),
            access_token_expire_minutes=int(
                os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", defaults.access_token_expire_minutes)
            ),
            cookie_name=os.getenv("COOKIE_NAME", defaults.cookie_name),
            owner_open_id=os.getenv("OWNER_OPEN_ID") or None,
            delivery_charge=int(os.getenv("DELIVERY_CHARGE", defaults.delivery_charge)),
            free_delivery_threshold=int(
                os.getenv("FREE_DELIVERY_THRESHOLD", defaults.free_delivery_threshold)
            ),
            delivery_otp_ttl_minutes=int(
                os.getenv("DELIVERY_OTP_TTL_MINUTES", defaults.delivery_otp_ttl_minutes)
            ),
            delivery_otp_max_resends=int(
                os.getenv("DELIVERY_OTP_MAX_RESENDS", defaults.delivery_otp_max_resends)
            ),
            email_host=os.getenv("EMAIL_HOST", defaults.email_host),
            email_port=int(os.getenv("EMAIL_PORT", defaults.email_port)),
            email_host_user=os.getenv("EMAIL_HOST_USER") or None,
            email_host_password=os.getenv("EMAIL_HOST_PASSWORD") or None,
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        )
