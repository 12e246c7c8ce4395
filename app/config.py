from pydantic_settings import BaseSettings
from typing import List, Optional
from urllib.parse import quote_plus

class Settings(BaseSettings):
    # Set DATABASE_URL to bypass the postgres_* parts (sqlite for local runs)
    DATABASE_URL: Optional[str] = None

    postgres_user: str = "postgres"
    postgres_password: str = ""
    postgres_db: str = "campus_eats"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"


    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    ENV: str = "production"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Ordering
    COMMISSION_RATE: float = 0.05
    CONTRACT_DURATION_DAYS: int = 30
    QR_PREFIX: str = "CE"

    # Gateway
    PAYMENT_GATEWAY: str = "razorpay"
    CURRENCY: str = "INR"
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    RAZORPAY_WEBHOOK_SECRET: str = ""

    # Push notifications
    FCM_PROJECT_ID: Optional[str] = None
    FCM_PRIVATE_KEY: Optional[str] = None
    FCM_CLIENT_EMAIL: Optional[str] = None

    @property
    def database_url(self):
        if self.DATABASE_URL:
            return self.DATABASE_URL

        encoded_password = quote_plus(self.postgres_password)
        return (
            f"postgresql+psycopg2://{self.postgres_user}:"
            f"{encoded_password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def fcm_configured(self) -> bool:
        return bool(
            self.FCM_PROJECT_ID and self.FCM_PRIVATE_KEY and self.FCM_CLIENT_EMAIL
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"

settings = Settings()
