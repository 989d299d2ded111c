import os

# In a real deployment, load from environment variables or a config file
SECRET_KEY: str = os.getenv(
    "SECRET_KEY", "your-secret-key-for-jwt-!ChangeMe!"
)  # TODO: Fail startup when SECRET_KEY is left at the default outside development
ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite://./backoffice.sqlite3")

# Stock is "critical" at or below this fraction of its minimum quantity
LOW_STOCK_CRITICAL_RATIO: float = float(os.getenv("LOW_STOCK_CRITICAL_RATIO", "0.3"))

# Pending notifications kept per change-feed subscriber before dropping
CHANGE_FEED_QUEUE_SIZE: int = int(os.getenv("CHANGE_FEED_QUEUE_SIZE", "100"))

RECEIPT_MAX_BYTES: int = int(os.getenv("RECEIPT_MAX_BYTES", str(5 * 1024 * 1024)))

MODEL_MODULES: list[str] = [
    "backoffice.features.auth.models",
    "backoffice.features.customers.models",
    "backoffice.features.inventory.models",
    "backoffice.features.combos.models",
    "backoffice.features.orders.models",
    "backoffice.features.finance.models",
    "aerich.models",  # For Aerich migrations
]

TORTOISE_ORM_CONFIG = {
    "connections": {"default": DATABASE_URL},
    "apps": {
        "models": {  # This is an app label, can be anything
            "models": MODEL_MODULES,
            "default_connection": "default",
        }
    },
}
