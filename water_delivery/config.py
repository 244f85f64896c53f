# config.py
import os
from dotenv import load_dotenv

load_dotenv()

# ------------------------- DATABASE -------------------------
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./water_delivery.db")

# ------------------------- AUTH -------------------------
JWT_SECRET = os.getenv("JWT_SECRET", "demo_secret")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXP_MINUTES = int(os.getenv("JWT_EXP_MINUTES", "60"))

# ------------------------- BROADCAST -------------------------
USE_AWS = os.getenv("USE_AWS", "False").lower() in ("true", "1", "yes")
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
BROADCAST_QUEUE_URL = os.getenv("BROADCAST_QUEUE_URL")

# ------------------------- APP -------------------------
CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "₱")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# 100 points redeem for 50.00 off
POINTS_PER_REDEMPTION_UNIT = 100
DISCOUNT_PER_REDEMPTION_UNIT = 50.0
MIN_REDEEM_POINTS = 100
