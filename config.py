import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/links.db")
LOG_DIR = os.getenv("LOG_DIR", "logs")

CLICK_LOG_CAP = int(os.getenv("CLICK_LOG_CAP", "1000"))
CODE_LENGTH = int(os.getenv("CODE_LENGTH", "6"))
DASHBOARD_LIMIT = int(os.getenv("DASHBOARD_LIMIT", "100"))
RECENT_CLICKS = int(os.getenv("RECENT_CLICKS", "20"))
DASHBOARD_WORKERS = int(os.getenv("DASHBOARD_WORKERS", "8"))
