import os

API_URL = os.getenv("API_URL", "http://localhost:8000")

APP_NAME = "SkaleBitz"

DEALS_PAGE_SIZE = 12
