# ABOUTME: Environment-driven settings for the reading companion service
# ABOUTME: Loads .env via python-dotenv; a missing API key disables that collaborator
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or None
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
GOOGLE_CLOUD_TTS_API_KEY = os.getenv("GOOGLE_CLOUD_TTS_API_KEY") or None
GIPHY_API_KEY = os.getenv("GIPHY_API_KEY") or None
UNSPLASH_ACCESS_KEY = os.getenv("UNSPLASH_ACCESS_KEY") or None

CACHE_DIR = Path(os.getenv("CACHE_DIR", "data/cache"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8767"))
