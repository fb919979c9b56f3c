"""
Configuration for the SRS Writer orchestration core
"""
import logging
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Paths
BASE_DIR = Path(__file__).parent
SPECIALISTS_DIR = Path(os.getenv("SRS_SPECIALISTS_DIR", BASE_DIR / "rules" / "specialists"))
TEMPLATES_DIR = Path(os.getenv("SRS_TEMPLATES_DIR", BASE_DIR / "templates"))

# Session files
SESSION_LOG_DIR_NAME = os.getenv("SRS_SESSION_LOG_DIR", ".session-log")
SESSION_FILE_PREFIX = "srs-writer-session_"
MAIN_SESSION_FILE_NAME = f"{SESSION_FILE_PREFIX}main.json"
SESSION_FILE_VERSION = "5.0"
SRS_VERSION = "v1.0"

# Iteration limits
GLOBAL_MAX_ITERATIONS = int(os.getenv("SRS_GLOBAL_MAX_ITERATIONS", "10"))
HISTORY_TOKEN_BUDGET = int(os.getenv("SRS_HISTORY_TOKEN_BUDGET", "40000"))

# AI Configuration - Using Gemini
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
AI_MODEL = os.getenv("AI_MODEL", "gemini-2.0-flash-exp")
AI_TEMPERATURE = float(os.getenv("AI_TEMPERATURE", "0.3"))
AI_MAX_RETRIES = int(os.getenv("AI_MAX_RETRIES", "2"))
AI_REQUEST_TIMEOUT = int(os.getenv("AI_REQUEST_TIMEOUT", "120"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(level: str = None):
    """Configure root logging for scripts and services embedding the core"""
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
