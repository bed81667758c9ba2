import os
from pathlib import Path


class Config:
    BASE_DIR = Path(__file__).resolve().parent.parent
    INSTANCE_DIR = BASE_DIR / "instance"
    INSTANCE_DIR.mkdir(exist_ok=True)

    SECRET_KEY = os.environ.get("WINGMAN_SECRET_KEY", "dev-secret-key-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "WINGMAN_DATABASE_URI",
        f"sqlite:///{INSTANCE_DIR / 'wingman.db'}",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("WINGMAN_LOG_LEVEL", "INFO")
    LOG_FILE = os.environ.get("WINGMAN_LOG_FILE")

    TOKEN_TTL_SECONDS = 60 * 60
    REMEMBER_ME_TTL_SECONDS = 7 * 24 * 60 * 60
    RESET_TOKEN_TTL_SECONDS = 15 * 60
    RESET_URL = os.environ.get(
        "WINGMAN_RESET_URL",
        "http://localhost:5050/reset-password?token={token}",
    )

    PROBE_TIMEOUT = float(os.environ.get("WINGMAN_PROBE_TIMEOUT", 5.0))
    ATTEMPT_TIMEOUT = float(os.environ.get("WINGMAN_ATTEMPT_TIMEOUT", 30.0))
    DEFAULT_PROVIDER = os.environ.get("WINGMAN_DEFAULT_PROVIDER", "qwen-plus")
