# ciphershare_cli/core/session.py
import json
from typing import Optional

from .config import APP_DIR, SESSION_FILE


def save_token(access_token: str) -> None:
    """
    Stores the access token issued by the auth service.
    """
    APP_DIR.mkdir(parents=True, exist_ok=True)
    data = {"access_token": access_token}
    with open(SESSION_FILE, "w", encoding="utf-8") as f:
        json.dump(data, f)


def load_token() -> Optional[str]:
    """
    Returns None if there is no session file or it cannot be read.
    """
    if not SESSION_FILE.exists():
        return None

    try:
        with open(SESSION_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data.get("access_token")
    except (OSError, ValueError):
        return None


def clear_token() -> None:
    if SESSION_FILE.exists():
        SESSION_FILE.unlink()
