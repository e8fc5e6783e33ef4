# ciphershare_cli/core/config.py
from pathlib import Path
import os

# Backend URL
BASE_URL = os.environ.get("CIPHERSHARE_URL", "http://localhost:8000")

# CA certificate for TLS verification (unset = system default)
CA_CERT = os.environ.get("CIPHERSHARE_CA_CERT")

# Local data (session token)
APP_DIR = Path(os.environ.get("CIPHERSHARE_HOME", Path.home() / ".ciphershare"))
SESSION_FILE = APP_DIR / "session.json"

REQUEST_TIMEOUT = 30
