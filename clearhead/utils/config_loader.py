"""
Central Configuration Loader for ClearHead

This module loads all secrets and configuration from environment variables
and provides them to other modules. Numerical settings (timeouts, audio
settings, analysis thresholds) live in the packaged config/global.json.
"""

import os
import json
import logging
import tempfile
from pathlib import Path
from typing import Dict, List, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Chat completion API (ClearHead backend proxy or any OpenAI-compatible endpoint)
CHAT_API_KEY = os.getenv("CHAT_API_KEY")
CHAT_BASE_URL = os.getenv("CHAT_BASE_URL") or "http://localhost:3000"
CHAT_MODEL = os.getenv("CHAT_MODEL")
CHAT_COMPLETIONS_PATH = os.getenv("CHAT_COMPLETIONS_PATH") or "/api/ai/chat"

# Google Cloud STT/TTS Configuration
GOOGLE_TYPE = os.getenv("GOOGLE_TYPE")
GOOGLE_PROJECT_ID = os.getenv("GOOGLE_PROJECT_ID")
GOOGLE_PRIVATE_KEY_ID = os.getenv("GOOGLE_PRIVATE_KEY_ID")
GOOGLE_PRIVATE_KEY = os.getenv("GOOGLE_PRIVATE_KEY")
GOOGLE_CLIENT_EMAIL = os.getenv("GOOGLE_CLIENT_EMAIL")
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_AUTH_URI = os.getenv("GOOGLE_AUTH_URI")
GOOGLE_TOKEN_URI = os.getenv("GOOGLE_TOKEN_URI")
GOOGLE_AUTH_PROVIDER_CERT_URL = os.getenv("GOOGLE_AUTH_PROVIDER_CERT_URL")
GOOGLE_CLIENT_CERT_URL = os.getenv("GOOGLE_CLIENT_CERT_URL")
GOOGLE_UNIVERSE_DOMAIN = os.getenv("GOOGLE_UNIVERSE_DOMAIN")

# Local data directory for the entry store and insight cache
CLEARHEAD_DATA_DIR = os.getenv("CLEARHEAD_DATA_DIR") or str(Path.home() / ".clearhead")

DEFAULT_EXTERNAL_TIMEOUT_SECONDS = 20.0


def validate_required_config() -> List[str]:
    """
    Check that the environment variables needed by the AI services are set.

    Returns:
        Names of the missing variables (empty list when everything is present)
    """
    required_vars = {
        "CHAT_BASE_URL": CHAT_BASE_URL,
        "GOOGLE_TYPE": GOOGLE_TYPE,
        "GOOGLE_PROJECT_ID": GOOGLE_PROJECT_ID,
        "GOOGLE_PRIVATE_KEY_ID": GOOGLE_PRIVATE_KEY_ID,
        "GOOGLE_PRIVATE_KEY": GOOGLE_PRIVATE_KEY,
        "GOOGLE_CLIENT_EMAIL": GOOGLE_CLIENT_EMAIL,
        "GOOGLE_TOKEN_URI": GOOGLE_TOKEN_URI,
    }
    return [name for name, value in required_vars.items() if not value]


def get_google_cloud_credentials_path() -> Optional[str]:
    """
    Create a temporary Google Cloud credentials JSON file from environment variables.

    Returns:
        Path to the temporary file, or None when no service account is configured
    """
    if not (GOOGLE_PRIVATE_KEY and GOOGLE_CLIENT_EMAIL):
        return None

    credentials = {
        "type": GOOGLE_TYPE,
        "project_id": GOOGLE_PROJECT_ID,
        "private_key_id": GOOGLE_PRIVATE_KEY_ID,
        "private_key": GOOGLE_PRIVATE_KEY,
        "client_email": GOOGLE_CLIENT_EMAIL,
        "client_id": GOOGLE_CLIENT_ID,
        "auth_uri": GOOGLE_AUTH_URI,
        "token_uri": GOOGLE_TOKEN_URI,
        "auth_provider_x509_cert_url": GOOGLE_AUTH_PROVIDER_CERT_URL,
        "client_x509_cert_url": GOOGLE_CLIENT_CERT_URL,
        "universe_domain": GOOGLE_UNIVERSE_DOMAIN
    }

    temp_file = tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False)
    json.dump(credentials, temp_file, indent=2)
    temp_file.close()

    return temp_file.name


def apply_google_credentials():
    """Point GOOGLE_APPLICATION_CREDENTIALS at a generated service-account file if needed."""
    if os.getenv("GOOGLE_APPLICATION_CREDENTIALS"):
        return
    path = get_google_cloud_credentials_path()
    if path:
        os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = path
        logger.debug("Google credentials written to temporary file")


def get_chat_config() -> Dict[str, Optional[str]]:
    """Get chat completion configuration as a dictionary."""
    return {
        "api_key": CHAT_API_KEY,
        "base_url": CHAT_BASE_URL,
        "model": CHAT_MODEL,
        "path": CHAT_COMPLETIONS_PATH,
    }


def get_data_dir() -> Path:
    """Directory that holds the local key-value storage files."""
    return Path(CLEARHEAD_DATA_DIR).expanduser()


def load_global_config() -> dict:
    """Load global numerical configuration."""
    config_path = Path(__file__).parent.parent / "config" / "global.json"
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except Exception as e:
        logger.warning(f"Error loading config file {config_path}: {e}")
        return {}


def get_external_timeout(global_config: Optional[dict] = None) -> float:
    """Timeout in seconds applied to every external service call."""
    config = global_config if global_config is not None else load_global_config()
    return float(config.get("external_timeout_seconds", DEFAULT_EXTERNAL_TIMEOUT_SECONDS))
