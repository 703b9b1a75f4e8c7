"""
Configuration for the Forsee AI gateway.

All settings come from the environment (optionally a .env file). Credentials
have no defaults: anything that needs one fails fast when it is missing.
"""
import os
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_ASSETS_API_URL = "http://localhost:8000/api/v1"
DEFAULT_AVATAR_URL = "/avatar.png"
# Keys Firebase uses to sign ID tokens, published as a JWK set
DEFAULT_JWKS_URL = "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"


def require_env(name: str) -> str:
    """Return a mandatory environment variable or raise RuntimeError."""
    value = os.getenv(name, "").strip()
    if not value:
        raise RuntimeError(f"{name} is not set. Please configure it in the environment or .env file.")
    return value


def get_port() -> int:
    return int(os.getenv("PORT", "5000"))


def get_cors_origins() -> List[str]:
    origins = os.getenv("CORS_ORIGINS", "*")
    return [origin.strip() for origin in origins.split(",") if origin.strip()]


def get_llm_timeout() -> float:
    return float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))


def get_assets_api_url() -> str:
    return os.getenv("ASSETS_API_URL", DEFAULT_ASSETS_API_URL).rstrip("/")


def get_firebase_api_key() -> str:
    return require_env("FIREBASE_API_KEY")


def get_firebase_project_id() -> Optional[str]:
    return os.getenv("FIREBASE_PROJECT_ID") or None


def get_jwt_algorithm() -> str:
    return os.getenv("JWT_ALGORITHM", "RS256")


def get_jwt_public_key() -> str:
    """
    Load the key used to verify bearer tokens.

    JWT_PUBLIC_KEY holds the key inline (newlines may be escaped as '\\n');
    otherwise JWT_PUBLIC_KEY_PATH points to a PEM file.
    """
    inline_key = os.getenv("JWT_PUBLIC_KEY", "").strip()
    if inline_key:
        return inline_key.replace("\\n", "\n")

    key_path = require_env("JWT_PUBLIC_KEY_PATH")
    with open(key_path, "r") as f:
        return f.read().replace('\r\n', '\n').replace('\r', '\n')


def get_http_timeout() -> float:
    return float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))


def get_jwks_url() -> str:
    """Where to fetch the identity provider's signing keys. Empty disables the lookup."""
    return os.getenv("JWT_JWKS_URL", DEFAULT_JWKS_URL).strip()
