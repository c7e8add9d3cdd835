"""Secret access for ElementQuote functions.

Secrets come from Google Cloud Secret Manager in production and from plain
environment variables when running against the Firebase emulators.
"""

import os
from functools import lru_cache
from typing import Optional

import structlog
from google.cloud import secretmanager

logger = structlog.get_logger(__name__)


def is_emulator_mode() -> bool:
    return (
        os.environ.get("FUNCTIONS_EMULATOR") == "true"
        or os.environ.get("FIRESTORE_EMULATOR_HOST") is not None
    )


def _project_id() -> Optional[str]:
    return os.environ.get("GCLOUD_PROJECT") or os.environ.get("GOOGLE_CLOUD_PROJECT")


def get_secret(secret_id: str) -> Optional[str]:
    """Latest value of a secret, or None if it cannot be read.

    Args:
        secret_id: Secret name, e.g. "OPENAI_API_KEY".
    """
    if is_emulator_mode():
        value = os.environ.get(secret_id)
        if not value:
            logger.warning("secret_missing_in_env", secret_id=secret_id)
        return value

    name = f"projects/{_project_id()}/secrets/{secret_id}/versions/latest"
    try:
        client = secretmanager.SecretManagerServiceClient()
        response = client.access_secret_version(request={"name": name})
    except Exception as e:
        logger.warning("secret_manager_read_failed", secret_id=secret_id, error=str(e))
        return os.environ.get(secret_id)
    return response.payload.data.decode("UTF-8")


@lru_cache(maxsize=1)
def get_openai_api_key() -> Optional[str]:
    return get_secret("OPENAI_API_KEY")


def clear_secret_cache() -> None:
    """Forget cached secrets (rotation, tests)."""
    get_openai_api_key.cache_clear()
