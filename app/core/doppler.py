"""
Doppler secrets loader for production deployment.

Fetches secrets from the Doppler API into environment variables.
Runs before Settings is instantiated so pydantic can read the env vars.
"""

import logging
import os

import requests

logger = logging.getLogger(__name__)

DOPPLER_API_URL = "https://api.doppler.com/v3/configs/config/secrets/download"


def load_doppler_secrets() -> bool:
    """
    Load secrets from Doppler API into the process environment.

    Existing environment variables win over Doppler values.

    Returns:
        True if secrets were loaded, False if DOPPLER_TOKEN not set or the
        download failed.
    """
    token = os.getenv("DOPPLER_TOKEN")
    if not token:
        return False

    try:
        response = requests.get(
            DOPPLER_API_URL,
            params={"format": "json"},
            auth=(token, ""),  # Service token as username, empty password
            timeout=30,
        )
        response.raise_for_status()
        secrets = response.json()
    except requests.RequestException as e:
        logger.warning(f"Failed to load Doppler secrets: {e}")
        return False

    for key, value in secrets.items():
        if key not in os.environ:
            os.environ[key] = str(value)

    logger.info(f"Loaded {len(secrets)} secrets from Doppler")
    return True


if __name__ == "__main__":
    load_doppler_secrets()
