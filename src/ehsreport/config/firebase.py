"""Firebase Realtime Database configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

FIREBASE_URL_ENV = "FIREBASE_DATABASE_URL"
FIREBASE_TOKEN_ENV = "FIREBASE_AUTH_TOKEN"
FIREBASE_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class FirebaseConfig:
    """Holds the database location and the optional access token."""

    database_url: str
    resilience: ResilienceConfig
    auth_token: str | None = None


def get_firebase_config(*, resilience: ResilienceConfig | None = None) -> FirebaseConfig:
    values = require_env_vars((FIREBASE_URL_ENV,))
    database_url = values[FIREBASE_URL_ENV].rstrip("/")
    return FirebaseConfig(
        database_url=database_url,
        auth_token=optional_env_var(FIREBASE_TOKEN_ENV),
        resilience=resilience
        or ResilienceConfig(
            name="firebase",
            base_url=database_url,
            timeout_seconds=FIREBASE_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        ),
    )
