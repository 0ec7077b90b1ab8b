"""Token bucket configuration via environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings


class BucketSettings(BaseSettings):
    model_config = {"env_prefix": "BUCKET_"}

    # Tokens added per second. Zero is allowed: the bucket never refills.
    rate: float = Field(default=10.0, ge=0)
    # Burst size. Zero is allowed: the bucket admits nothing.
    capacity: int = Field(default=10, ge=0)
    # Starting token count; unset means a full bucket.
    initial_tokens: int | None = Field(default=None, ge=0)
