import os
from typing import Any, Dict
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from dotenv import load_dotenv

from src.tablesearch.exceptions import ConfigInvalid

load_dotenv()

class Settings(BaseModel):
    """Application settings from environment variables"""

    model_config = ConfigDict(frozen=True)

    # Source database (searched table lives here)
    SOURCE_ENVIRONMENT: str = "dev"
    SOURCE_HOST: str = "localhost"
    SOURCE_PORT: int = Field(default=5432, ge=1, le=65535)
    SOURCE_DATABASE: str = ""
    SOURCE_USER: str = "postgres"
    SOURCE_PASSWORD: str = ""
    SOURCE_STATEMENT_TIMEOUT_SECONDS: int = Field(default=300, ge=0)

    # Paging
    PAGE_SIZE: int = Field(default=10000, gt=0)

    # Cache
    CACHE_DIRECTORY: str = "./cache"
    ENABLE_CACHING: bool = True
    CACHE_EXPIRY_HOURS: int = Field(default=24, ge=0)
    MAX_CACHE_FILE_SIZE_MB: int = Field(default=100, gt=0)
    COMPRESS_CACHE: bool = True

    # Source throttling
    MAX_CONCURRENT_CONNECTIONS: int = Field(default=2, ge=1)
    QUERY_DELAY_MS: int = Field(default=100, ge=0)

    # Search
    RECLAIM_AFTER_PAGES: int = Field(default=50, ge=0)   # 0 disables
    MAX_DISPLAY_LENGTH: int = Field(default=50, ge=4)
    DEFAULT_MAX_SAMPLES: int = Field(default=3, ge=1)

    LOG_LEVEL: str = "INFO"

    @classmethod
    def from_env(cls, **overrides: Any) -> "Settings":
        """
            Resolve settings once from the environment (and .env).
            Raises ConfigInvalid when a value cannot be parsed.
        """
        values: Dict[str, Any] = {
            name: os.environ[name]
            for name in cls.model_fields
            if os.environ.get(name) not in (None, "")
        }
        values.update(overrides)

        try:
            return cls(**values)
        except ValidationError as e:
            problems = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
            raise ConfigInvalid(
                f"Invalid configuration: {'; '.join(problems)}",
                errors=problems
            ) from e

    @property
    def max_cache_file_bytes(self) -> int:
        return self.MAX_CACHE_FILE_SIZE_MB * 1024 * 1024
