"""Service configuration.

Values come from environment variables (a local ``.env`` file is loaded
first), falling back to the defaults below.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

# Placeholder only. Deployments must set QUOTE_API_KEY.
PLACEHOLDER_QUOTE_API_KEY = "REPLACE_WITH_PROVIDER_KEY"


class Settings(BaseModel):
    aws_region: str = "ap-south-1"
    cognito_user_pool_id: str | None = None
    cognito_app_client_id: str | None = None

    strategies_table: str = "UserStrategies"
    trades_table: str = "ChecklistTrades"

    quote_provider: str = "rapidapi"    # "rapidapi" or "alphavantage"
    quote_api_key: str = PLACEHOLDER_QUOTE_API_KEY
    quote_timeout: float = Field(default=10.0, gt=0)

    frontend_url: str = "http://localhost:5173"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        env_map = {
            "aws_region": "AWS_REGION",
            "cognito_user_pool_id": "COGNITO_USER_POOL_ID",
            "cognito_app_client_id": "COGNITO_APP_CLIENT_ID",
            "strategies_table": "STRATEGIES_TABLE",
            "trades_table": "TRADES_TABLE",
            "quote_provider": "QUOTE_PROVIDER",
            "quote_api_key": "QUOTE_API_KEY",
            "quote_timeout": "QUOTE_TIMEOUT",
            "frontend_url": "FRONTEND_URL",
            "log_level": "LOG_LEVEL",
        }
        data = {}
        for field_name, env_var in env_map.items():
            value = os.getenv(env_var)
            if value:
                data[field_name] = value
        return cls(**data)

    @property
    def has_real_quote_key(self) -> bool:
        return self.quote_api_key != PLACEHOLDER_QUOTE_API_KEY


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
