import os
from functools import lru_cache
from typing import Literal, Optional, get_args
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

# Load environment variables
load_dotenv()


LogLevel = Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
LOG_LEVELS = get_args(LogLevel)  # loguruの標準レベル


class SettingsError(RuntimeError):
    """環境変数の設定値が不正な場合に送出する"""


class Settings(BaseModel):
    """環境変数から読み込む実行時設定"""

    pat: Optional[str] = None
    authentication: Literal["interactive", "pat"] = "interactive"
    request_timeout: float = Field(default=30.0, gt=0)
    log_level: LogLevel = "INFO"


def load_settings() -> Settings:
    """環境変数からSettingsを組み立てる

    Raises:
        SettingsError: 値の形式が不正な場合
    """
    raw = {
        "pat": os.getenv("AZURE_DEVOPS_PAT") or None,
        "authentication": (os.getenv("AZURE_DEVOPS_AUTHENTICATION") or "interactive").lower(),
        "request_timeout": os.getenv("AZURE_DEVOPS_REQUEST_TIMEOUT") or 30.0,
        "log_level": (os.getenv("LOG_LEVEL") or "INFO").upper(),
    }
    try:
        return Settings(**raw)
    except ValidationError as exc:
        raise SettingsError(f"Invalid server configuration: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
