"""Configuration management for BridgeNode."""
from functools import lru_cache
from typing import List, Optional, Union
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Node addresses are optional here and only required by the CLI,
    hosts usually pass them in a NodeConfig instead.
    """

    # Application
    APP_NAME: str = "BridgeNode"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Worker process
    WORKER_PATH: str = "main/main_v2.go"
    WORKER_ARGS: List[str] = []
    WORKER_CWD: Optional[str] = None
    WORKER_INIT_AT_ONCE: bool = True
    GO_BINARY: str = "go"

    # Job exchange
    JOB_TIMEOUT_SECONDS: float = 5.0  # Bound for a single reply
    WORKER_KILL_TIMEOUT: float = 5.0  # Seconds between SIGTERM and SIGKILL on close

    # Node configuration (CLI runs)
    NODE_MQTT_ADDRESS: Optional[str] = None
    NODE_MQTT_PORT: Optional[Union[int, str]] = None
    NODE_MODBUS_CLIENT_ADDRESS: Optional[str] = None
    NODE_MODBUS_CLIENT_PORT: Optional[Union[int, str]] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Singleton settings instance
    """
    return Settings()
