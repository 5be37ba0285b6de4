import os
from typing import Dict, Any, Optional


def _timeout(name: str, default: str) -> Optional[float]:
    # 0 means block indefinitely
    value = float(os.getenv(name, default))
    return value if value > 0 else None


def get_server_config() -> Dict[str, Any]:
    """Get registration service configuration from environment variables"""
    return {
        "host": os.getenv("REGISTRATION_HOST", "localhost"),
        "port": int(os.getenv("REGISTRATION_PORT", 1337)),
        "connect_timeout": _timeout("REGISTRATION_CONNECT_TIMEOUT", "10"),
        "read_timeout": _timeout("REGISTRATION_READ_TIMEOUT", "30"),
    }


def get_app_config() -> Dict[str, Any]:
    """Get application configuration from environment variables"""
    return {
        "debug": os.getenv("DEBUG", "False").lower() == "true",
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
    }
