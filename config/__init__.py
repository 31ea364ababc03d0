import importlib
import os
from types import ModuleType


def get_settings_module() -> str:
    # Môi trường lấy từ biến APP_ENV, mặc định là 'development'
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "config.production"

    if env in {"test", "testing"}:
        return "config.testing"

    return "config.development"


def load_settings(module_name: str | None = None) -> ModuleType:
    """Import the settings module for the current environment."""
    return importlib.import_module(module_name or get_settings_module())
