"""Foundation: configuration, errors, secrets and structured logging."""

from .errors import (
    ErrorCode,
    InputError,
    NotReadyError,
    ReferenceImportError,
    RemoteError,
    StartupError,
    StorageError,
    ToolboxError,
    classify_exception,
    status_from_exception,
)
from .logging import BoundLogger, configure_logging, get_logger, log_context
from .secrets import Secrets
from .settings import (
    HttpSettings,
    LoggingSettings,
    ToolboxSettings,
    UiSettings,
    clear_settings_cache,
    config_dir,
    config_file,
    data_dir,
    get_settings,
    load_settings,
    write_default_config,
)

__all__ = [
    # Errors
    "ErrorCode", "ToolboxError", "InputError", "StorageError", "ReferenceImportError",
    "RemoteError", "NotReadyError", "StartupError", "classify_exception", "status_from_exception",
    # Logging
    "BoundLogger", "configure_logging", "get_logger", "log_context",
    # Secrets
    "Secrets",
    # Settings
    "ToolboxSettings", "LoggingSettings", "HttpSettings", "UiSettings",
    "get_settings", "load_settings", "clear_settings_cache",
    "config_dir", "config_file", "data_dir", "write_default_config",
]
