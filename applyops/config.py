"""
Configuration Loader for ApplyOps

Loads settings from an optional config.yaml and overlays environment
variables (a .env file is honoured via python-dotenv).
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

APP_DIR = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = APP_DIR / "config.yaml"

SUPPORTED_AI_PROVIDERS = ("claude", "gemini")

DEFAULTS: Dict[str, Any] = {
    "database": {"path": str(APP_DIR / "applyops.db")},
    "ai": {"provider": "gemini", "model": None, "timeout": 30.0},
    "sync": {
        "max_results": 20,
        "lookback_months": 3,
        "message_delay_seconds": 4.0,
        "confidence_threshold": 0.7,
    },
    "calendar": {"timezone": "Asia/Kolkata", "calendar_id": "primary"},
    "google": {
        "client_id": None,
        "client_secret": None,
        "redirect_uri": "http://localhost:5000/api/google/callback",
    },
    "logging": {"operation_log_dir": None},
    "security": {"secret_key": None},
}

# env var -> (section, key, cast)
ENV_OVERRIDES = {
    "APPLYOPS_DB_PATH": ("database", "path", str),
    "AI_PROVIDER": ("ai", "provider", str),
    "AI_MODEL": ("ai", "model", str),
    "AI_TIMEOUT": ("ai", "timeout", float),
    "SYNC_MAX_RESULTS": ("sync", "max_results", int),
    "SYNC_MESSAGE_DELAY": ("sync", "message_delay_seconds", float),
    "CALENDAR_TIMEZONE": ("calendar", "timezone", str),
    "GOOGLE_CLIENT_ID": ("google", "client_id", str),
    "GOOGLE_CLIENT_SECRET": ("google", "client_secret", str),
    "GOOGLE_REDIRECT_URI": ("google", "redirect_uri", str),
    "OPERATION_LOG_DIR": ("logging", "operation_log_dir", str),
    "FLASK_SECRET_KEY": ("security", "secret_key", str),
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


class Config:
    """Configuration manager for ApplyOps."""

    def __init__(
        self,
        config_path: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None,
        environ: Optional[Dict[str, str]] = None,
    ):
        """
        Build configuration from defaults, YAML file, environment and overrides.

        Args:
            config_path: Path to config.yaml (missing default file is fine,
                a missing explicit path is an error)
            overrides: Nested dict applied last (used by tests)
            environ: Environment mapping (defaults to os.environ)
        """
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._explicit_path = config_path is not None
        self._environ = os.environ if environ is None else environ

        config = copy.deepcopy(DEFAULTS)
        _merge(config, self._load_file())
        self._apply_env(config)
        _merge(config, overrides or {})

        self._validate_config(config)
        self._config = config

    def _load_file(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            if self._explicit_path:
                raise FileNotFoundError(f"Config file not found: {self.config_path}")
            return {}

        with open(self.config_path, "r") as f:
            loaded = yaml.safe_load(f) or {}

        if not isinstance(loaded, dict):
            raise ValueError(f"Config file must contain a mapping: {self.config_path}")
        return loaded

    def _apply_env(self, config: Dict[str, Any]) -> None:
        for env_var, (section, key, cast) in ENV_OVERRIDES.items():
            raw = self._environ.get(env_var)
            if raw is None or raw == "":
                continue
            try:
                config[section][key] = cast(raw)
            except ValueError:
                raise ValueError(f"Invalid value for {env_var}: {raw!r}")

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """Validate value ranges."""
        provider = str(config["ai"].get("provider") or "").lower()
        if provider not in SUPPORTED_AI_PROVIDERS:
            raise ValueError(
                f"Unknown AI provider: '{provider}'. "
                f"Available providers: {', '.join(SUPPORTED_AI_PROVIDERS)}"
            )
        config["ai"]["provider"] = provider

        sync = config["sync"]
        if not 0.0 <= float(sync["confidence_threshold"]) <= 1.0:
            raise ValueError("sync.confidence_threshold must be between 0 and 1")
        if float(sync["message_delay_seconds"]) < 0:
            raise ValueError("sync.message_delay_seconds must not be negative")
        if int(sync["max_results"]) <= 0:
            raise ValueError("sync.max_results must be positive")
        if int(sync["lookback_months"]) <= 0:
            raise ValueError("sync.lookback_months must be positive")

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._config)

    # ===== DATABASE =====

    @property
    def database_path(self) -> Path:
        return Path(self._config["database"]["path"])

    # ===== AI =====

    @property
    def ai_provider(self) -> str:
        return self._config["ai"]["provider"]

    @property
    def ai_model(self) -> Optional[str]:
        return self._config["ai"].get("model")

    # ===== SYNC =====

    @property
    def sync_max_results(self) -> int:
        return int(self._config["sync"]["max_results"])

    @property
    def sync_lookback_months(self) -> int:
        return int(self._config["sync"]["lookback_months"])

    @property
    def sync_message_delay(self) -> float:
        """Seconds to wait before fetching each message (upstream rate limits)."""
        return float(self._config["sync"]["message_delay_seconds"])

    @property
    def confidence_threshold(self) -> float:
        return float(self._config["sync"]["confidence_threshold"])

    # ===== CALENDAR =====

    @property
    def calendar_timezone(self) -> str:
        return self._config["calendar"]["timezone"]

    @property
    def calendar_id(self) -> str:
        return self._config["calendar"]["calendar_id"]

    # ===== GOOGLE OAUTH =====

    @property
    def google_client_id(self) -> Optional[str]:
        return self._config["google"].get("client_id")

    @property
    def google_client_secret(self) -> Optional[str]:
        return self._config["google"].get("client_secret")

    @property
    def google_redirect_uri(self) -> str:
        return self._config["google"]["redirect_uri"]

    # ===== LOGGING =====

    @property
    def operation_log_dir(self) -> Optional[Path]:
        value = self._config["logging"].get("operation_log_dir")
        return Path(value) if value else None

    # ===== SECURITY =====

    @property
    def secret_key(self) -> Optional[str]:
        """Signs the OAuth state parameter."""
        return self._config["security"].get("secret_key")


_config: Optional[Config] = None


def get_config(config_path: Optional[Path] = None) -> Config:
    """Get the process-wide configuration, loading it on first use."""
    global _config
    if _config is None or config_path is not None:
        from dotenv import load_dotenv

        load_dotenv()
        _config = Config(config_path=config_path)
    return _config
