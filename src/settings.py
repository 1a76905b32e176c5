"""Static configuration for teleguard.

All user-editable settings (admins, chats, filters, oracle, analysis pacing,
logging) live in a single JSON file for quick edits without touching Python.
Secrets stay in the environment (.env).
"""

import json
import os

from core.config import AnalysisConfig, ModerationConfig, OracleConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Where to store the SQLite database.
DB_PATH = os.getenv("TELEGUARD_DB", os.path.join(PROJECT_ROOT, "teleguard.db"))

CONFIG_PATH = os.getenv("TELEGUARD_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _int_list(values) -> list[int]:
    return [int(value) for value in values or []]


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Access control: admins may run every command; allowed chats may upload
# exports. An empty allowed_chats list means any chat may upload.
ADMINS = set(_int_list(_CONFIG.get("admins")))
ALLOWED_CHATS = set(_int_list(_CONFIG.get("allowed_chats")))

# Violations are mirrored here when set.
LOG_CHAT_ID = _CONFIG.get("log_chat_id")

# Filter switches are only the startup defaults; the admin panel flips the
# live ModerationConfig afterwards.
_filters = _CONFIG.get("filters", {})
_oracle = _CONFIG.get("oracle", {})

ORACLE_URL = _oracle.get("url", "http://localhost:11434/v1/chat/completions")
ORACLE_TIMEOUT_SECONDS = float(_oracle.get("timeout_seconds", 15))
ORACLE_TEMPERATURE = float(_oracle.get("temperature", 0.1))
ORACLE_MAX_TOKENS = int(_oracle.get("max_tokens", 50))
AVAILABLE_MODELS = list(_oracle.get("available_models", []))
DEFAULT_MODEL = _oracle.get("model") or (AVAILABLE_MODELS[0] if AVAILABLE_MODELS else "")


def build_moderation_config() -> ModerationConfig:
    return ModerationConfig(
        filter_profanity=bool(_filters.get("profanity", True)),
        filter_advertising=bool(_filters.get("advertising", True)),
        use_oracle=bool(_oracle.get("enabled", True)),
        delete_messages=bool(_filters.get("delete_messages", False)),
        current_model=DEFAULT_MODEL,
    )


# Oracle answer shape: "verdict", "confidence" or "auto".
ORACLE_CONFIG = OracleConfig(
    mode=_oracle.get("mode", "auto"),
    confidence_threshold=float(_oracle.get("confidence_threshold", 70)),
)

_analysis = _CONFIG.get("analysis", {})
ANALYSIS_CONFIG = AnalysisConfig(
    progress_interval_seconds=float(_analysis.get("progress_interval_seconds", 1.0)),
    report_max_bytes=int(_analysis.get("report_max_bytes", 4000)),
    warning_delete_seconds=float(_analysis.get("warning_delete_seconds", 10)),
    min_oracle_chars=int(_analysis.get("min_oracle_chars", 4)),
    limit_choices=tuple(_int_list(_analysis.get("limit_choices", [500, 1000, 2000, 5000, 10000]))),
)

# Initial word lists, only applied to empty tables.
SEED_WORDS = _CONFIG.get("seed_words", {})

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
