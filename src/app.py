"""Application entry point for the teleguard moderation bot."""

from __future__ import annotations

import argparse
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.oracle_transport import HttpOracleTransport
from adapters.report_formatting import HtmlReportFormatter
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_reporter import ChatBatchReporter
from adapters.telegram_transport import TelethonTransport
from adapters.word_import import extract_words, import_words, words_from_env
from bot.handlers import register_handlers
from bot.service import BotConfig, BotService
from client import bot_token, build_client
from core.classifier import SequentialClassifier
from core.controller import BatchAnalysisController
from core.detector import ViolationDetector
from core.filters import RuleFilterSet
from core.live import LiveModerator
from core.oracle import OracleGateway
from core.scheduling import OneShotScheduler
from core.topics import TopicRegistry

NAME = "TELEGUARD"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    # The bot token travels inside Telegram API URLs, so it must never reach a log line.
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/teleguard.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)
    # httpx logs every oracle request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _open_storage() -> SQLiteStorage:
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    return storage


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting teleguard")

    storage = _open_storage()
    for category, words in settings.SEED_WORDS.items():
        seeded = storage.seed_words(category, words)
        if seeded:
            logger.info("Seeded %s %s words", seeded, category)

    filters = RuleFilterSet(storage.all_words())
    registry = TopicRegistry(storage)
    registry.load()
    moderation = settings.build_moderation_config()
    analysis = settings.ANALYSIS_CONFIG
    logger.info(
        "Oracle %s, model %s, %s topics",
        "on" if moderation.use_oracle else "off",
        moderation.current_model or "-",
        len(registry),
    )

    client = build_client()
    transport = TelethonTransport(client)
    oracle_transport = HttpOracleTransport(
        settings.ORACLE_URL,
        timeout_seconds=settings.ORACLE_TIMEOUT_SECONDS,
        temperature=settings.ORACLE_TEMPERATURE,
        max_tokens=settings.ORACLE_MAX_TOKENS,
        api_key=os.getenv("ORACLE_API_KEY"),
    )
    classifier = SequentialClassifier(registry, OracleGateway(oracle_transport, moderation, settings.ORACLE_CONFIG))
    detector = ViolationDetector(classifier, filters, moderation, analysis.min_oracle_chars)
    controller = BatchAnalysisController(
        detector,
        ChatBatchReporter(transport),
        HtmlReportFormatter(),
        analysis,
    )
    scheduler = OneShotScheduler()
    live = LiveModerator(
        detector,
        transport,
        storage,
        moderation,
        scheduler,
        log_chat_id=settings.LOG_CHAT_ID,
        warning_delete_seconds=analysis.warning_delete_seconds,
    )
    service = BotService(
        transport,
        controller,
        registry,
        filters,
        storage,
        storage,
        classifier,
        detector,
        live,
        moderation,
        BotConfig(
            admins=frozenset(settings.ADMINS),
            allowed_chats=frozenset(settings.ALLOWED_CHATS),
            available_models=tuple(settings.AVAILABLE_MODELS),
            limit_choices=analysis.limit_choices,
        ),
    )
    register_handlers(client, service)

    client.start(bot_token=bot_token())
    logger.info("Bot connected. Listening for messages...")
    try:
        client.run_until_disconnected()
    finally:
        scheduler.cancel_all()
        client.loop.run_until_complete(oracle_transport.aclose())
        logger.info("Bot stopped")


def _setup() -> None:
    _print_banner()
    from frontend.app import ModerationPanelApp

    ModerationPanelApp(_open_storage(), settings.DB_PATH).run()


def _import_words(word_file: Optional[str], category: str) -> None:
    _print_banner()
    load_dotenv()
    storage = _open_storage()

    batches = words_from_env(os.environ)
    if word_file:
        with open(word_file, "r", encoding="utf-8") as handle:
            batches.setdefault(category, []).extend(extract_words(handle.read()))

    added = import_words(storage, batches)
    for name, words in storage.all_words().items():
        print(f"{name}: {len(words)} words (+{added.get(name, 0)})")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="teleguard")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the moderation bot")
    subparsers.add_parser("config", help="Launch the moderation panel TUI")
    import_parser = subparsers.add_parser(
        "import-words",
        help="Load word lists from PROFANITY_WORDS/AD_KEYWORDS and an optional file.",
    )
    import_parser.add_argument("--file", dest="word_file", help="Text file to pull words from")
    import_parser.add_argument(
        "--category",
        default="profanity",
        choices=["profanity", "advertising", "custom"],
        help="Category for words read from --file",
    )

    args = parser.parse_args(argv)
    if args.command == "config":
        _setup()
        return
    if args.command == "import-words":
        _import_words(args.word_file, args.category)
        return
    _run()


if __name__ == "__main__":
    main()
