"""Logging setup for the institute console and its background jobs.

Log templates are written in English. Modules may register translations for
their templates with :func:`register_log_translations`; a filter on every
handler swaps the template before interpolation, so operators can read logs
in Hindi while the code keeps a single set of messages.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Mapping

from rich.console import Console
from rich.logging import RichHandler

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
_CONSOLE_FORMAT = "%(name)s | %(message)s"

_FALLBACK_LANGUAGE = "en"
_active_language = _FALLBACK_LANGUAGE
# template -> {language: translated template}
_translations: dict[str, dict[str, str]] = {}
_languages: set[str] = {_FALLBACK_LANGUAGE, "hi"}

# Third-party loggers and the env var that overrides each default level.
_LIBRARY_LEVELS: dict[str, tuple[str, str]] = {
    "aiosqlite": ("SQL_LOG_LEVEL", "INFO"),
    "sqlalchemy.engine": ("SQLALCHEMY_LOG_LEVEL", "WARNING"),
    "aiohttp.client": ("AIOHTTP_CLIENT_LOG_LEVEL", "WARNING"),
    "asyncio": ("ASYNCIO_LOG_LEVEL", "WARNING"),
}


class _TranslatingFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            translated = _translations.get(record.msg, {}).get(_active_language)
            if translated:
                record.msg = translated
        return True


def _as_level(value: str | int | None, default: int) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    name = value.strip().upper()
    if name.isdigit():
        return int(name)
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def set_log_language(language: str | None) -> None:
    """Switch translations on for ``language``; unknown values fall back to English."""

    global _active_language
    candidate = (language or "").strip().lower()
    _active_language = candidate if candidate in _languages else _FALLBACK_LANGUAGE


def get_log_language() -> str:
    return _active_language


def register_log_translations(translations: Mapping[str, Mapping[str, str]]) -> None:
    """Add translated variants of English log templates.

    ``%s`` placeholders must appear in the translation in the same order as
    in the English template.
    """

    for template, variants in translations.items():
        bucket = _translations.setdefault(template, {})
        for language, text in variants.items():
            code = language.strip().lower()
            if code:
                bucket[code] = text
                _languages.add(code)


def available_log_languages() -> tuple[str, ...]:
    return tuple(sorted(_languages))


def get_default_log_language() -> str:
    return _FALLBACK_LANGUAGE


def _console_handler(rich_output: bool) -> logging.Handler:
    if not rich_output:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FILE_FORMAT, _TIME_FORMAT))
        return handler
    handler = RichHandler(
        console=Console(stderr=True, soft_wrap=False),
        markup=False,
        rich_tracebacks=True,
        show_path=False,
        log_time_format=_TIME_FORMAT,
    )
    handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    return handler


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, _TIME_FORMAT))
    return handler


def setup_logging(
    *,
    level: str | int | None = None,
    module_levels: Mapping[str, str | int] | None = None,
    noisy_modules: Iterable[str] | None = None,
    language: str | None = None,
    rich_output: bool = True,
    log_file: str | Path | None = None,
) -> None:
    """Install console (and optionally file) handlers on the root logger.

    ``level`` defaults to ``LOG_LEVEL`` and then ``INFO``; ``log_file``
    defaults to ``LOG_FILE``. Library loggers listed in ``_LIBRARY_LEVELS``
    are quietened unless ``module_levels`` says otherwise, and each name in
    ``noisy_modules`` is capped at ``INFO``.
    """

    set_log_language(language or os.getenv("LOG_LANGUAGE"))

    handlers = [_console_handler(rich_output)]
    file_path = log_file or os.getenv("LOG_FILE")
    if file_path:
        handlers.append(_file_handler(Path(file_path)))

    translating = _TranslatingFilter()
    for handler in handlers:
        handler.addFilter(translating)

    logging.basicConfig(
        level=_as_level(level or os.getenv("LOG_LEVEL"), logging.INFO),
        handlers=handlers,
        force=True,
    )
    logging.captureWarnings(True)

    levels: dict[str, str | int] = {
        name: os.getenv(env_name, default) for name, (env_name, default) in _LIBRARY_LEVELS.items()
    }
    for name in noisy_modules or ():
        levels.setdefault(name, "INFO")
    levels.update(module_levels or {})
    for name, value in levels.items():
        logging.getLogger(name).setLevel(_as_level(value, logging.INFO))


def get_logger(name: str | None = None, **context: object) -> logging.Logger:
    """Return a logger under ``institute``; keyword context is attached to every record."""

    logger = logging.getLogger(name or "institute")
    if not context:
        return logger
    return logging.LoggerAdapter(logger, context)  # type: ignore[return-value]


__all__ = [
    "setup_logging",
    "set_log_language",
    "get_log_language",
    "register_log_translations",
    "available_log_languages",
    "get_default_log_language",
    "get_logger",
]
