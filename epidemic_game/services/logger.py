from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


@dataclass(slots=True)
class LoggerBundle:
    app: logging.Logger
    turns: logging.Logger
    latest_log_path: Path


def _rotate_latest_log(logs_dir: Path, keep_archives: int = 5) -> Path:
    logs_dir.mkdir(parents=True, exist_ok=True)
    latest = logs_dir / "latest.log"
    if latest.exists():
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        archived = logs_dir / f"latest_{stamp}.log"
        latest.replace(archived)

    archives = sorted(
        [path for path in logs_dir.glob("latest_*.log") if path.is_file()],
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )
    for stale in archives[keep_archives:]:
        stale.unlink(missing_ok=True)
    return latest


def configure_logging(logs_dir: Path, level: int = logging.INFO) -> LoggerBundle:
    latest = _rotate_latest_log(logs_dir)
    turns_log_path = logs_dir / "turns.log"

    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    app_logger = logging.getLogger("epidemic_game")
    app_logger.setLevel(level)
    app_logger.handlers.clear()
    app_logger.propagate = False

    file_handler = logging.FileHandler(latest, mode="w", encoding="utf-8")
    file_handler.setFormatter(formatter)
    app_logger.addHandler(file_handler)

    turns_logger = logging.getLogger("epidemic_game.turns")
    turns_logger.setLevel(logging.INFO)
    turns_logger.handlers.clear()
    turns_logger.propagate = False

    turns_handler = logging.FileHandler(turns_log_path, mode="w", encoding="utf-8")
    turns_handler.setFormatter(logging.Formatter("%(asctime)s %(message)s"))
    turns_logger.addHandler(turns_handler)

    return LoggerBundle(app=app_logger, turns=turns_logger, latest_log_path=latest)
