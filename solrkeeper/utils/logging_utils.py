"""Logging setup for SolrKeeper.

configure_logging() applies config/logging.yaml once per process; the CLI
calls it before anything else logs. Backup runs log through a
RunContextAdapter so every line of one export carries the run id and the
phase the orchestrator is in:

    ... solrkeeper.pipeline: [backup_local_20240115_120000][PAGINATING] Documents processed: 10000
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional

import yaml

_NAMESPACE = "solrkeeper"
_DEFAULT_CONFIG = Path(__file__).resolve().parent.parent.parent / "config" / "logging.yaml"
_FALLBACK_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def load_logging_config(config_path: Optional[str | Path] = None) -> Optional[Dict[str, Any]]:
    """Read the dictConfig mapping, or None if the YAML file is absent."""
    path = Path(config_path) if config_path else _DEFAULT_CONFIG
    if not path.is_file():
        return None
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def configure_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    config_path: Optional[str | Path] = None,
) -> None:
    """Configure the 'solrkeeper' logger tree.

    Args:
        log_level: Level for the namespaced loggers (e.g. "DEBUG").
        log_file: Also append log lines to this file.
        config_path: dictConfig YAML (default: config/logging.yaml). When it
            does not exist, logging.basicConfig is used instead.
    """
    cfg = load_logging_config(config_path)
    if cfg is None:
        logging.basicConfig(
            level=(log_level or "INFO").upper(),
            format=_FALLBACK_FORMAT,
            filename=log_file,
        )
        return

    loggers = cfg.setdefault("loggers", {})
    if log_file:
        file_handler: Dict[str, Any] = {
            "class": "logging.FileHandler",
            "filename": log_file,
            "encoding": "utf-8",
        }
        formatters = cfg.get("formatters") or {}
        if formatters:
            file_handler["formatter"] = next(iter(formatters))
        cfg.setdefault("handlers", {})["backup_file"] = file_handler
        for logger_cfg in loggers.values():
            logger_cfg.setdefault("handlers", []).append("backup_file")
    if log_level:
        for logger_cfg in loggers.values():
            logger_cfg["level"] = log_level.upper()

    logging.config.dictConfig(cfg)


def get_logger(name: str) -> logging.Logger:
    """Return name's logger, placed under the 'solrkeeper' namespace."""
    if name == _NAMESPACE or name.startswith(f"{_NAMESPACE}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_NAMESPACE}.{name}")


class RunContextAdapter(logging.LoggerAdapter):
    """Tags records with the backup run id and the current run phase.

    The tags are prefixed to the message and also set as record attributes
    (``run_id``, ``phase``) for formatters that want them as fields.
    """

    def set_phase(self, phase: Optional[str]) -> None:
        self.extra["phase"] = phase

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        run_id = self.extra.get("run_id", "-")
        phase = self.extra.get("phase")
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        prefix = f"[{run_id}][{phase}]" if phase else f"[{run_id}]"
        return f"{prefix} {msg}", kwargs


def get_run_logger(name: str, run_id: str) -> RunContextAdapter:
    """Logger adapter for one backup run (run_id: backup_<engine>_<timestamp>)."""
    return RunContextAdapter(get_logger(name), {"run_id": run_id, "phase": None})
