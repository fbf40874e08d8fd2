"""Read-only access to the engine profile store.

The store is a JSON object keyed by engine name:

    {"local": {"host": "http://localhost", "port": "8983", "core": "main",
               "auth": ["user", "secret"] | null}}

Editing profiles is the job of the interactive config command; this module
only resolves a name to an EngineConnection.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from config.defaults import ENGINES_CONFIG_PATH
from solrkeeper.errors import ConfigNotFound, EngineNotFound
from solrkeeper.models.backup import EngineConnection

logger = logging.getLogger(__name__)

_REQUIRED_KEYS = ("host", "port", "core")


class ProfileStore:
    """Engine profiles loaded from one JSON file.

    Args:
        path: Location of the engines JSON file.
    """

    def __init__(self, path: str | Path = ENGINES_CONFIG_PATH) -> None:
        self.path = Path(path)
        self._profiles: Optional[Dict[str, Any]] = None

    def _load(self) -> Dict[str, Any]:
        if self._profiles is not None:
            return self._profiles

        if not self.path.exists():
            raise ConfigNotFound(f"Solr engines configuration file not found: {self.path}")
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            raise ConfigNotFound(
                f"Solr engines configuration file unreadable: {self.path}: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise ConfigNotFound(
                f"Solr engines configuration must be a JSON object: {self.path}"
            )

        self._profiles = data
        logger.debug("Loaded %d engine profiles from %s", len(data), self.path)
        return data

    def names(self) -> List[str]:
        """Return the configured engine names in file order."""
        return list(self._load().keys())

    def resolve(self, engine: str) -> EngineConnection:
        """Resolve an engine name to its connection.

        Raises:
            ConfigNotFound: If the file is missing, unreadable or malformed,
                or the profile lacks host, port or core.
            EngineNotFound: If the name is not in the file.
        """
        profiles = self._load()
        profile = profiles.get(engine)
        if profile is None:
            raise EngineNotFound(engine, available=list(profiles.keys()))
        if not isinstance(profile, dict):
            raise ConfigNotFound(f"Profile '{engine}' in {self.path} is not an object")

        missing = [key for key in _REQUIRED_KEYS if not profile.get(key)]
        if missing:
            raise ConfigNotFound(
                f"Profile '{engine}' in {self.path} is missing: {', '.join(missing)}"
            )
        return EngineConnection.from_profile(engine, profile)
