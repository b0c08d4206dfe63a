"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), runs the matching
cache operation and reports the outcome through the UserInterface. Every
handler returns True on success so the entry point can pick an exit code.
"""

import json
import logging
from typing import Any

from kvcache.domain.interfaces.cache import Cache
from kvcache.domain.interfaces.user_interface import UserInterface
from kvcache.domain.models.common import MISS

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to the cache backend."""

    def __init__(self, cache: Cache, ui: UserInterface):
        """Initializes the CommandHandler with a cache backend and a UI."""
        self.cache = cache
        self.ui = ui

    def _parse_value(self, raw_value: str, as_json: bool) -> Any:
        """Returns the value to store; raises ValueError on malformed JSON."""
        if not as_json:
            return raw_value
        return json.loads(raw_value)

    def handle_key(self, key: str) -> bool:
        """Handles the 'key' command: prints the normalized key."""
        self.ui.display_output(self.cache.build_key(key))
        return True

    def handle_get(self, key: str) -> bool:
        """Handles the 'get' command."""
        logger.info(f"Handling 'get' for key: {key}")
        value = self.cache.get(key)
        if value is MISS:
            self.ui.display_warning(f"Cache miss: {key}")
            return False
        self.ui.display_value(value)
        return True

    def handle_set(self, key: str, raw_value: str, ttl: int = 0, as_json: bool = False) -> bool:
        """Handles the 'set' command."""
        logger.info(f"Handling 'set' for key: {key} (ttl={ttl})")
        try:
            value = self._parse_value(raw_value, as_json)
        except ValueError as e:
            self.ui.display_error(f"Value is not valid JSON: {e}")
            return False
        if not self.cache.set(key, value, ttl):
            self.ui.display_error(f"Failed to store key '{key}'.")
            return False
        self.ui.display_info(f"Stored '{key}'.")
        return True

    def handle_add(self, key: str, raw_value: str, ttl: int = 0, as_json: bool = False) -> bool:
        """Handles the 'add' command. Fails if the key already holds a live entry."""
        logger.info(f"Handling 'add' for key: {key} (ttl={ttl})")
        try:
            value = self._parse_value(raw_value, as_json)
        except ValueError as e:
            self.ui.display_error(f"Value is not valid JSON: {e}")
            return False
        if not self.cache.add(key, value, ttl):
            self.ui.display_error(f"Key '{key}' was not added (already present or not writable).")
            return False
        self.ui.display_info(f"Added '{key}'.")
        return True

    def handle_exists(self, key: str) -> bool:
        """Handles the 'exists' command."""
        found = self.cache.exists(key)
        self.ui.display_output("yes" if found else "no")
        return found

    def handle_delete(self, key: str) -> bool:
        """Handles the 'delete' command."""
        logger.info(f"Handling 'delete' for key: {key}")
        if not self.cache.delete(key):
            self.ui.display_warning(f"Nothing deleted for key '{key}'.")
            return False
        self.ui.display_info(f"Deleted '{key}'.")
        return True

    def handle_flush(self) -> bool:
        """Handles the 'flush' command."""
        logger.info("Handling 'flush'")
        if not self.cache.flush():
            self.ui.display_error("Cache flush did not complete; some entries may remain.")
            return False
        self.ui.display_info("Cache flushed.")
        return True

    def handle_gc(self, expired_only: bool = True) -> bool:
        """Handles the 'gc' command for backends that support collection."""
        gc = getattr(self.cache, "gc", None)
        if gc is None:
            self.ui.display_error(f"{type(self.cache).__name__} does not support garbage collection.")
            return False
        removed = gc(expired_only=expired_only)
        self.ui.display_info(f"Removed {removed} cache files.")
        return True
