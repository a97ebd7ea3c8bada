"""
Owner of the canonical structured prompt document.

Every write follows clone -> validate -> swap: the new document is built
with copy-on-write path updates, validated, and only then replaces the
canonical one. A failed write leaves the previous document untouched, so
readers never observe an invalid prompt.

Errors are returned as result objects, never raised across the update
boundary.
"""

import copy
import json
import logging
import threading
from typing import Callable, Optional

from core.types import ImportResult, UpdateResult, ValidationIssue, ValidationResult
from modules.state.prompt_schema import DEFAULT_PROMPT, is_known_path, validate_prompt
from modules.utils.paths import deep_merge, get_at_path, set_at_path

logger = logging.getLogger(__name__)


class StructuredStateManager:
    """Path-scoped, schema-validated access to the structured prompt."""

    def __init__(self, defaults: Optional[dict] = None):
        self._defaults = copy.deepcopy(defaults or DEFAULT_PROMPT)
        self._document = copy.deepcopy(self._defaults)
        self._lock = threading.Lock()
        self._listeners = []
        # path -> timestamp of the latest applied write (local or remote)
        self._write_times = {}

    def initialize(self, base: Optional[dict] = None) -> ValidationResult:
        """Deep-merge an optional partial document over the defaults.

        An invalid merge falls back to the pure defaults.
        """
        if base is not None and not isinstance(base, dict):
            result = ValidationResult(success=False, errors=[ValidationIssue(
                path="", message=f"Base prompt must be an object, got {type(base).__name__}")])
            merged = None
        else:
            merged = deep_merge(self._defaults, base) if base else copy.deepcopy(self._defaults)
            result = validate_prompt(merged)
        with self._lock:
            if result.success:
                self._document = merged
            else:
                logger.warning("Base prompt invalid (%d issues), using defaults",
                               len(result.errors))
                self._document = copy.deepcopy(self._defaults)
            self._write_times.clear()
        self._notify(None)
        return result

    def update(self, path: str, value, timestamp: Optional[float] = None) -> UpdateResult:
        """Set a single path, committing only if the result is valid."""
        if not is_known_path(path):
            logger.debug("Rejected update to unknown path '%s'", path)
            return UpdateResult(
                success=False,
                error=f"Unknown parameter path: {path}",
                errors=[ValidationIssue(path=str(path), message="Unknown parameter path")],
            )

        with self._lock:
            current = self._document
            previous = copy.deepcopy(get_at_path(current, path))
            try:
                candidate = set_at_path(current, path, value)
            except (KeyError, IndexError) as e:
                return UpdateResult(
                    success=False,
                    previous_value=previous,
                    error=str(e),
                    errors=[ValidationIssue(path=path, message=str(e))],
                )

            result = validate_prompt(candidate)
            if not result.success:
                logger.debug("Update to '%s' failed validation: %s", path, result.errors)
                return UpdateResult(
                    success=False,
                    previous_value=previous,
                    error=_summarize(result.errors),
                    errors=list(result.errors),
                )

            self._document = candidate
            if timestamp is not None:
                self._write_times[path] = timestamp

        logger.debug("Committed %s = %r", path, value)
        self._notify(path)
        return UpdateResult(success=True, previous_value=previous)

    def apply_patch(self, patch: dict) -> UpdateResult:
        """Apply a collaborator's {path, value, timestamp, user_id} patch.

        Last write wins per path: a patch older than (or as old as) the
        latest write recorded for its path is ignored.
        """
        path = patch.get("path")
        timestamp = patch.get("timestamp")
        last = self._write_times.get(path)
        if timestamp is not None and last is not None and timestamp <= last:
            logger.debug("Ignored stale patch for '%s' from %s", path, patch.get("user_id"))
            return UpdateResult(success=False, error="Stale patch ignored")
        return self.update(path, patch.get("value"), timestamp=timestamp)

    def validate(self) -> ValidationResult:
        return validate_prompt(self._document)

    def import_json(self, text: str) -> ImportResult:
        """Replace the whole document from JSON text."""
        try:
            candidate = json.loads(text)
        except (TypeError, ValueError) as e:
            logger.warning("Prompt import rejected: %s", e)
            return ImportResult(success=False, error=f"JSON parse error: {e}")

        result = validate_prompt(candidate)
        if not result.success:
            logger.warning("Prompt import failed validation (%d issues)", len(result.errors))
            return ImportResult(
                success=False,
                error=_summarize(result.errors),
                errors=list(result.errors),
            )

        with self._lock:
            self._document = candidate
            self._write_times.clear()
        logger.info("Imported structured prompt")
        self._notify(None)
        return ImportResult(success=True)

    def export_json(self) -> str:
        return json.dumps(self._document, indent=2)

    def reset(self):
        """Restore the default document."""
        with self._lock:
            self._document = copy.deepcopy(self._defaults)
            self._write_times.clear()
        self._notify(None)

    def get_prompt(self) -> dict:
        """Snapshot of the current document."""
        return copy.deepcopy(self._document)

    def get(self, path: str, default=None):
        return copy.deepcopy(get_at_path(self._document, path, default))

    def subscribe(self, callback: Callable):
        """Register callback(path, document) fired after each commit.

        path is None for whole-document changes.
        """
        self._listeners.append(callback)

    def _notify(self, path):
        if not self._listeners:
            return
        snapshot = self.get_prompt()
        for callback in list(self._listeners):
            try:
                callback(path, snapshot)
            except Exception as e:
                logger.error("State listener error [%s]: %s",
                             getattr(callback, "__name__", callback), e)


def _summarize(errors) -> str:
    return "; ".join(f"{e.path or '<root>'}: {e.message}" for e in errors)
