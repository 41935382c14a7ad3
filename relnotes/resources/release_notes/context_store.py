from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional, Protocol

from relnotes.resources.release_notes.errors import ReleaseNotesError
from relnotes.resources.release_notes.models import (
    AIBehaviorContext,
    CompleteContext,
    OrganizationProfile,
)
from relnotes.resources.release_notes.validator import validate_ai_context

logger = logging.getLogger(__name__)


class ContextStore(Protocol):
    """Source of organization profile and AI behavior settings for a user."""

    def get_complete_context(self, user_id: Optional[str]) -> CompleteContext:
        ...


def _context_from_dict(data: Dict[str, Any]) -> CompleteContext:
    raw_ai_context = data.get("ai_context")
    if isinstance(raw_ai_context, dict):
        result = validate_ai_context(raw_ai_context)
        if not result.is_valid:
            raise ReleaseNotesError("Invalid AI context: " + "; ".join(result.errors))

    organization = OrganizationProfile.from_dict(data.get("organization"))
    ai_context = AIBehaviorContext.from_dict(raw_ai_context)
    # An organization without saved AI settings gets the defaults.
    if organization is not None and ai_context is None:
        ai_context = AIBehaviorContext()
    return CompleteContext(organization=organization, ai_context=ai_context)


class InMemoryContextStore:
    """
    Dict-backed ContextStore.

    `contexts` maps user id to CompleteContext; `default` answers for unknown
    or anonymous users.
    """

    def __init__(self, contexts: Optional[Dict[str, CompleteContext]] = None,
                 *, default: Optional[CompleteContext] = None):
        self._contexts = dict(contexts or {})
        self._default = default or CompleteContext()

    def get_complete_context(self, user_id: Optional[str]) -> CompleteContext:
        if user_id and user_id in self._contexts:
            return self._contexts[user_id]
        return self._default

    @staticmethod
    def from_json_file(path: str) -> "InMemoryContextStore":
        """
        Load contexts from JSON.

        Accepts either {"organization": ..., "ai_context": ...} (one context for
        everyone) or {"users": {"<user_id>": {...}}, "default": {...}}.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ReleaseNotesError(f"Failed to load context file {path}: {e}")

        if not isinstance(data, dict):
            raise ReleaseNotesError(f"Context file {path} must contain a JSON object")

        if "users" in data:
            users = data.get("users") or {}
            contexts = {str(uid): _context_from_dict(entry or {}) for uid, entry in users.items()}
            default = _context_from_dict(data.get("default") or {})
            logger.info(f"Loaded AI context for {len(contexts)} user(s) from {path}")
            return InMemoryContextStore(contexts, default=default)

        logger.info(f"Loaded shared AI context from {path}")
        return InMemoryContextStore(default=_context_from_dict(data))

    @staticmethod
    def from_env() -> "InMemoryContextStore":
        path = (os.environ.get("RELNOTES_CONTEXT_FILE") or "").strip()
        if not path:
            logger.info("RELNOTES_CONTEXT_FILE not set; prompts will use default AI context")
            return InMemoryContextStore()
        return InMemoryContextStore.from_json_file(path)
