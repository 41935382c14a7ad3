from __future__ import annotations

from typing import Any, Dict, Optional
import logging
import os
import time

from relnotes.cache import TTLCache, cache_key
from relnotes.resources.release_notes.aggregator import IssueAggregator
from relnotes.resources.release_notes.categorizer import categorize
from relnotes.resources.release_notes.context_store import ContextStore, InMemoryContextStore
from relnotes.resources.release_notes.errors import EmptyResultError, RequestValidationError
from relnotes.resources.release_notes.linear_client import IssueSource, LinearClient, LinearConfig
from relnotes.resources.release_notes.models import GenerationRequest
from relnotes.resources.release_notes.prompts import build_prompt
from relnotes.resources.release_notes.validator import validate

logger = logging.getLogger(__name__)

DEFAULT_PROJECTS_CACHE_TTL_S = 600.0


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}; using {default}")
        return default


class ReleaseNotesService:
    """
    validate -> aggregate -> categorize -> build prompt.

    Hands back the prompt pair for a text generator; does not call one and
    does not persist anything.
    """

    def __init__(
        self,
        *,
        source: Optional[IssueSource] = None,
        context_store: Optional[ContextStore] = None,
        projects_cache: Optional[TTLCache] = None,
        page_size: Optional[int] = None,
        max_pages: Optional[int] = None,
    ):
        if source is None:
            source = LinearClient(LinearConfig.from_env())
        self._source = source
        self._context_store = context_store if context_store is not None else InMemoryContextStore.from_env()
        if projects_cache is None:
            ttl = _env_int("PROJECTS_CACHE_TTL_S", int(DEFAULT_PROJECTS_CACHE_TTL_S))
            projects_cache = TTLCache(ttl_s=max(ttl, 1))
        self._projects_cache = projects_cache
        self._aggregator = IssueAggregator(
            source,
            page_size=page_size or _env_int("LINEAR_PAGE_SIZE", 100),
            max_pages=max_pages or _env_int("LINEAR_MAX_PAGES", 50),
        )

    def prepare(self, request: GenerationRequest, *, user_id: Optional[str] = None) -> Dict[str, Any]:
        validation = validate(request)
        if not validation.is_valid:
            raise RequestValidationError(list(validation.errors))

        result = self._aggregator.aggregate(request)
        if not result.issues:
            raise EmptyResultError(
                details="Please adjust your team selection, date range, or issue filters to include completed issues."
            )

        context = self._context_store.get_complete_context(user_id)
        ai_context = context.ai_context

        sections = categorize(result.issues)

        if request.include_identifiers is not None:
            include_identifiers = request.include_identifiers
        else:
            # Technical readers get identifiers for traceability; everyone else gets them redacted.
            include_identifiers = bool(ai_context and ai_context.is_technical)

        logger.info(
            f"Release notes context: teams={len(request.teams)} projects={len(request.projects)} "
            f"issues={result.total_issues} pages={result.pages_fetched} "
            f"template={'yes' if request.template else 'no'} instructions={'yes' if request.instructions else 'no'} "
            f"identifiers={include_identifiers} unclassified={sections.unclassified_count}"
        )

        prompt = build_prompt(
            sections,
            organization=context.organization,
            ai_context=ai_context,
            version=request.version,
            release_date=request.release_date,
            instructions=request.instructions,
            template=request.template,
            date_range=request.date_range,
            teams=request.teams,
            projects=request.projects,
            include_identifiers=include_identifiers,
        )

        return {
            "system_prompt": prompt.system_prompt,
            "user_prompt": prompt.user_prompt,
            "include_identifiers": include_identifiers,
            "stats": {
                "teams": list(request.teams),
                "total_issues": result.total_issues,
                "fetched_issues": result.fetched_count,
                "pages_fetched": result.pages_fetched,
                "date_range": request.date_range.to_dict(),
                "sections": sections.counts(),
                "unclassified": sections.unclassified_count,
            },
            "issues": [i.to_dict() for i in result.issues],
            "unclassified_issues": [i.identifier or i.id for i in sections.unclassified],
        }

    def list_projects(self, *, scope: str, first: int = 50, refresh: bool = False) -> Dict[str, Any]:
        """Project list for a caller scope, cached per (scope, first)."""
        fetch_projects = getattr(self._source, "fetch_projects", None)
        if fetch_projects is None:
            raise NotImplementedError("Issue source does not expose projects")

        key = cache_key(scope, first=first)
        if refresh:
            self._projects_cache.invalidate(key)

        def _load() -> Dict[str, Any]:
            logger.info(f"Fetching Linear projects for scope {scope}")
            page = fetch_projects(first=first)
            return {
                "projects": list(page.get("nodes") or []),
                "pagination": page.get("pageInfo") or {},
                "last_updated": int(time.time() * 1000),
            }

        return self._projects_cache.get_or_set(key, _load)
