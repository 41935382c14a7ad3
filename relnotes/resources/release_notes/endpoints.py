"""
Release notes resource endpoints: prompt generation from Linear issues and project listing.
"""
from __future__ import annotations

import logging
from typing import Optional

from flask import Blueprint, current_app, jsonify, request

from relnotes.resources.release_notes.errors import (
    AggregationAbortedError,
    EmptyResultError,
    RateLimitError,
    ReleaseNotesError,
    RequestValidationError,
    SourceFetchError,
)
from relnotes.resources.release_notes.linear_client import LinearClient, LinearConfig
from relnotes.resources.release_notes.models import GenerationRequest
from relnotes.resources.release_notes.service import ReleaseNotesService
from relnotes.resources.release_notes.validator import VALIDATION_SUGGESTIONS
from relnotes.utils import sanitize_error_message

release_notes_bp = Blueprint(
    "release_notes_bp",
    __name__,
    url_prefix="/mcp/tools",
)

logger = logging.getLogger(__name__)


def _get_service(linear_api_key: Optional[str] = None) -> ReleaseNotesService:
    """Service configured on the app (tests, embedding), else one built from env."""
    service = current_app.config.get("RELEASE_NOTES_SERVICE")
    if service is not None:
        return service

    source = None
    if linear_api_key:
        base = LinearConfig(api_key=linear_api_key)
        try:
            env_config = LinearConfig.from_env()
            base = LinearConfig(api_key=linear_api_key, api_url=env_config.api_url, state_type=env_config.state_type)
        except SourceFetchError:
            pass
        source = LinearClient(base)

    return ReleaseNotesService(
        source=source,
        context_store=current_app.config.get("CONTEXT_STORE"),
        projects_cache=current_app.config.get("PROJECTS_CACHE"),
    )


def _str_field(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _rate_limited_response(e: RateLimitError):
    retry_after = int(e.retry_after) if e.retry_after is not None else None
    resp = jsonify({
        "error": "Rate limited by Linear",
        "message": f"Too many requests. Try again in {retry_after or 'a few'} seconds.",
        "retry_after": retry_after,
    })
    resp.status_code = 429
    if retry_after is not None:
        resp.headers["Retry-After"] = str(retry_after)
    return resp


@release_notes_bp.route("/generate_release_notes_prompt", methods=["POST"])
def generate_release_notes_prompt():
    """
    Build the system/user prompt pair for release notes from Linear issues.

    Request JSON:
      - teams (list[str], required): Linear team ids
      - projects (list[str], optional): restrict to these project ids
      - dateRange ({from, to}, optional): completion window (ISO dates)
      - issueFilters ({labels, minPriority, stateTypes}, optional)
      - selectedIssues (list[str], optional): identifiers or ids to keep
      - template (str | object, optional): layout hint or structured template
      - instructions, version, releaseDate (str, optional)
      - includeIdentifiers (bool, optional): override identifier redaction
      - user_id (str, optional): whose organization/AI context to use
      - linear_api_key (str, optional): override LINEAR_API_KEY

    Returns:
      - system_prompt, user_prompt, stats; or error with status 4xx/5xx.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400

    gen_request = GenerationRequest.from_payload(data)
    user_id = _str_field(data.get("user_id")) or _str_field(request.headers.get("X-User-Id"))
    linear_api_key = _str_field(data.get("linear_api_key"))

    try:
        service = _get_service(linear_api_key)
        result = service.prepare(gen_request, user_id=user_id)
    except RequestValidationError as e:
        return jsonify({
            "error": "Invalid input parameters",
            "details": "; ".join(e.errors),
            "errors": e.errors,
            "suggestions": VALIDATION_SUGGESTIONS,
        }), 400
    except EmptyResultError as e:
        return jsonify({
            "error": str(e),
            "details": e.details,
            "suggestions": e.suggestions,
        }), 400
    except RateLimitError as e:
        logger.warning("Linear rate limit while aggregating issues: %s", e)
        return _rate_limited_response(e)
    except AggregationAbortedError as e:
        logger.warning("Issue aggregation aborted: %s", e)
        return jsonify({"error": "Issue retrieval timed out", "details": sanitize_error_message(str(e))}), 504
    except SourceFetchError as e:
        logger.warning("Issue aggregation failed: %s", e)
        status = 401 if e.status in (401, 403) else 502
        return jsonify({"error": "Failed to fetch issues", "details": sanitize_error_message(str(e))}), status
    except ReleaseNotesError as e:
        logger.error("Release notes prompt failed: %s", e)
        return jsonify({"error": "Internal server error", "details": sanitize_error_message(str(e))}), 500

    return jsonify({"success": True, **result})


@release_notes_bp.route("/linear_projects", methods=["GET"])
def linear_projects():
    """
    List Linear projects (cached per caller for PROJECTS_CACHE_TTL_S seconds).

    Query params:
      - first (int, default 50)
      - refresh ("1" bypasses the cache)
    """
    try:
        first = int(request.args.get("first", "50"))
    except ValueError:
        return jsonify({"error": "first must be an integer"}), 400
    if first < 1 or first > 250:
        return jsonify({"error": "first must be between 1 and 250"}), 400

    refresh = request.args.get("refresh") == "1"
    scope = (request.headers.get("X-User-Id") or "").strip() or "default"

    try:
        service = _get_service()
        data = service.list_projects(scope=scope, first=first, refresh=refresh)
    except RateLimitError as e:
        return _rate_limited_response(e)
    except SourceFetchError as e:
        logger.warning("Fetching Linear projects failed: %s", e)
        return jsonify({"error": "Failed to fetch projects", "details": sanitize_error_message(str(e))}), 502
    except NotImplementedError as e:
        return jsonify({"error": str(e)}), 501

    return jsonify(data)


def get_manifest():
    """Return the release notes tools manifest for the combined MCP manifest."""
    return {
        "name": "Release Notes Tools",
        "description": "Tools for turning Linear issues into release-note prompts.",
        "tools": [
            {
                "name": "generate_release_notes_prompt",
                "description": "Fetch, filter and categorize Linear issues and build the system/user prompt for release notes.",
                "path": "/mcp/tools/generate_release_notes_prompt",
                "method": "POST",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "teams": {"type": "array", "items": {"type": "string"}, "description": "Linear team ids (required)"},
                        "projects": {"type": "array", "items": {"type": "string"}, "description": "Optional project ids"},
                        "dateRange": {
                            "type": "object",
                            "properties": {"from": {"type": "string"}, "to": {"type": "string"}},
                            "description": "Optional completion window (ISO dates)",
                        },
                        "issueFilters": {
                            "type": "object",
                            "properties": {
                                "labels": {"type": "array", "items": {"type": "string"}},
                                "minPriority": {"type": "integer", "minimum": 0, "maximum": 5},
                                "stateTypes": {"type": "array", "items": {"type": "string"}},
                            },
                        },
                        "selectedIssues": {"type": "array", "items": {"type": "string"}},
                        "template": {"description": "Layout hint (string) or structured template (object with name)"},
                        "instructions": {"type": "string", "description": "Extra guidance (max 1000 chars)"},
                        "version": {"type": "string", "description": "Release version (max 100 chars)"},
                        "releaseDate": {"type": "string"},
                        "includeIdentifiers": {"type": "boolean"},
                        "user_id": {"type": "string"},
                    },
                    "required": ["teams"],
                },
            },
            {
                "name": "linear_projects",
                "description": "List Linear projects available to the configured API key.",
                "path": "/mcp/tools/linear_projects",
                "method": "GET",
            },
        ],
    }
