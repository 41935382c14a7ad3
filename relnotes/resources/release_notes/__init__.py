"""Release notes: Linear issues → filtered, categorized issues → system/user prompt pair."""

from relnotes.resources.release_notes.aggregator import IssueAggregator
from relnotes.resources.release_notes.categorizer import categorize
from relnotes.resources.release_notes.prompts import build_prompt
from relnotes.resources.release_notes.service import ReleaseNotesService
from relnotes.resources.release_notes.validator import validate

__all__ = ["IssueAggregator", "categorize", "build_prompt", "ReleaseNotesService", "validate"]
