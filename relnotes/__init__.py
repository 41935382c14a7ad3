"""relnotes: Linear issues to release-note prompts."""

__version__ = "0.1.0"
