"""GitHub API adapter."""

from github_notify.adapters.github.client import GitHubClient

__all__ = ["GitHubClient"]
