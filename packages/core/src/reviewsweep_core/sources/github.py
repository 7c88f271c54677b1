from __future__ import annotations

from typing import Optional

import requests
from github import Github, GithubException

from reviewsweep_core.exceptions import ActiveSetFetchError
from reviewsweep_core.scope import CancelScope
from reviewsweep_core.sources.base import ActiveSetProvider


def get_repo(repo_name: str, token: str, timeout: Optional[float] = None):
    if timeout is None:
        return Github(token).get_repo(repo_name)
    return Github(token, timeout=timeout).get_repo(repo_name)


def get_pull_requests(repo, state: str = "open"):
    return repo.get_pulls(state=state)


class GitHubActiveSetProvider(ActiveSetProvider):
    """Open pull requests of one GitHub repository."""

    name = "github"

    def __init__(self, repo: str, token: str, repo_obj=None):
        self.repo = repo
        self._token = token
        self._repo_obj = repo_obj

    def fetch(self, scope: Optional[CancelScope] = None) -> frozenset[int]:
        if scope is not None:
            scope.check()
        try:
            repo_obj = self._repo_obj
            if repo_obj is None:
                remaining = scope.remaining() if scope is not None else None
                repo_obj = get_repo(self.repo, token=self._token, timeout=remaining)
            numbers = set()
            # PaginatedList fetches lazily, so the scope is checked between pull requests.
            for pr in get_pull_requests(repo_obj):
                if scope is not None:
                    scope.check()
                numbers.add(pr.number)
            return frozenset(numbers)
        except GithubException as e:
            raise ActiveSetFetchError(
                f"Could not list open pull requests for {self.repo}: {e}",
                context={"source": self.name, "status": e.status},
            ) from e
        except requests.RequestException as e:
            raise ActiveSetFetchError(
                f"Request to GitHub failed ({type(e).__name__}): {e}", context={"source": self.name}
            ) from e
