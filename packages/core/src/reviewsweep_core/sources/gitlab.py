"""Open merge requests from the GitLab REST API (v4)."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from reviewsweep_core.exceptions import ActiveSetFetchError
from reviewsweep_core.scope import CancelScope
from reviewsweep_core.sources.base import ActiveSetProvider

logger = logging.getLogger(__name__)

_PER_PAGE = 100
_DEFAULT_TIMEOUT = 30.0


def parse_merge_requests(payload) -> list[int]:
    """Pull the ``iid`` out of every merge request in one page of results."""
    if not isinstance(payload, list):
        raise ActiveSetFetchError(
            f"Expected a JSON array of merge requests, got {type(payload).__name__}",
            context={"source": "gitlab"},
        )
    iids = []
    for mr in payload:
        iid = mr.get("iid") if isinstance(mr, dict) else None
        # bool is an int subclass; a true/false iid is still malformed.
        if not isinstance(iid, int) or isinstance(iid, bool) or iid < 0:
            raise ActiveSetFetchError(f"Merge request without an integer iid: {mr!r}", context={"source": "gitlab"})
        iids.append(iid)
    return iids


class GitLabActiveSetProvider(ActiveSetProvider):
    name = "gitlab"

    def __init__(
        self,
        url: str,
        project: int | str,
        token: str,
        timeout: float = _DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url.rstrip("/")
        self.project = project
        self._client = httpx.Client(
            base_url=self.url,
            headers={"PRIVATE-TOKEN": token},
            timeout=timeout,
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        # Numeric ids and "group/name" paths both work once URL-encoded.
        return f"/api/v4/projects/{quote(str(self.project), safe='')}/merge_requests"

    def fetch(self, scope: Optional[CancelScope] = None) -> frozenset[int]:
        iids: list[int] = []
        page: Optional[str] = "1"
        while page:
            if scope is not None:
                scope.check()
            response = self._get_page(page, scope)
            try:
                payload = response.json()
            except ValueError as e:
                raise ActiveSetFetchError(f"Malformed JSON from {self.url}: {e}", context={"source": self.name}) from e
            iids.extend(parse_merge_requests(payload))
            # GitLab omits X-Next-Page (or leaves it empty) on the last page.
            page = response.headers.get("X-Next-Page") or None

        logger.debug("GitLab project %s: %d open merge request(s)", self.project, len(iids))
        return frozenset(iids)

    def _get_page(self, page: str, scope: Optional[CancelScope]) -> httpx.Response:
        kwargs = {}
        remaining = scope.remaining() if scope is not None else None
        if remaining is not None:
            kwargs["timeout"] = remaining
        try:
            response = self._client.get(
                self.endpoint,
                params={"state": "opened", "per_page": _PER_PAGE, "page": page},
                **kwargs,
            )
        except httpx.HTTPError as e:
            raise ActiveSetFetchError(
                f"Request to {self.url} failed ({type(e).__name__}): {e}", context={"source": self.name}
            ) from e
        if not response.is_success:
            raise ActiveSetFetchError(
                f"GitLab returned status {response.status_code} for {self.endpoint}",
                context={"source": self.name, "status": response.status_code},
            )
        return response

    def close(self) -> None:
        self._client.close()
