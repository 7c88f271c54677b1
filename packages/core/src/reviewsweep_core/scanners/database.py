from __future__ import annotations

from pymongo import MongoClient

from reviewsweep_core.scanners.base import NamingRule, ResourceScanner
from reviewsweep_core.scope import CancelScope

_NAME_REGEX = "^mirera-review"


class MongoScanner(ResourceScanner):
    """Review databases: ``mirera-review-<id>[-suffix]``.

    The server narrows the listing with a name regex; the same rule is still
    applied client-side so parsing never depends on the server filter.
    """

    label = "mongo"
    rule = NamingRule(pattern=_NAME_REGEX, index=2)

    def __init__(self, uri: str, client_factory=MongoClient):
        self.uri = uri
        self._client_factory = client_factory

    def list_names(self, scope: CancelScope) -> list[str]:
        kwargs = {}
        remaining = scope.remaining()
        if remaining is not None:
            timeout_ms = max(1, int(remaining * 1000))
            kwargs["serverSelectionTimeoutMS"] = timeout_ms
            kwargs["timeoutMS"] = timeout_ms
        client = self._client_factory(self.uri, **kwargs)
        try:
            cursor = client.list_databases(filter={"name": {"$regex": _NAME_REGEX}}, nameOnly=True)
            return [db["name"] for db in cursor]
        finally:
            client.close()
