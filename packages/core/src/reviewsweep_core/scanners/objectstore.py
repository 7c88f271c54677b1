from __future__ import annotations

import urllib3
from minio import Minio

from reviewsweep_core.scanners.base import NamingRule, ResourceScanner
from reviewsweep_core.scope import CancelScope


class MinioScanner(ResourceScanner):
    """Review buckets: ``mirera-<id>[-suffix]``.

    MinIO has no server-side bucket filter, so everything is listed and the
    rule is applied here. Any ``mirera-`` bucket must carry a numeric id.
    """

    label = "minio"
    rule = NamingRule(pattern=r"^mirera-", index=1)

    def __init__(self, endpoint: str, access: str, secret: str, secure: bool = False, client_factory=Minio):
        self.endpoint = endpoint
        self.access = access
        self.secret = secret
        self.secure = secure
        self._client_factory = client_factory

    def list_names(self, scope: CancelScope) -> list[str]:
        kwargs = {}
        pool = None
        remaining = scope.remaining()
        if remaining is not None:
            timeout = urllib3.Timeout(connect=remaining, read=remaining)
            pool = kwargs["http_client"] = urllib3.PoolManager(timeout=timeout, retries=False)
        try:
            client = self._client_factory(
                self.endpoint,
                access_key=self.access,
                secret_key=self.secret,
                secure=self.secure,
                **kwargs,
            )
            return [bucket.name for bucket in client.list_buckets()]
        finally:
            if pool is not None:
                pool.clear()
