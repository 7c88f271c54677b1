"""Core sweep orchestration."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from reviewsweep_core.aggregator import DanglingItem, aggregate
from reviewsweep_core.config import ClusterConfig
from reviewsweep_core.scanners.base import ResourceScanner
from reviewsweep_core.scope import CancelScope
from reviewsweep_core.sources.base import ActiveSetProvider

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    """Result of one complete, successful sweep.

    Only built when every scanner finished; a failed run raises instead of
    returning a partial report.
    """

    source: str
    active: frozenset[int]
    backends: list[str]
    dangling: list[DanglingItem] = field(default_factory=list)
    elapsed: float = 0.0
    started_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def by_backend(self) -> dict[str, list[int]]:
        grouped: dict[str, list[int]] = {backend: [] for backend in self.backends}
        for item in self.dangling:
            grouped.setdefault(item.backend, []).append(item.review_id)
        return grouped

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "started_at": self.started_at,
            "elapsed": round(self.elapsed, 3),
            "active": sorted(self.active),
            "dangling": self.by_backend(),
        }


def build_provider(config: dict) -> ActiveSetProvider:
    source = config["source"]
    if source == "gitlab":
        from reviewsweep_core.sources.gitlab import GitLabActiveSetProvider

        gitlab = config["gitlab"]
        return GitLabActiveSetProvider(url=gitlab["url"], project=gitlab["project"], token=gitlab["token"])
    if source == "github":
        from reviewsweep_core.sources.github import GitHubActiveSetProvider

        github = config["github"]
        return GitHubActiveSetProvider(repo=github["repo"], token=github["token"])
    raise ValueError(f"Unknown source: {source!r}. Choose 'gitlab' or 'github'.")


def build_scanners(config: dict) -> list[ResourceScanner]:
    """One scanner per enabled backend, in config order.

    SDK imports stay inside the branches so a run limited to one backend
    never loads the other clients.
    """
    scanners: list[ResourceScanner] = []
    for backend in config["backends"]:
        if backend == "cluster":
            from reviewsweep_core.scanners.cluster import KubernetesScanner

            cluster = ClusterConfig.from_env(config.get("kubeconfig"), config.get("kube_context"))
            scanners.append(KubernetesScanner(cluster))
        elif backend == "database":
            from reviewsweep_core.scanners.database import MongoScanner

            scanners.append(MongoScanner(uri=config["mongo"]))
        elif backend == "object-store":
            from reviewsweep_core.scanners.objectstore import MinioScanner

            minio = config["minio"]
            scanners.append(
                MinioScanner(
                    endpoint=minio["endpoint"],
                    access=minio["access"],
                    secret=minio["secret"],
                    secure=bool(minio.get("secure", False)),
                )
            )
        else:
            raise ValueError(f"Unknown backend: {backend!r}")
    return scanners


def fetch_active_set(provider: ActiveSetProvider, scope: Optional[CancelScope] = None) -> frozenset[int]:
    try:
        return provider.fetch(scope=scope)
    finally:
        provider.close()


def run_sweep(
    config: dict,
    provider: Optional[ActiveSetProvider] = None,
    scanners: Optional[Sequence[ResourceScanner]] = None,
    on_active: Optional[Callable[[frozenset[int]], None]] = None,
    on_item: Optional[Callable[[DanglingItem], None]] = None,
) -> SweepReport:
    """Run the full sweep pipeline and return a SweepReport.

    The active set is fetched before any scanner is built, so a fetch failure
    never touches a backend. The first fatal error (fetch, or any scanner)
    propagates to the caller unchanged.
    """
    scope = CancelScope(timeout=config.get("timeout"))
    start = time.monotonic()

    provider = provider if provider is not None else build_provider(config)
    active = fetch_active_set(provider, scope)
    logger.info("%s reports %d open review(s)", provider.name, len(active))
    if on_active is not None:
        on_active(active)

    scanners = list(scanners) if scanners is not None else build_scanners(config)
    report = SweepReport(source=provider.name, active=active, backends=[s.label for s in scanners])

    dangling: list[DanglingItem] = []
    for item in aggregate(scanners, active, scope=scope):
        dangling.append(item)
        if on_item is not None:
            on_item(item)

    report.dangling = dangling
    report.elapsed = time.monotonic() - start
    logger.info("Sweep finished: %d dangling item(s) in %.1fs", len(dangling), report.elapsed)
    return report
