# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Node pool instance group discovery and caching per project and cluster.

Each GKE node pool is backed by a managed instance group. ``gcloud container
clusters describe --format=value(instanceGroupUrls)`` returns their URLs as a
single ``;`` separated string, and every URL must match ``POOL_RE``::

    .../zones/<zone>/instanceGroupManagers/gke-<cluster>-<pool>-<8 hex>-grp

The index is filled once per (project, cluster) and never re-fetched. It does
no locking; a single caller per process is assumed.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from e2e_deployer import logger
from e2e_deployer.constants import GCLOUD, INSTANCE_GROUP_URL_SEPARATOR, POOL_RE
from e2e_deployer.errors import CommandError, DiscoveryError, ParseError
from e2e_deployer.runner import CommandRunner
from e2e_deployer.utils import container_args, location_flag


@dataclass(frozen=True)
class InstanceGroup:
    """One node pool's managed instance group.

    Attributes:
        path: Matched URL tail, used as the instance ``created-by`` filter.
        zone: Zone of the instance group.
        name: Instance group name.
        uniq: 8 hex digit hash unique to the node pool.
    """

    path: str
    zone: str
    name: str
    uniq: str


def parse_instance_group_url(url: str) -> InstanceGroup:
    """Parse an instance group URL into an InstanceGroup.

    Args:
        url: Full instanceGroupManagers URL.

    Returns:
        The parsed instance group.

    Raises:
        ParseError: If the URL does not match ``POOL_RE``.
    """
    m = POOL_RE.search(url)
    if m is None:
        raise ParseError(f"instanceGroupUrl {url!r} did not match regex {POOL_RE.pattern!r}")
    return InstanceGroup(path=m.group(0), zone=m.group(1), name=m.group(2), uniq=m.group(3))


def split_instance_group_urls(output: str) -> list[str]:
    """Split describe output into sorted, non-empty URLs."""
    urls = [u.strip() for u in output.strip().split(INSTANCE_GROUP_URL_SEPARATOR)]
    return sorted(u for u in urls if u)


class InstanceGroupIndex:
    """Cache of instance groups keyed by project, then cluster name.

    Args:
        runner: Command runner used for gcloud calls.
        zone: Cluster zone (mutually exclusive with region).
        region: Cluster region (mutually exclusive with zone).
        track: gcloud release track for ``container`` commands.
    """

    def __init__(
        self,
        runner: CommandRunner,
        zone: str | None = None,
        region: str | None = None,
        track: str = "",
    ) -> None:
        self._runner = runner
        self._zone = zone
        self._region = region
        self._track = track
        self._groups: dict[str, dict[str, tuple[InstanceGroup, ...]]] = {}

    def is_populated(self, project: str, cluster: str) -> bool:
        return cluster in self._groups.get(project, {})

    def groups(self, project: str, cluster: str) -> tuple[InstanceGroup, ...]:
        """Return the sorted instance groups of a discovered cluster.

        Raises:
            DiscoveryError: If the cluster has not been discovered.
        """
        try:
            return self._groups[project][cluster]
        except KeyError:
            raise DiscoveryError(
                f"instance groups for cluster {cluster!r} in project {project!r} have not been discovered"
            ) from None

    def first(self, project: str, cluster: str) -> InstanceGroup:
        """Return the lexically first instance group of a discovered cluster."""
        return self.groups(project, cluster)[0]

    def snapshot(self) -> dict[str, dict[str, tuple[InstanceGroup, ...]]]:
        """Return a copy of the project -> cluster -> groups mapping."""
        return {project: dict(clusters) for project, clusters in self._groups.items()}

    def _fetch(self, project: str, cluster: str, location: str) -> tuple[InstanceGroup, ...]:
        """Describe a cluster and parse its instance group URLs.

        Raises:
            DiscoveryError: If the describe call fails or returns no URLs.
            ParseError: If any URL does not match ``POOL_RE``.
        """
        args = container_args(
            self._track,
            "clusters", "describe", cluster,
            "--format=value(instanceGroupUrls)",
            f"--project={project}",
            location,
        )
        try:
            out = self._runner.output(GCLOUD, *args)
        except CommandError as err:
            raise DiscoveryError(f"instance group URL fetch failed: {err.output.strip() or err}") from err

        urls = split_instance_group_urls(out)
        if not urls:
            raise DiscoveryError(f"no instance group URLs returned by gcloud, output {out!r}")
        return tuple(parse_instance_group_url(url) for url in urls)

    def discover(self, projects: Iterable[str], clusters_by_project: Mapping[str, Iterable[str]]) -> None:
        """Discover instance groups for every cluster of every project.

        Pairs already cached are skipped. New results are committed only when
        every pending pair was fetched and parsed.

        Args:
            projects: Projects to discover, in order.
            clusters_by_project: Cluster names assigned to each project.

        Raises:
            ConfigError: If the cluster location is missing or ambiguous.
            DiscoveryError: If a describe call fails or returns nothing.
            ParseError: If an instance group URL has an unexpected shape.
        """
        pending = [
            (project, cluster)
            for project in projects
            for cluster in clusters_by_project.get(project, ())
            if not self.is_populated(project, cluster)
        ]
        if not pending:
            return

        location = location_flag(self._zone, self._region)
        staged: dict[tuple[str, str], tuple[InstanceGroup, ...]] = {}
        for project, cluster in pending:
            if (project, cluster) in staged:
                continue
            staged[(project, cluster)] = self._fetch(project, cluster, location)
            logger.debug("Cluster %s in %s has %d instance group(s)", cluster, project, len(staged[(project, cluster)]))

        for (project, cluster), groups in staged.items():
            self._groups.setdefault(project, {})[cluster] = groups
