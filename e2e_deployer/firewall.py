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

"""e2e firewall rule creation and per-network firewall cleanup."""

from __future__ import annotations

import time
from collections.abc import Callable

from e2e_deployer import console, logger
from e2e_deployer.constants import (
    DEFAULT_NETWORK,
    E2E_ALLOW,
    FIREWALL_RULE_PREFIX,
    FIREWALL_SETTLE_SECONDS,
    GCLOUD,
)
from e2e_deployer.errors import CommandError, CreationError, NoInstanceError, SweepError
from e2e_deployer.instance_groups import InstanceGroupIndex
from e2e_deployer.runner import CommandRunner


# ============================================================================
# Reconciler
# ============================================================================

class FirewallReconciler:
    """Ensures an ``e2e-ports-*`` rule targets each cluster's nodes.

    Rule existence is the only thing checked; an existing rule is never
    compared against the desired ports or target tag.

    Args:
        runner: Command runner used for gcloud calls.
        index: Discovered instance groups for the clusters.
        allow: Protocol/port list allowed by created rules.
    """

    def __init__(self, runner: CommandRunner, index: InstanceGroupIndex, allow: str = E2E_ALLOW) -> None:
        self._runner = runner
        self._index = index
        self._allow = allow

    def cluster_firewall_name(self, project: str, cluster: str) -> str:
        """Name of the e2e firewall rule for a cluster.

        The node target tag can be slow to appear, so the hash of the
        lexically first node pool is used instead.
        """
        return FIREWALL_RULE_PREFIX + self._index.first(project, cluster).uniq

    def _exists(self, name: str, host_project: str) -> bool:
        try:
            self._runner.run(
                GCLOUD, "compute", "firewall-rules", "describe", name,
                f"--project={host_project}",
                "--format=value(name)",
            )
        except CommandError:
            return False
        return True

    def _node_tag(self, cluster_project: str, cluster: str) -> str:
        """Read the network tags of one node created by the first node pool.

        Raises:
            NoInstanceError: If the list fails or finds no tagged instance.
        """
        group = self._index.first(cluster_project, cluster)
        try:
            out = self._runner.output(
                GCLOUD, "compute", "instances", "list",
                f"--project={cluster_project}",
                f"--filter=metadata.created-by:*{group.path}",
                "--limit=1",
                "--format=get(tags.items)",
            )
        except CommandError as err:
            raise NoInstanceError(f"instances list failed: {err.output.strip() or err}") from err
        tag = out.strip()
        if not tag:
            raise NoInstanceError("instances list returned no instances (or instance has no tags)")
        return tag

    def ensure_firewall(self, host_project: str, cluster_project: str, cluster: str, network: str) -> None:
        """Create the cluster's e2e firewall rule unless it already exists.

        Args:
            host_project: Project owning the network and firewall rules.
            cluster_project: Project owning the cluster's instances.
            cluster: Cluster name.
            network: Network the rule is attached to.

        Raises:
            DiscoveryError: If the cluster's instance groups were not discovered.
            NoInstanceError: If no tagged node can be found.
            CreationError: If ``firewall-rules create`` fails.
        """
        logger.info("Ensuring firewall rules for cluster %s in %s", cluster, cluster_project)
        if network == DEFAULT_NETWORK:
            return

        name = self.cluster_firewall_name(cluster_project, cluster)
        if self._exists(name, host_project):
            logger.debug("Firewall rule %s already exists in %s", name, host_project)
            return
        logger.info("Couldn't describe firewall '%s', assuming it doesn't exist and creating it", name)

        tag = self._node_tag(cluster_project, cluster)
        try:
            self._runner.run(
                GCLOUD, "compute", "firewall-rules", "create", name,
                f"--project={host_project}",
                f"--network={network}",
                f"--allow={self._allow}",
                f"--target-tags={tag}",
            )
        except CommandError as err:
            raise CreationError(f"error creating e2e firewall {name}: {err}") from err
        console.print(f"[green]\u2705 Created firewall rule '{name}' on network '{network}'[/green]")


# ============================================================================
# Sweeper
# ============================================================================

class NetworkFirewallSweeper:
    """Deletes every firewall rule attached to a network.

    Args:
        runner: Command runner used for gcloud calls.
        settle_seconds: Wait after the bulk delete returns.
        sleep: Blocking sleep function.
    """

    def __init__(
        self,
        runner: CommandRunner,
        settle_seconds: float = FIREWALL_SETTLE_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._runner = runner
        self._settle_seconds = settle_seconds
        self._sleep = sleep

    def settle(self) -> None:
        """Wait for deleted rules to actually disappear.

        gcloud can return before the rules are gone; nothing is verified here.
        """
        self._sleep(self._settle_seconds)

    def _list(self, host_project: str, network: str) -> list[str]:
        try:
            out = self._runner.output(
                GCLOUD, "compute", "firewall-rules", "list",
                "--format=value(name)",
                f"--project={host_project}",
                f"--filter=network:{network}",
            )
        except CommandError as err:
            raise SweepError(f"firewall rules list failed: {err.output.strip() or err}") from err
        return [line.strip() for line in out.splitlines() if line.strip()]

    def cleanup_network_firewalls(self, host_project: str, network: str) -> int:
        """Delete all firewall rules on a non-default network.

        Args:
            host_project: Project owning the network.
            network: Network whose rules are deleted.

        Returns:
            Number of rules targeted for deletion.

        Raises:
            SweepError: If listing or deleting the rules fails.
        """
        if network == DEFAULT_NETWORK:
            return 0

        logger.info("Cleaning up network firewall rules for network %s in %s", network, host_project)
        rules = self._list(host_project, network)
        if not rules:
            return 0

        logger.warning("Network %s has %d undeleted firewall rules %s", network, len(rules), rules)
        try:
            self._runner.run(
                GCLOUD, "compute", "firewall-rules", "delete", "-q", *rules,
                f"--project={host_project}",
            )
        except CommandError as err:
            raise SweepError(f"error deleting firewall rules on network {network}: {err}") from err
        self.settle()
        return len(rules)
