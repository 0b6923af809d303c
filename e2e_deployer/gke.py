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

"""GKE deployer workflows that tie discovery, firewalls and cleanup together."""

from __future__ import annotations

from rich.panel import Panel

from e2e_deployer import console, logger
from e2e_deployer.config import GkeConfig, resolve_layout
from e2e_deployer.firewall import FirewallReconciler, NetworkFirewallSweeper
from e2e_deployer.instance_groups import InstanceGroupIndex
from e2e_deployer.runner import CommandRunner, ShRunner


class GkeDeployer:
    """Firewall setup and teardown for the clusters of a GKE e2e run.

    Args:
        cfg: GKE configuration.
        runner: Command runner, or None for an ``sh`` backed one.
    """

    def __init__(self, cfg: GkeConfig, runner: CommandRunner | None = None) -> None:
        self.cfg = cfg
        self.runner = runner if runner is not None else ShRunner()
        self.index = InstanceGroupIndex(self.runner, zone=cfg.zone, region=cfg.region, track=cfg.gcloud_track)
        self.reconciler = FirewallReconciler(self.runner, self.index, allow=cfg.firewall_allow)
        self.sweeper = NetworkFirewallSweeper(self.runner, settle_seconds=cfg.settle_seconds)
        self._layout: dict[str, list[str]] | None = None

    @property
    def layout(self) -> dict[str, list[str]]:
        """Project -> clusters layout, resolved on first use."""
        if self._layout is None:
            self._layout = resolve_layout(self.cfg)
        return self._layout

    @property
    def host_project(self) -> str:
        """Project owning the network, falling back to the layout file's first project."""
        layout = self.layout if self.cfg.layout_file is not None else None
        return self.cfg.resolved_host_project(layout)

    def discover(self) -> None:
        """Discover instance groups for every cluster in the layout."""
        self.index.discover(list(self.layout), self.layout)

    def ensure_firewalls(self) -> None:
        """Ensure the e2e firewall rule exists for every cluster.

        Raises:
            DeployerError: On the first cluster that fails; earlier rules are kept.
        """
        console.print(Panel.fit("Ensuring e2e firewall rules", style="bold blue"))
        host_project = self.host_project
        self.discover()
        for project, clusters in self.layout.items():
            for cluster in clusters:
                self.reconciler.ensure_firewall(host_project, project, cluster, self.cfg.network)
        console.print("[green]\u2705 Firewall rules in place[/green]")

    def cleanup_firewalls(self) -> int:
        """Delete all firewall rules left on the configured network.

        Returns:
            Number of rules targeted for deletion.
        """
        console.print(Panel.fit("Cleaning up network firewall rules", style="bold blue"))
        host_project = self.host_project
        count = self.sweeper.cleanup_network_firewalls(host_project, self.cfg.network)
        if count:
            logger.warning("Deleted %d leaked firewall rule(s) on network %s", count, self.cfg.network)
            console.print(f"[yellow]\u26a0\ufe0f  Deleted {count} firewall rule(s) on network '{self.cfg.network}'[/yellow]")
        else:
            console.print(f"[green]\u2705 No firewall rules to delete on network '{self.cfg.network}'[/green]")
        return count
