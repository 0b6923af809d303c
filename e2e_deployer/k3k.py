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

"""k3k virtual cluster lifecycle via k3kcli."""

from __future__ import annotations

import os
from pathlib import Path

from rich.panel import Panel
from tenacity import RetryError, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from e2e_deployer import console, logger
from e2e_deployer.config import K3kConfig
from e2e_deployer.constants import (
    K3K_UP_POLL_ATTEMPTS,
    K3K_UP_POLL_INTERVAL_SECONDS,
    K3KCLI,
    KUBECTL,
)
from e2e_deployer.errors import ClusterNotReadyError, CommandError
from e2e_deployer.runner import CommandRunner, ShRunner


class K3kDeployer:
    """Creates and checks a k3k virtual cluster.

    Args:
        cfg: k3k cluster configuration.
        runner: Command runner, or None for an ``sh`` backed one.
    """

    def __init__(self, cfg: K3kConfig, runner: CommandRunner | None = None) -> None:
        self.cfg = cfg
        self.runner = runner if runner is not None else ShRunner()

    def kubeconfig(self) -> str:
        """Resolve the kubeconfig path for the virtual cluster.

        Order: configured path, then ``$KUBECONFIG``, then
        ``~/<name>-kubeconfig.yaml``.
        """
        if self.cfg.kubeconfig_path:
            return self.cfg.kubeconfig_path
        env_path = os.environ.get("KUBECONFIG")
        if env_path is not None:
            return env_path
        return str(Path.home() / f"{self.cfg.name}-kubeconfig.yaml")

    def version(self) -> str:
        return self.cfg.version

    def create_args(self) -> list[str]:
        """Build the ``k3kcli cluster create`` argument list."""
        cfg = self.cfg
        return [
            "cluster", "create",
            "--kubeconfig", cfg.kubeconfig_path,
            "--namespace", cfg.namespace,
            "--name", cfg.name,
            "--servers", str(cfg.servers),
            "--agents", str(cfg.agents),
            "--token", cfg.token,
            "--cluster-cidr", cfg.cluster_cidr,
            "--service-cidr", cfg.service_cidr,
            "--persistence-type", cfg.persistence_type,
            "--storage-class-name", cfg.storage_class_name,
            "--server-args", cfg.server_args,
            "--agent-args", cfg.agent_args,
            "--version", cfg.version,
            "--mode", cfg.mode,
        ]

    def up(self) -> None:
        """Create the virtual cluster, streaming k3kcli output.

        Raises:
            CommandError: If k3kcli fails.
        """
        console.print(Panel.fit(f"Creating k3k cluster '{self.cfg.name}'", style="bold blue"))
        args = self.create_args()
        logger.info("k3kcli args: %s", args)
        self.runner.stream(K3KCLI, *args)
        console.print(f"[green]\u2705 k3k cluster '{self.cfg.name}' created[/green]")

    def is_up(self) -> bool:
        """Report whether the API server lists any node.

        Raises:
            CommandError: If ``kubectl get nodes`` fails.
        """
        out = self.runner.output(KUBECTL, "get", "nodes", "-o=name")
        return any(line.strip() for line in out.splitlines())

    def wait_until_up(
        self,
        attempts: int = K3K_UP_POLL_ATTEMPTS,
        interval: float = K3K_UP_POLL_INTERVAL_SECONDS,
    ) -> None:
        """Poll ``is_up`` until nodes are reported.

        Args:
            attempts: Maximum number of checks.
            interval: Seconds between checks.

        Raises:
            ClusterNotReadyError: If the cluster never reports nodes.
        """
        console.print("[yellow]\u2139\ufe0f  Waiting for k3k cluster nodes...[/yellow]")

        def _check() -> bool:
            try:
                return self.is_up()
            except CommandError as err:
                logger.debug("Cluster not reachable yet: %s", err)
                return False

        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(interval),
            retry=retry_if_result(lambda up: not up),
        )
        try:
            retrying(_check)
        except RetryError as err:
            raise ClusterNotReadyError(f"k3k cluster '{self.cfg.name}' has no nodes after {attempts} checks") from err
        console.print("[green]\u2705 k3k cluster is up[/green]")
