#!/usr/bin/env python3
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

"""
cli.py - Unified CLI for e2e cluster helpers.

Subcommands:
    gke    Firewall rules for GKE clusters (ensure-firewalls, cleanup-firewalls, instance-groups)
    k3k    k3k virtual clusters (up, is-up, kubeconfig, version)

Environment Variables:
    GKE_* configures GKE commands (GKE_PROJECTS, GKE_NETWORK, GKE_ZONE, ...).
    K3K_* configures k3k commands (K3K_NAME, K3K_NAMESPACE, K3K_VERSION, ...).
    List values (GKE_PROJECTS, GKE_CLUSTER_NAMES) are JSON arrays.

Examples:
    # Create missing e2e firewall rules for two clusters on a custom network
    e2e-deployer gke ensure-firewalls --project my-proj --zone us-central1-a \\
        --network e2e-net --cluster-name c1 --cluster-name c2

    # Delete leftover firewall rules during teardown
    e2e-deployer gke cleanup-firewalls --project my-proj --network e2e-net

    # Create a k3k cluster and wait for it
    e2e-deployer k3k up --name test --namespace k3k-test --wait
"""

from __future__ import annotations

import logging
import sys

import typer

from e2e_deployer import console
from e2e_deployer.commands import gke_cmd, k3k_cmd

app = typer.Typer(
    help="Unified CLI for e2e cluster helpers.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.add_typer(gke_cmd.app, name="gke")
app.add_typer(k3k_cmd.app, name="k3k")


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
