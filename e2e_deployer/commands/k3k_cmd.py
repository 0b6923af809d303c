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

"""k3k subcommands (up, is-up, kubeconfig, version)."""

from __future__ import annotations

import typer

from e2e_deployer.config import K3kConfig, load_settings
from e2e_deployer.constants import K3KCLI, KUBECTL
from e2e_deployer.k3k import K3kDeployer
from e2e_deployer.runner import require_command

app = typer.Typer(help="k3k virtual cluster lifecycle.")


def _k3k_config(**overrides: object) -> K3kConfig:
    """Load K3K_* settings and apply the CLI overrides that were given."""
    return load_settings(K3kConfig, {key: value for key, value in overrides.items() if value is not None})


@app.command()
def up(
    name: str | None = typer.Option(None, "--name", help="k3k cluster name"),
    namespace: str | None = typer.Option(None, "--namespace", help="Host namespace"),
    servers: int | None = typer.Option(None, "--servers", help="Number of server nodes"),
    agents: int | None = typer.Option(None, "--agents", help="Number of agent nodes"),
    version: str | None = typer.Option(None, "--version", help="k3s version"),
    wait: bool = typer.Option(False, "--wait", help="Wait until the cluster reports nodes"),
) -> None:
    """Create a k3k cluster."""
    require_command(K3KCLI)
    k3k_cfg = _k3k_config(name=name, namespace=namespace, servers=servers, agents=agents, version=version)
    deployer = K3kDeployer(k3k_cfg)
    deployer.up()
    if wait:
        require_command(KUBECTL)
        deployer.wait_until_up()


@app.command("is-up")
def is_up() -> None:
    """Exit 0 if the cluster reports nodes, 1 otherwise."""
    require_command(KUBECTL)
    if not K3kDeployer(_k3k_config()).is_up():
        typer.echo("down")
        raise typer.Exit(code=1)
    typer.echo("up")


@app.command()
def kubeconfig(
    name: str | None = typer.Option(None, "--name", help="k3k cluster name"),
) -> None:
    """Print the kubeconfig path for the cluster."""
    typer.echo(K3kDeployer(_k3k_config(name=name)).kubeconfig())


@app.command()
def version() -> None:
    """Print the k3s version that will be installed."""
    typer.echo(K3kDeployer(_k3k_config()).version())
