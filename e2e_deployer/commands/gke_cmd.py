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

"""GKE subcommands (ensure-firewalls, cleanup-firewalls, instance-groups)."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from e2e_deployer import console
from e2e_deployer.config import GkeConfig, load_settings
from e2e_deployer.constants import GCLOUD
from e2e_deployer.gke import GkeDeployer
from e2e_deployer.runner import require_command

app = typer.Typer(help="GKE firewall management.")


def _gke_config(
    projects: list[str] | None,
    host_project: str | None,
    network: str | None,
    zone: str | None,
    region: str | None,
    cluster_names: list[str] | None,
    layout_file: Path | None,
) -> GkeConfig:
    """Load GKE_* settings and apply CLI overrides."""
    overrides: dict = {}
    if projects:
        overrides["projects"] = projects
    if host_project is not None:
        overrides["host_project"] = host_project
    if network is not None:
        overrides["network"] = network
    if zone is not None:
        overrides["zone"] = zone
    if region is not None:
        overrides["region"] = region
    if cluster_names:
        overrides["cluster_names"] = cluster_names
    if layout_file is not None:
        overrides["layout_file"] = layout_file
    return load_settings(GkeConfig, overrides)


ProjectOpt = typer.Option(None, "--project", help="Cluster project (repeatable)")
HostProjectOpt = typer.Option(None, "--host-project", help="Project owning the network")
NetworkOpt = typer.Option(None, "--network", help="VPC network name")
ZoneOpt = typer.Option(None, "--zone", help="Cluster zone")
RegionOpt = typer.Option(None, "--region", help="Cluster region")
ClusterOpt = typer.Option(None, "--cluster-name", help="Cluster name, optionally NAME:PROJECT_INDEX (repeatable)")
LayoutOpt = typer.Option(None, "--layout-file", help="YAML file mapping projects to cluster names")


@app.command("ensure-firewalls")
def ensure_firewalls(
    projects: list[str] | None = ProjectOpt,
    host_project: str | None = HostProjectOpt,
    network: str | None = NetworkOpt,
    zone: str | None = ZoneOpt,
    region: str | None = RegionOpt,
    cluster_names: list[str] | None = ClusterOpt,
    layout_file: Path | None = LayoutOpt,
) -> None:
    """Create missing e2e-ports firewall rules for every cluster."""
    require_command(GCLOUD)
    gke_cfg = _gke_config(projects, host_project, network, zone, region, cluster_names, layout_file)
    GkeDeployer(gke_cfg).ensure_firewalls()


@app.command("cleanup-firewalls")
def cleanup_firewalls(
    projects: list[str] | None = ProjectOpt,
    host_project: str | None = HostProjectOpt,
    network: str | None = NetworkOpt,
) -> None:
    """Delete every firewall rule on the network."""
    require_command(GCLOUD)
    gke_cfg = _gke_config(projects, host_project, network, None, None, None, None)
    GkeDeployer(gke_cfg).cleanup_firewalls()


@app.command("instance-groups")
def instance_groups(
    projects: list[str] | None = ProjectOpt,
    zone: str | None = ZoneOpt,
    region: str | None = RegionOpt,
    cluster_names: list[str] | None = ClusterOpt,
    layout_file: Path | None = LayoutOpt,
) -> None:
    """Show discovered node pool instance groups per cluster."""
    require_command(GCLOUD)
    gke_cfg = _gke_config(projects, None, None, zone, region, cluster_names, layout_file)
    deployer = GkeDeployer(gke_cfg)
    deployer.discover()

    table = Table(title="Instance groups")
    for column in ("Project", "Cluster", "Zone", "Instance group", "Hash"):
        table.add_column(column)
    for project, clusters in deployer.index.snapshot().items():
        for cluster, groups in clusters.items():
            for group in groups:
                table.add_row(project, cluster, group.zone, group.name, group.uniq)
    console.print(table)
