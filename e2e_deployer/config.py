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

"""Configuration classes and cluster layout resolution."""

from __future__ import annotations

from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from e2e_deployer.constants import (
    DEFAULT_K3K_AGENTS,
    DEFAULT_K3K_MODE,
    DEFAULT_K3K_PERSISTENCE_TYPE,
    DEFAULT_K3K_SERVERS,
    DEFAULT_K3K_VERSION,
    DEFAULT_NETWORK,
    E2E_ALLOW,
    FIREWALL_SETTLE_SECONDS,
)
from e2e_deployer.errors import ConfigError

SettingsT = TypeVar("SettingsT", bound=BaseSettings)


# ============================================================================
# Configuration classes
# ============================================================================

class GkeConfig(BaseSettings):
    """GKE firewall configuration, auto-loaded from GKE_* env vars.

    Attributes:
        projects: GCP projects that own the clusters, in order.
        host_project: Project owning the network, or None to use the first project.
        network: VPC network the clusters are attached to.
        zone: Cluster zone (mutually exclusive with region).
        region: Cluster region (mutually exclusive with zone).
        cluster_names: Cluster names, optionally suffixed with ``:<project index>``.
        layout_file: YAML file mapping project to cluster names, overrides cluster_names.
        firewall_allow: Allowed protocol/port list for created e2e rules.
        settle_seconds: Wait after bulk firewall deletion.
        gcloud_track: gcloud release track for container commands ("", alpha, beta).
    """

    model_config = SettingsConfigDict(env_prefix="GKE_", extra="ignore")

    projects: list[str] = Field(default_factory=list)
    host_project: str | None = None
    network: str = DEFAULT_NETWORK
    zone: str | None = None
    region: str | None = None
    cluster_names: list[str] = Field(default_factory=list)
    layout_file: Path | None = None
    firewall_allow: str = E2E_ALLOW
    settle_seconds: float = Field(default=FIREWALL_SETTLE_SECONDS, ge=0)
    gcloud_track: str = Field(default="", pattern=r"^(|alpha|beta)$")

    def resolved_host_project(self, layout: dict[str, list[str]] | None = None) -> str:
        """Return the project that owns the network.

        Args:
            layout: Resolved project -> clusters layout; its first project is
                used when neither host_project nor projects is set.

        Raises:
            ConfigError: If no host project can be determined.
        """
        if self.host_project:
            return self.host_project
        if self.projects:
            return self.projects[0]
        if layout:
            return next(iter(layout))
        raise ConfigError("no host project: set GKE_HOST_PROJECT, GKE_PROJECTS or a layout file")


class K3kConfig(BaseSettings):
    """k3k virtual cluster configuration, auto-loaded from K3K_* env vars.

    Attributes:
        kubeconfig_path: Kubeconfig written by k3kcli, or empty to derive one.
        namespace: Host namespace to create the virtual cluster in.
        name: Virtual cluster name.
        servers: Number of server nodes.
        agents: Number of agent nodes.
        token: Cluster join token.
        cluster_cidr: Pod CIDR for the virtual cluster.
        service_cidr: Service CIDR for the virtual cluster.
        persistence_type: Node persistence mode (ephemeral, static, dynamic).
        storage_class_name: Storage class used by dynamic persistence.
        server_args: Extra arguments for k3s servers.
        agent_args: Extra arguments for k3s agents.
        mode: k3k mode (shared, virtual).
        version: k3s version to install.
    """

    model_config = SettingsConfigDict(env_prefix="K3K_", extra="ignore")

    kubeconfig_path: str = ""
    namespace: str = ""
    name: str = ""
    servers: int = Field(default=DEFAULT_K3K_SERVERS, ge=1)
    agents: int = Field(default=DEFAULT_K3K_AGENTS, ge=0)
    token: str = ""
    cluster_cidr: str = ""
    service_cidr: str = ""
    persistence_type: str = Field(default=DEFAULT_K3K_PERSISTENCE_TYPE, pattern=r"^(ephemeral|static|dynamic)$")
    storage_class_name: str = ""
    server_args: str = ""
    agent_args: str = ""
    mode: str = Field(default=DEFAULT_K3K_MODE, pattern=r"^(shared|virtual)$")
    version: str = Field(default=DEFAULT_K3K_VERSION, pattern=r"^v[\d.]+(-[\w.+]+)?$")


def load_settings(settings_cls: type[SettingsT], overrides: dict[str, Any] | None = None) -> SettingsT:
    """Load settings from the environment with explicit overrides applied.

    Overrides are validated like environment values, so field constraints
    hold for CLI input too.

    Args:
        settings_cls: Settings class to instantiate.
        overrides: Field values taking precedence over the environment.

    Returns:
        Validated settings instance.

    Raises:
        ConfigError: If any value fails validation.
    """
    try:
        return settings_cls(**(overrides or {}))
    except ValidationError as err:
        raise ConfigError(f"invalid {settings_cls.__name__} settings: {err}") from err


# ============================================================================
# Layout resolution
# ============================================================================

def _load_layout_file(path: Path) -> dict[str, list[str]]:
    """Read a project -> clusters mapping from YAML.

    Args:
        path: YAML file with one key per project and a list of cluster names.

    Returns:
        Ordered mapping of project to cluster names.

    Raises:
        ConfigError: If the file is missing or not a project -> list mapping.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as err:
        raise ConfigError(f"cannot read layout file {path}: {err}") from err
    except yaml.YAMLError as err:
        raise ConfigError(f"invalid YAML in layout file {path}: {err}") from err

    if not isinstance(data, dict):
        raise ConfigError(f"layout file {path} must map project names to cluster lists")
    layout: dict[str, list[str]] = {}
    for project, clusters in data.items():
        if clusters is None:
            clusters = []
        if not isinstance(clusters, list) or not all(isinstance(c, str) for c in clusters):
            raise ConfigError(f"clusters for project {project!r} in {path} must be a list of names")
        layout[str(project)] = list(clusters)
    return layout


def _parse_cluster_names(projects: list[str], cluster_names: list[str]) -> dict[str, list[str]]:
    """Assign ``name[:project_index]`` entries to projects.

    Args:
        projects: Ordered project list.
        cluster_names: Cluster entries; a missing index means project 0.

    Returns:
        Mapping of every project to its (possibly empty) cluster list.

    Raises:
        ConfigError: If clusters are given without projects or an index is invalid.
    """
    if cluster_names and not projects:
        raise ConfigError("cluster names given without any project")
    layout: dict[str, list[str]] = {project: [] for project in projects}
    for entry in cluster_names:
        name, sep, index = entry.partition(":")
        if not name:
            raise ConfigError(f"empty cluster name in {entry!r}")
        idx = 0
        if sep:
            try:
                idx = int(index)
            except ValueError as err:
                raise ConfigError(f"invalid project index in {entry!r}") from err
        if not 0 <= idx < len(projects):
            raise ConfigError(f"project index {idx} in {entry!r} is out of range for {len(projects)} project(s)")
        layout[projects[idx]].append(name)
    return layout


def resolve_layout(cfg: GkeConfig) -> dict[str, list[str]]:
    """Build the project -> clusters layout from a config.

    Args:
        cfg: GKE configuration.

    Returns:
        Ordered mapping of project to cluster names.

    Raises:
        ConfigError: If the layout references unknown projects or is malformed.
    """
    if cfg.layout_file is None:
        return _parse_cluster_names(cfg.projects, cfg.cluster_names)

    layout = _load_layout_file(cfg.layout_file)
    if cfg.projects:
        unknown = sorted(set(layout) - set(cfg.projects))
        if unknown:
            raise ConfigError(f"layout file references unknown project(s): {', '.join(unknown)}")
    return layout
