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

"""Utility functions for building gcloud arguments."""

from __future__ import annotations

from e2e_deployer.errors import ConfigError


def location_flag(zone: str | None, region: str | None) -> str:
    """Build the gcloud location flag for a zonal or regional cluster.

    Args:
        zone: Cluster zone, or None.
        region: Cluster region, or None.

    Returns:
        ``--zone=<zone>`` or ``--region=<region>``.

    Raises:
        ConfigError: If both or neither of zone and region are set.
    """
    if zone and region:
        raise ConfigError("only one of zone and region may be set")
    if zone:
        return f"--zone={zone}"
    if region:
        return f"--region={region}"
    raise ConfigError("one of zone or region is required")


def container_args(track: str, *args: str) -> list[str]:
    """Prefix ``gcloud container`` arguments with an optional release track.

    Args:
        track: Release track (``alpha``, ``beta``) or empty for GA.
        *args: Arguments following ``container``.

    Returns:
        Argument list to pass to gcloud.
    """
    prefix = [track, "container"] if track else ["container"]
    return [*prefix, *args]
