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

"""Exception types raised by the deployer helpers."""

from __future__ import annotations


class DeployerError(RuntimeError):
    """Base class for all deployer failures."""


class ConfigError(DeployerError):
    """Invalid cluster layout or location settings."""


class CommandError(DeployerError):
    """An external command failed or could not be started.

    Attributes:
        command: The full argument list that was executed.
        output: Combined stdout/stderr captured from the command, if any.
        exit_code: Process exit code, or None if the command never ran.
    """

    def __init__(self, command: list[str], output: str = "", exit_code: int | None = None) -> None:
        self.command = command
        self.output = output
        self.exit_code = exit_code
        detail = output.strip() or "no output"
        super().__init__(f"'{' '.join(command)}' failed (exit code {exit_code}): {detail}")


class DiscoveryError(DeployerError):
    """Instance group lookup failed or returned nothing."""


class ParseError(DeployerError):
    """An instance group URL did not have the expected shape."""


class NoInstanceError(DeployerError):
    """No tagged instance was found to scope a firewall rule to."""


class CreationError(DeployerError):
    """Creating a firewall rule failed."""


class SweepError(DeployerError):
    """Listing or deleting network firewall rules failed."""


class ToolNotFoundError(DeployerError):
    """A required CLI tool is not on the PATH."""


class ClusterNotReadyError(DeployerError):
    """A cluster did not report ready nodes in time."""
