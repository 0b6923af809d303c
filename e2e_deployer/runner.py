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

"""External command execution for gcloud, kubectl and k3kcli."""

from __future__ import annotations

import sys
from typing import Protocol

import sh

from e2e_deployer import logger
from e2e_deployer.errors import CommandError, ToolNotFoundError


class CommandRunner(Protocol):
    """Executes external programs on behalf of the deployers."""

    def run(self, program: str, *args: str) -> None:
        """Run a command and discard its output.

        Raises:
            CommandError: If the command fails or cannot be started.
        """
        ...

    def output(self, program: str, *args: str) -> str:
        """Run a command and return its combined stdout/stderr.

        Raises:
            CommandError: If the command fails or cannot be started.
        """
        ...

    def stream(self, program: str, *args: str) -> None:
        """Run a command with its output forwarded to the terminal.

        Raises:
            CommandError: If the command fails or cannot be started.
        """
        ...


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode(errors="replace")
    return data


class ShRunner:
    """CommandRunner backed by the ``sh`` library."""

    def _command(self, program: str, args: tuple[str, ...]) -> sh.Command:
        try:
            return sh.Command(program)
        except sh.CommandNotFound as err:
            raise CommandError([program, *args], f"command not found: {program}") from err

    def _call(self, program: str, args: tuple[str, ...], **kwargs) -> str:
        cmd = self._command(program, args)
        logger.debug("Running: %s %s", program, " ".join(args))
        try:
            return _decode(cmd(*args, **kwargs))
        except sh.ErrorReturnCode as err:
            raise CommandError([program, *args], _decode(err.stdout), err.exit_code) from err

    def run(self, program: str, *args: str) -> None:
        self._call(program, args, _err_to_out=True)

    def output(self, program: str, *args: str) -> str:
        return self._call(program, args, _err_to_out=True)

    def stream(self, program: str, *args: str) -> None:
        self._call(program, args, _out=sys.stdout, _err=sys.stderr)


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        ToolNotFoundError: If the command is not found.
    """
    try:
        found = sh.which(cmd)
    except sh.ErrorReturnCode as err:
        raise ToolNotFoundError(f"Required command '{cmd}' not found. Please install it first.") from err
    if not found:
        raise ToolNotFoundError(f"Required command '{cmd}' not found. Please install it first.")
