"""Shared fixtures: a scripted command runner and instance group URLs."""

from __future__ import annotations

import dataclasses
import os

import pytest

from e2e_deployer.errors import CommandError


def ig_url(project: str, zone: str, cluster: str, pool: str, uniq: str) -> str:
    """Build an instanceGroupUrls entry as gcloud prints it."""
    return (
        f"https://www.googleapis.com/compute/v1/projects/{project}/zones/{zone}"
        f"/instanceGroupManagers/gke-{cluster}-{pool}-{uniq}-grp"
    )


@dataclasses.dataclass
class _Rule:
    prefix: tuple[str, ...]
    outputs: list[str]
    fail: bool


@dataclasses.dataclass
class FakeRunner:
    """CommandRunner double that records calls and replays scripted results.

    Rules match on an argv prefix; the first matching rule wins. A rule with
    several outputs returns them in turn and then repeats the last one.
    Unmatched commands succeed with empty output.
    """

    calls: list[tuple[str, ...]] = dataclasses.field(default_factory=list)
    modes: list[str] = dataclasses.field(default_factory=list)
    _rules: list[_Rule] = dataclasses.field(default_factory=list)

    def on(self, *prefix: str, output: str | list[str] = "", fail: bool = False) -> FakeRunner:
        outputs = [output] if isinstance(output, str) else list(output)
        self._rules.append(_Rule(prefix=prefix, outputs=outputs, fail=fail))
        return self

    def _dispatch(self, mode: str, argv: tuple[str, ...]) -> str:
        self.calls.append(argv)
        self.modes.append(mode)
        for rule in self._rules:
            if argv[: len(rule.prefix)] == rule.prefix:
                out = rule.outputs.pop(0) if len(rule.outputs) > 1 else rule.outputs[0]
                if rule.fail:
                    raise CommandError(list(argv), out, 1)
                return out
        return ""

    def run(self, program: str, *args: str) -> None:
        self._dispatch("run", (program, *args))

    def output(self, program: str, *args: str) -> str:
        return self._dispatch("output", (program, *args))

    def stream(self, program: str, *args: str) -> None:
        self._dispatch("stream", (program, *args))

    def issued(self, *prefix: str) -> list[tuple[str, ...]]:
        """Return the recorded calls starting with a prefix."""
        return [call for call in self.calls if call[: len(prefix)] == prefix]


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep GKE_*/K3K_* settings from the host out of the tests."""
    for key in list(os.environ):
        if key.startswith(("GKE_", "K3K_")):
            monkeypatch.delenv(key)
