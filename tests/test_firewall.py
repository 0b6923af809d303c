"""Unit tests for e2e firewall reconciliation and network cleanup."""

from __future__ import annotations

import pytest

from e2e_deployer.constants import E2E_ALLOW
from e2e_deployer.errors import CreationError, DiscoveryError, NoInstanceError, SweepError
from e2e_deployer.firewall import FirewallReconciler, NetworkFirewallSweeper
from e2e_deployer.instance_groups import InstanceGroupIndex

from conftest import FakeRunner, ig_url

ZONE = "us-central1-a"
FIREWALL = "e2e-ports-aaaaaaaa"
GROUP_PATH = f"zones/{ZONE}/instanceGroupManagers/gke-c1-pool-a-aaaaaaaa-grp"


@pytest.fixture
def reconciler(fake_runner: FakeRunner) -> FirewallReconciler:
    """Reconciler over an index with one discovered cluster (c1 in cluster-proj)."""
    fake_runner.on(
        "gcloud", "container", "clusters", "describe", "c1",
        output=";".join([
            ig_url("cluster-proj", ZONE, "c1", "pool-b", "bbbbbbbb"),
            ig_url("cluster-proj", ZONE, "c1", "pool-a", "aaaaaaaa"),
        ]),
    )
    index = InstanceGroupIndex(fake_runner, zone=ZONE)
    index.discover(["cluster-proj"], {"cluster-proj": ["c1"]})
    fake_runner.calls.clear()
    fake_runner.modes.clear()
    return FirewallReconciler(fake_runner, index)


def _rule_absent(runner: FakeRunner) -> None:
    runner.on("gcloud", "compute", "firewall-rules", "describe", output="ERROR: not found", fail=True)


class TestEnsureFirewall:
    """Tests for FirewallReconciler.ensure_firewall."""

    def test_rule_name_uses_lexically_first_pool(self, reconciler: FirewallReconciler) -> None:
        assert reconciler.cluster_firewall_name("cluster-proj", "c1") == FIREWALL

    def test_default_network_issues_no_commands(self, fake_runner: FakeRunner) -> None:
        reconciler = FirewallReconciler(fake_runner, InstanceGroupIndex(fake_runner))

        reconciler.ensure_firewall("host-proj", "cluster-proj", "undiscovered", "default")

        assert fake_runner.calls == []

    def test_existing_rule_short_circuits(self, fake_runner: FakeRunner, reconciler: FirewallReconciler) -> None:
        reconciler.ensure_firewall("host-proj", "cluster-proj", "c1", "e2e-net")

        assert fake_runner.calls == [(
            "gcloud", "compute", "firewall-rules", "describe", FIREWALL,
            "--project=host-proj",
            "--format=value(name)",
        )]

    def test_creates_missing_rule_with_node_tag(self, fake_runner: FakeRunner, reconciler: FirewallReconciler) -> None:
        _rule_absent(fake_runner)
        fake_runner.on("gcloud", "compute", "instances", "list", output="gke-c1-12345678-node\n")

        reconciler.ensure_firewall("host-proj", "cluster-proj", "c1", "e2e-net")

        assert fake_runner.issued("gcloud", "compute", "instances", "list") == [(
            "gcloud", "compute", "instances", "list",
            "--project=cluster-proj",
            f"--filter=metadata.created-by:*{GROUP_PATH}",
            "--limit=1",
            "--format=get(tags.items)",
        )]
        assert fake_runner.issued("gcloud", "compute", "firewall-rules", "create") == [(
            "gcloud", "compute", "firewall-rules", "create", FIREWALL,
            "--project=host-proj",
            "--network=e2e-net",
            f"--allow={E2E_ALLOW}",
            "--target-tags=gke-c1-12345678-node",
        )]

    def test_empty_tags_raise_no_instance_error(self, fake_runner: FakeRunner, reconciler: FirewallReconciler) -> None:
        _rule_absent(fake_runner)
        fake_runner.on("gcloud", "compute", "instances", "list", output="\n")

        with pytest.raises(NoInstanceError, match="no instances"):
            reconciler.ensure_firewall("host-proj", "cluster-proj", "c1", "e2e-net")

        assert fake_runner.issued("gcloud", "compute", "firewall-rules", "create") == []

    def test_instances_list_failure_raises_no_instance_error(
        self, fake_runner: FakeRunner, reconciler: FirewallReconciler
    ) -> None:
        _rule_absent(fake_runner)
        fake_runner.on("gcloud", "compute", "instances", "list", output="permission denied", fail=True)

        with pytest.raises(NoInstanceError, match="permission denied"):
            reconciler.ensure_firewall("host-proj", "cluster-proj", "c1", "e2e-net")

        assert fake_runner.issued("gcloud", "compute", "firewall-rules", "create") == []

    def test_create_failure_raises_creation_error(self, fake_runner: FakeRunner, reconciler: FirewallReconciler) -> None:
        _rule_absent(fake_runner)
        fake_runner.on("gcloud", "compute", "instances", "list", output="node-tag")
        fake_runner.on("gcloud", "compute", "firewall-rules", "create", output="quota exceeded", fail=True)

        with pytest.raises(CreationError, match="quota exceeded"):
            reconciler.ensure_firewall("host-proj", "cluster-proj", "c1", "e2e-net")

        assert len(fake_runner.issued("gcloud", "compute", "firewall-rules", "create")) == 1

    def test_undiscovered_cluster_raises(self, fake_runner: FakeRunner, reconciler: FirewallReconciler) -> None:
        with pytest.raises(DiscoveryError):
            reconciler.ensure_firewall("host-proj", "cluster-proj", "c9", "e2e-net")
        assert fake_runner.calls == []

    def test_custom_allow_list(self, fake_runner: FakeRunner, reconciler: FirewallReconciler) -> None:
        _rule_absent(fake_runner)
        fake_runner.on("gcloud", "compute", "instances", "list", output="tag")
        custom = FirewallReconciler(fake_runner, reconciler._index, allow="tcp:443")

        custom.ensure_firewall("host-proj", "cluster-proj", "c1", "e2e-net")

        create = fake_runner.issued("gcloud", "compute", "firewall-rules", "create")[0]
        assert "--allow=tcp:443" in create


class TestCleanupNetworkFirewalls:
    """Tests for NetworkFirewallSweeper.cleanup_network_firewalls."""

    @pytest.fixture
    def sleeps(self) -> list[float]:
        return []

    @pytest.fixture
    def sweeper(self, fake_runner: FakeRunner, sleeps: list[float]) -> NetworkFirewallSweeper:
        return NetworkFirewallSweeper(fake_runner, settle_seconds=10, sleep=sleeps.append)

    def test_default_network_is_noop(
        self, fake_runner: FakeRunner, sweeper: NetworkFirewallSweeper, sleeps: list[float]
    ) -> None:
        assert sweeper.cleanup_network_firewalls("host-proj", "default") == 0
        assert fake_runner.calls == []
        assert sleeps == []

    def test_deletes_all_rules_in_one_call(
        self, fake_runner: FakeRunner, sweeper: NetworkFirewallSweeper, sleeps: list[float]
    ) -> None:
        fake_runner.on("gcloud", "compute", "firewall-rules", "list", output="fw-a\nfw-b\nfw-c\n")

        count = sweeper.cleanup_network_firewalls("host-proj", "e2e-net")

        assert count == 3
        assert fake_runner.issued("gcloud", "compute", "firewall-rules", "list") == [(
            "gcloud", "compute", "firewall-rules", "list",
            "--format=value(name)",
            "--project=host-proj",
            "--filter=network:e2e-net",
        )]
        assert fake_runner.issued("gcloud", "compute", "firewall-rules", "delete") == [(
            "gcloud", "compute", "firewall-rules", "delete", "-q",
            "fw-a", "fw-b", "fw-c",
            "--project=host-proj",
        )]
        assert sleeps == [10]

    def test_empty_list_skips_delete_and_settle(
        self, fake_runner: FakeRunner, sweeper: NetworkFirewallSweeper, sleeps: list[float]
    ) -> None:
        fake_runner.on("gcloud", "compute", "firewall-rules", "list", output="")

        assert sweeper.cleanup_network_firewalls("host-proj", "e2e-net") == 0
        assert fake_runner.issued("gcloud", "compute", "firewall-rules", "delete") == []
        assert sleeps == []

    def test_list_failure_raises_sweep_error(self, fake_runner: FakeRunner, sweeper: NetworkFirewallSweeper) -> None:
        fake_runner.on("gcloud", "compute", "firewall-rules", "list", output="network not found", fail=True)

        with pytest.raises(SweepError, match="network not found"):
            sweeper.cleanup_network_firewalls("host-proj", "e2e-net")

    def test_delete_failure_raises_sweep_error(
        self, fake_runner: FakeRunner, sweeper: NetworkFirewallSweeper, sleeps: list[float]
    ) -> None:
        fake_runner.on("gcloud", "compute", "firewall-rules", "list", output="fw-a\n")
        fake_runner.on("gcloud", "compute", "firewall-rules", "delete", output="in use", fail=True)

        with pytest.raises(SweepError, match="in use"):
            sweeper.cleanup_network_firewalls("host-proj", "e2e-net")
        assert sleeps == []
