"""
Unit tests for the workload profile rule sets

Pins clamp bands, tier boundaries and the typed string/tuple branches
of every profile.
"""

import pytest

from sysctl_generation.hardware_facts import DiskMedium, Profile
from sysctl_generation.parameter_registry import PARAMETER_REGISTRY, type_matches
from sysctl_generation.profile_rules import (
    PROFILE_RULES,
    clamp,
    profile_overrides,
    tier,
)


class TestHelpers:
    """Test clamp and tier helpers"""

    @pytest.mark.parametrize("value,expected", [(0, 1), (1, 1), (5, 5), (10, 10), (11, 10)])
    def test_clamp(self, value, expected):
        assert clamp(value, 1, 10) == expected

    @pytest.mark.parametrize("value,expected", [
        (9999, "low"),
        (10000, "mid"),
        (24999, "mid"),
        (25000, "high"),
    ])
    def test_tier_scans_highest_threshold_first(self, value, expected):
        """Test thresholds are inclusive and checked from the top"""
        tiers = ((25000, "high"), (10000, "mid"))
        assert tier(value, tiers, "low") == expected


class TestRegistry:
    """Test the Profile -> rule function registry"""

    def test_every_profile_has_a_rule(self):
        assert set(PROFILE_RULES) == set(Profile)

    @pytest.mark.parametrize("profile", list(Profile))
    @pytest.mark.parametrize("ram_gb,cores,nic_mbps", [(1, 1, 100), (8, 4, 1000), (512, 128, 100000)])
    def test_override_values_are_registered_and_typed(self, make_facts, profile, ram_gb, cores, nic_mbps):
        """Test each override key is declared and its value matches the declared type"""
        facts = make_facts(cores=cores, threads=cores * 2, ram_gb=ram_gb, nic_mbps=nic_mbps,
                           disk_medium=DiskMedium.SSD)
        overrides = profile_overrides(facts, profile)

        for key, value in overrides.items():
            assert key in PARAMETER_REGISTRY, key
            assert type_matches(key, value), (key, value)

    @pytest.mark.parametrize("profile", list(Profile))
    def test_small_ram_keeps_positive_floors(self, make_facts, profile):
        """Test a 1 GB machine never yields zero or negative integer values for sized limits"""
        overrides = profile_overrides(make_facts(cores=1, threads=1, ram_gb=1, nic_mbps=10), profile)

        assert overrides["vm.min_free_kbytes"] > 0
        if "fs.file-max" in overrides:
            assert overrides["fs.file-max"] > 0
        if "kernel.pid_max" in overrides:
            assert overrides["kernel.pid_max"] > 0


class TestGeneralProfile:

    def test_nic_boundary_belongs_to_higher_tier(self, make_facts):
        """Test general with exactly 10000 Mbps uses the larger buffers"""
        assert profile_overrides(make_facts(nic_mbps=10000), Profile.GENERAL)["net.core.rmem_max"] == 33554432
        assert profile_overrides(make_facts(nic_mbps=9999), Profile.GENERAL)["net.core.rmem_max"] == 16777216

    def test_disk_branch_picks_fast_value_only_for_fast_media(self, make_facts):
        """Test HDD takes the slow-disk swappiness"""
        assert profile_overrides(make_facts(disk_medium=DiskMedium.HDD), Profile.GENERAL)["vm.swappiness"] == 20
        assert profile_overrides(make_facts(disk_medium=DiskMedium.SSD), Profile.GENERAL)["vm.swappiness"] == 10
        assert profile_overrides(make_facts(disk_medium=DiskMedium.NVME), Profile.GENERAL)["vm.swappiness"] == 10

    def test_connection_limits_are_clamped(self, make_facts):
        low = profile_overrides(make_facts(threads=2), Profile.GENERAL)
        high = profile_overrides(make_facts(threads=1024), Profile.GENERAL)

        assert low["net.core.somaxconn"] == 4096
        assert low["net.ipv4.tcp_max_syn_backlog"] == 8192
        assert high["net.core.somaxconn"] == 65535
        assert high["net.ipv4.tcp_max_syn_backlog"] == 65536

    def test_process_limits_cap(self, make_facts):
        overrides = profile_overrides(make_facts(ram_gb=1024), Profile.GENERAL)
        assert overrides["kernel.pid_max"] == 4194304
        assert overrides["fs.file-max"] == 26214400


class TestVirtualizationProfile:

    @pytest.mark.parametrize("ram_gb,cores,expected", [
        (8, 4, 249),
        (128, 7, 3200),
        (1, 64, 2),
        (1, 200, 2),
    ])
    def test_hugepages_floor(self, make_facts, ram_gb, cores, expected):
        """Test nr_hugepages is computed per core and floored at 2"""
        overrides = profile_overrides(make_facts(ram_gb=ram_gb, cores=cores), Profile.VIRTUALIZATION)
        assert overrides["vm.nr_hugepages"] == expected

    def test_thp_defrag_switches_at_64gb(self, make_facts):
        assert profile_overrides(make_facts(ram_gb=64), Profile.VIRTUALIZATION)["vm.transparent_hugepage.defrag"] == "madvise"
        assert profile_overrides(make_facts(ram_gb=63), Profile.VIRTUALIZATION)["vm.transparent_hugepage.defrag"] == "never"

    @pytest.mark.parametrize("nic_mbps,expected", [(9999, 33554432), (10000, 67108864), (25000, 134217728)])
    def test_buffer_tiers(self, make_facts, nic_mbps, expected):
        assert profile_overrides(make_facts(nic_mbps=nic_mbps), Profile.VIRTUALIZATION)["net.core.wmem_max"] == expected

    def test_rpc_slots_band(self, make_facts):
        assert profile_overrides(make_facts(ram_gb=8), Profile.VIRTUALIZATION)["sunrpc.tcp_slot_table_entries"] == 64
        assert profile_overrides(make_facts(ram_gb=512), Profile.VIRTUALIZATION)["sunrpc.udp_slot_table_entries"] == 128
        assert profile_overrides(make_facts(ram_gb=2048), Profile.VIRTUALIZATION)["sunrpc.tcp_slot_table_entries"] == 256

    def test_dirty_ratio_tiers(self, make_facts):
        assert profile_overrides(make_facts(ram_gb=8), Profile.VIRTUALIZATION)["vm.dirty_ratio"] == 30
        assert profile_overrides(make_facts(ram_gb=16), Profile.VIRTUALIZATION)["vm.dirty_ratio"] == 20
        assert profile_overrides(make_facts(ram_gb=64), Profile.VIRTUALIZATION)["vm.dirty_ratio"] == 10


class TestWebProfile:

    def test_dirty_writeback_by_medium(self, make_facts):
        fast = profile_overrides(make_facts(ram_gb=32, disk_medium=DiskMedium.NVME), Profile.WEB)
        slow = profile_overrides(make_facts(ram_gb=32, disk_medium=DiskMedium.HDD), Profile.WEB)

        assert (fast["vm.dirty_ratio"], fast["vm.dirty_expire_centisecs"]) == (5, 300)
        assert (slow["vm.dirty_ratio"], slow["vm.dirty_expire_centisecs"]) == (3, 500)

    def test_tcp_triples_are_tuples(self, make_facts):
        overrides = profile_overrides(make_facts(nic_mbps=10000), Profile.WEB)
        assert overrides["net.ipv4.tcp_rmem"] == (4096, 131072, 33554432)
        assert overrides["net.ipv4.tcp_mem"] == (786432, 1048576, 26777216)

    def test_pid_max_band(self, make_facts):
        assert profile_overrides(make_facts(ram_gb=8), Profile.WEB)["kernel.pid_max"] == 1048576
        assert profile_overrides(make_facts(ram_gb=256), Profile.WEB)["kernel.pid_max"] == 2097152
        assert profile_overrides(make_facts(ram_gb=1024), Profile.WEB)["kernel.pid_max"] == 4194304


class TestDatabaseProfile:

    def test_shmall_derived_from_shmmax(self, make_facts):
        """Test shmall is computed from the already computed shmmax"""
        overrides = profile_overrides(make_facts(ram_gb=8), Profile.DATABASE)

        assert overrides["kernel.shmmax"] == 7730941132
        assert overrides["kernel.shmall"] == overrides["kernel.shmmax"] // 4096

    def test_shmmax_share_drops_at_64gb(self, make_facts):
        overrides = profile_overrides(make_facts(ram_gb=64), Profile.DATABASE)
        assert overrides["kernel.shmmax"] == 54975581388

    def test_page_cluster_by_medium(self, make_facts):
        assert profile_overrides(make_facts(disk_medium=DiskMedium.SSD), Profile.DATABASE)["vm.page-cluster"] == 0
        assert profile_overrides(make_facts(disk_medium=DiskMedium.HDD), Profile.DATABASE)["vm.page-cluster"] == 3


class TestCacheProfile:

    @pytest.mark.parametrize("ram_gb,expected", [(8, 49), (360, 5), (400, 5)])
    def test_vfs_cache_pressure_floor(self, make_facts, ram_gb, expected):
        assert profile_overrides(make_facts(ram_gb=ram_gb), Profile.CACHE)["vm.vfs_cache_pressure"] == expected

    @pytest.mark.parametrize("cores,expected", [(8, 5000), (9, 100000), (16, 160000)])
    def test_migration_cost(self, make_facts, cores, expected):
        assert profile_overrides(make_facts(cores=cores), Profile.CACHE)["kernel.sched_migration_cost_ns"] == expected

    def test_never_swaps(self, make_facts):
        assert profile_overrides(make_facts(), Profile.CACHE)["vm.swappiness"] == 0


class TestComputeProfile:

    @pytest.mark.parametrize("ram_gb,cores,expected", [
        (200, 64, 1),
        (64, 16, 1),
        (63, 16, 0),
        (64, 15, 0),
        (8, 2, 0),
    ])
    def test_zone_reclaim_needs_ram_and_cores(self, make_facts, ram_gb, cores, expected):
        overrides = profile_overrides(make_facts(ram_gb=ram_gb, cores=cores), Profile.COMPUTE)
        assert overrides["vm.zone_reclaim_mode"] == expected

    def test_thp_modes_follow_the_named_condition(self, make_facts):
        """Test 'always' is chosen exactly when the RAM condition holds"""
        assert profile_overrides(make_facts(ram_gb=16), Profile.COMPUTE)["vm.transparent_hugepage.enabled"] == "always"
        assert profile_overrides(make_facts(ram_gb=15), Profile.COMPUTE)["vm.transparent_hugepage.enabled"] == "madvise"
        assert profile_overrides(make_facts(ram_gb=32), Profile.COMPUTE)["vm.transparent_hugepage.defrag"] == "always"
        assert profile_overrides(make_facts(ram_gb=31), Profile.COMPUTE)["vm.transparent_hugepage.defrag"] == "madvise"

    def test_scheduler_bands(self, make_facts):
        small = profile_overrides(make_facts(cores=2), Profile.COMPUTE)
        large = profile_overrides(make_facts(cores=128), Profile.COMPUTE)

        assert small["kernel.sched_latency_ns"] == 10000
        assert large["kernel.sched_latency_ns"] == 60000
        assert small["net.core.netdev_budget"] == 300
        assert large["net.core.netdev_budget"] == 1000
        assert large["kernel.numa_balancing"] == 1


class TestFileserverProfile:

    @pytest.mark.parametrize("nic_mbps,expected", [(1000, 33554432), (10000, 67108864), (40000, 134217728)])
    def test_buffer_tiers(self, make_facts, nic_mbps, expected):
        assert profile_overrides(make_facts(nic_mbps=nic_mbps), Profile.FILESERVER)["net.core.rmem_max"] == expected

    def test_nfsd_connections_band(self, make_facts):
        assert profile_overrides(make_facts(ram_gb=2), Profile.FILESERVER)["fs.nfsd.max_connections"] == 256
        assert profile_overrides(make_facts(ram_gb=2048), Profile.FILESERVER)["fs.nfsd.max_connections"] == 65536

    def test_hdd_keeps_dentries(self, make_facts):
        assert profile_overrides(make_facts(disk_medium=DiskMedium.HDD), Profile.FILESERVER)["vm.vfs_cache_pressure"] == 10


class TestNetworkProfile:

    @pytest.mark.parametrize("nic_mbps,expected", [(9999, 67108864), (10000, 134217728), (40000, 268435456)])
    def test_buffer_tiers(self, make_facts, nic_mbps, expected):
        assert profile_overrides(make_facts(nic_mbps=nic_mbps), Profile.NETWORK)["net.core.rmem_max"] == expected

    def test_budget_usecs_by_link_speed(self, make_facts):
        assert profile_overrides(make_facts(nic_mbps=1000), Profile.NETWORK)["net.core.netdev_budget_usecs"] == 4000
        assert profile_overrides(make_facts(nic_mbps=1001), Profile.NETWORK)["net.core.netdev_budget_usecs"] == 8000

    def test_routing_enabled(self, make_facts):
        overrides = profile_overrides(make_facts(), Profile.NETWORK)
        assert overrides["net.ipv4.ip_forward"] == 1
        assert overrides["net.ipv4.conf.all.rp_filter"] == 2

    def test_conntrack_cap(self, make_facts):
        assert profile_overrides(make_facts(ram_gb=8), Profile.NETWORK)["net.netfilter.nf_conntrack_max"] == 524288
        assert profile_overrides(make_facts(ram_gb=1024), Profile.NETWORK)["net.netfilter.nf_conntrack_max"] == 8388608


class TestContainerProfile:

    @pytest.mark.parametrize("ram_gb,expected", [(8, 5000), (100, 25600), (200, 30000)])
    def test_namespace_band(self, make_facts, ram_gb, expected):
        overrides = profile_overrides(make_facts(ram_gb=ram_gb), Profile.CONTAINER)
        for scope in ("user", "ipc", "pid", "net", "mnt", "uts"):
            assert overrides[f"user.max_{scope}_namespaces"] == expected

    def test_process_limits_band(self, make_facts):
        assert profile_overrides(make_facts(ram_gb=8), Profile.CONTAINER)["kernel.pid_max"] == 4194304
        assert profile_overrides(make_facts(ram_gb=1024), Profile.CONTAINER)["kernel.threads-max"] == 16777216

    def test_keys_limits(self, make_facts):
        overrides = profile_overrides(make_facts(ram_gb=8), Profile.CONTAINER)
        assert overrides["kernel.keys.maxkeys"] == 1000
        assert overrides["kernel.keys.maxbytes"] == 1000000
        assert overrides["kernel.keys.root_maxkeys"] == 32768


class TestDevelopmentProfile:

    def test_somaxconn_by_link(self, make_facts):
        assert profile_overrides(make_facts(nic_mbps=1000), Profile.DEVELOPMENT)["net.core.somaxconn"] == 4096
        assert profile_overrides(make_facts(nic_mbps=999), Profile.DEVELOPMENT)["net.core.somaxconn"] == 1024

    def test_interactive_scheduler(self, make_facts):
        overrides = profile_overrides(make_facts(cores=4), Profile.DEVELOPMENT)
        assert overrides["kernel.sched_autogroup_enabled"] == 1
        assert overrides["kernel.sched_min_granularity_ns"] == 1000000
        assert overrides["kernel.sched_latency_ns"] == 6000000
        assert overrides["kernel.sched_migration_cost_ns"] == 120000
