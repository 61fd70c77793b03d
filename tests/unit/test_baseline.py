#
# Copyright (c) 2019 Matthias Tafelmeier.
#
# This file is part of godon
#
# godon is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# godon is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this godon. If not, see <http://www.gnu.org/licenses/>.
#

import pytest

from sysctl_generation.baseline import (
    BASELINE_CONSTANTS,
    baseline_settings,
    min_free_kbytes,
    nic_buffer_tier,
)
from sysctl_generation.hardware_facts import DiskMedium


class TestNicBufferTier:
    """Test NIC speed tiering of socket buffer ceilings"""

    @pytest.mark.parametrize("nic_mbps,expected_max", [
        (100, 4194304),
        (999, 4194304),
        (1000, 16777216),
        (9999, 16777216),
        (10000, 67108864),
        (100000, 67108864),
    ])
    def test_tier_boundaries(self, nic_mbps, expected_max):
        """Test a speed exactly on a threshold belongs to the higher tier"""
        buffer_max, _ = nic_buffer_tier(nic_mbps)
        assert buffer_max == expected_max

    def test_tcp_triples_follow_tier(self):
        """Test tcp buffer triple is picked together with the ceiling"""
        assert nic_buffer_tier(10000)[1] == (4096, 262144, 33554432)
        assert nic_buffer_tier(1000)[1] == (4096, 262144, 16777216)
        assert nic_buffer_tier(10)[1] == (4096, 131072, 4194304)


class TestBaselineSettings:
    """Test profile-independent baseline derivation"""

    def test_swappiness_depends_on_disk(self, make_facts):
        """Test fast media get the lower swappiness"""
        assert baseline_settings(make_facts(disk_medium=DiskMedium.HDD))["vm.swappiness"] == 10
        assert baseline_settings(make_facts(disk_medium=DiskMedium.SSD))["vm.swappiness"] == 5
        assert baseline_settings(make_facts(disk_medium=DiskMedium.NVME))["vm.swappiness"] == 5

    def test_dirty_ratios_switch_at_16gb(self, make_facts):
        """Test dirty ratios tighten from 16 GB RAM upwards"""
        small = baseline_settings(make_facts(ram_gb=15))
        large = baseline_settings(make_facts(ram_gb=16))

        assert (small["vm.dirty_ratio"], small["vm.dirty_background_ratio"]) == (10, 5)
        assert (large["vm.dirty_ratio"], large["vm.dirty_background_ratio"]) == (5, 2)

    def test_min_free_kbytes_scales_with_ram(self, make_facts):
        """Test 4 MB reserve per GB"""
        assert min_free_kbytes(make_facts(ram_gb=8)) == 32768
        assert baseline_settings(make_facts(ram_gb=1))["vm.min_free_kbytes"] == 4096

    def test_somaxconn_is_unclamped(self, make_facts):
        """Test somaxconn is threads * 1024 without a ceiling"""
        assert baseline_settings(make_facts(threads=4))["net.core.somaxconn"] == 4096
        assert baseline_settings(make_facts(threads=128))["net.core.somaxconn"] == 131072

    def test_netdev_backlog_tier(self, make_facts):
        assert baseline_settings(make_facts(nic_mbps=9999))["net.core.netdev_max_backlog"] == 30000
        assert baseline_settings(make_facts(nic_mbps=10000))["net.core.netdev_max_backlog"] == 250000

    def test_constants_are_carried(self, small_hdd_facts):
        """Test every hardware independent constant reaches the baseline"""
        settings = baseline_settings(small_hdd_facts)

        for key, value in BASELINE_CONSTANTS.items():
            assert settings[key] == value

        assert settings["net.ipv4.tcp_congestion_control"] == "bbr"
        assert settings["net.core.default_qdisc"] == "fq"
        assert settings["net.ipv4.ip_local_port_range"] == (1024, 65535)

    def test_baseline_does_not_mutate_constants(self, make_facts):
        """Test repeated evaluation leaves the shared constants intact"""
        before = dict(BASELINE_CONSTANTS)
        baseline_settings(make_facts(ram_gb=64, nic_mbps=40000))
        baseline_settings(make_facts(ram_gb=1, nic_mbps=10))
        assert BASELINE_CONSTANTS == before
