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

"""
Pytest configuration for sysctl generator unit tests.

Puts the repository root on sys.path so the namespace packages import
without installation, and provides hardware fixtures shared by the tests.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sysctl_generation.hardware_facts import DiskMedium, HardwareFacts


@pytest.fixture
def make_facts():
    """Factory for HardwareFacts with a small HDD machine as default"""
    def _make(cores=4, threads=4, ram_gb=8, nic_mbps=1000, disk_medium=DiskMedium.HDD,
              is_container=False):
        return HardwareFacts(cores, threads, ram_gb, nic_mbps, disk_medium, is_container)
    return _make


@pytest.fixture
def small_hdd_facts(make_facts):
    return make_facts()


@pytest.fixture
def hardware_config():
    """Valid generation config in the shape preflight and the worker consume"""
    return {
        'hardware': {
            'cores': 4,
            'threads': 4,
            'ram_gb': 8,
            'nic_mbps': 1000,
            'disk_medium': 'hdd',
            'is_container': False,
        },
        'profile': 'general',
        'ipv6': {'disabled': False},
        'output': {'path': None, 'install_path': '/etc/sysctl.conf'},
    }


@pytest.fixture(autouse=True)
def metrics_disabled(monkeypatch):
    monkeypatch.setenv('PUSH_METRICS_ENABLED', 'false')
