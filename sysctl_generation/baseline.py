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
Baseline rule set.

Parameters that apply regardless of workload profile, derived from the
hardware facts alone. Profile and IPv6 overrides are layered on top of
this mapping by the resolution engine.
"""

import logging
from typing import Any, Dict, Sequence, Tuple

from sysctl_generation.hardware_facts import HardwareFacts

logger = logging.getLogger(__name__)

SettingsMap = Dict[str, Any]

# (threshold Mbps, (rmem_max/wmem_max, tcp_rmem/tcp_wmem triple)), highest first
NIC_BUFFER_TIERS: Sequence[Tuple[int, Tuple[int, Tuple[int, int, int]]]] = (
    (10000, (67108864, (4096, 262144, 33554432))),
    (1000, (16777216, (4096, 262144, 16777216))),
)
NIC_BUFFER_FLOOR = (4194304, (4096, 131072, 4194304))

BASELINE_CONSTANTS: SettingsMap = {
    # Network buffers
    "net.core.rmem_default": 2097152,
    "net.core.wmem_default": 2097152,
    "net.core.optmem_max": 4194304,
    "net.ipv4.udp_mem": (4194304, 8388608, 16777216),
    "net.ipv4.tcp_mem": (786432, 1048576, 26777216),
    "net.ipv4.udp_rmem_min": 16384,
    "net.ipv4.udp_wmem_min": 16384,

    # Network queues and connection handling
    "net.ipv4.tcp_max_syn_backlog": 16384,
    "net.core.busy_poll": 50,
    "net.core.busy_read": 50,
    "net.ipv4.tcp_fastopen": 3,
    "net.ipv4.tcp_notsent_lowat": 16384,
    "net.core.netdev_budget_usecs": 4000,
    "net.core.dev_weight": 64,
    "net.ipv4.tcp_max_tw_buckets": 2000000,
    "net.ipv4.ip_local_port_range": (1024, 65535),
    "net.ipv4.tcp_congestion_control": "bbr",
    "net.core.default_qdisc": "fq",
    "net.ipv4.tcp_window_scaling": 1,
    "net.ipv4.tcp_timestamps": 1,
    "net.ipv4.tcp_sack": 1,
    "net.ipv4.tcp_dsack": 1,
    "net.ipv4.tcp_slow_start_after_idle": 0,
    "net.ipv4.tcp_fin_timeout": 10,
    "net.ipv4.tcp_keepalive_time": 300,
    "net.ipv4.tcp_keepalive_intvl": 10,
    "net.ipv4.tcp_keepalive_probes": 6,
    "net.ipv4.tcp_moderate_rcvbuf": 1,
    "net.ipv4.tcp_frto": 2,
    "net.ipv4.tcp_mtu_probing": 1,
    "net.ipv4.conf.all.rp_filter": 1,
    "net.ipv4.conf.default.rp_filter": 1,
    "net.ipv4.conf.all.accept_redirects": 0,
    "net.ipv4.conf.default.accept_redirects": 0,
    "net.netfilter.nf_conntrack_max": 1048576,

    # Scheduler
    "kernel.sched_min_granularity_ns": 10000,
    "kernel.sched_wakeup_granularity_ns": 15000,
    "kernel.sched_latency_ns": 60000,
    "kernel.sched_rt_runtime_us": 980000,
    "kernel.sched_migration_cost_ns": 50000,
    "kernel.sched_autogroup_enabled": 0,
    "kernel.sched_cfs_bandwidth_slice_us": 3000,

    # Memory management
    "vm.dirty_expire_centisecs": 1000,
    "vm.dirty_writeback_centisecs": 100,
    "vm.zone_reclaim_mode": 0,
    "vm.vfs_cache_pressure": 50,
    "vm.overcommit_memory": 0,
    "vm.overcommit_ratio": 50,
    "vm.max_map_count": 1048576,
    "vm.page-cluster": 0,
    "vm.oom_kill_allocating_task": 1,

    # Filesystem and process limits
    "fs.file-max": 26214400,
    "fs.nr_open": 26214400,
    "fs.aio-max-nr": 1048576,
    "fs.inotify.max_user_instances": 8192,
    "fs.inotify.max_user_watches": 1048576,
    "kernel.pid_max": 4194304,
}


def min_free_kbytes(facts: HardwareFacts) -> int:
    """Baseline reserve of 4 MB per GB of RAM; profiles scale from this"""
    return facts.ram_gb * 4096


def nic_buffer_tier(nic_mbps: int) -> Tuple[int, Tuple[int, int, int]]:
    for threshold, preset in NIC_BUFFER_TIERS:
        if nic_mbps >= threshold:
            return preset
    return NIC_BUFFER_FLOOR


def baseline_settings(facts: HardwareFacts) -> SettingsMap:
    """Compute the profile-independent baseline mapping"""
    buffer_max, tcp_buffers = nic_buffer_tier(facts.nic_mbps)

    if facts.ram_gb >= 16:
        dirty_ratio, dirty_background_ratio = 5, 2
    else:
        dirty_ratio, dirty_background_ratio = 10, 5

    settings = dict(BASELINE_CONSTANTS)
    settings.update({
        "net.core.rmem_max": buffer_max,
        "net.core.wmem_max": buffer_max,
        "net.ipv4.tcp_rmem": tcp_buffers,
        "net.ipv4.tcp_wmem": tcp_buffers,
        "net.core.netdev_max_backlog": 250000 if facts.nic_mbps >= 10000 else 30000,
        "net.core.somaxconn": facts.threads * 1024,
        "vm.swappiness": 5 if facts.fast_disk else 10,
        "vm.dirty_ratio": dirty_ratio,
        "vm.dirty_background_ratio": dirty_background_ratio,
        "vm.min_free_kbytes": min_free_kbytes(facts),
    })

    logger.debug(f"Baseline computed {len(settings)} parameters (buffer ceiling {buffer_max})")
    return settings
