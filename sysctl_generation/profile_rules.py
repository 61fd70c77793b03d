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
Workload profile rule sets.

Each profile is a pure function of the hardware facts returning an override
map that the resolution engine layers over the baseline. Profiles never read
each other's output. Values scale with cores, threads, RAM and NIC speed and
are constrained either by clamping into a band or by tiering over ordered
thresholds (highest threshold first, inclusive).
"""

import logging
from typing import Any, Callable, Dict, Sequence, Tuple

from sysctl_generation.baseline import min_free_kbytes
from sysctl_generation.hardware_facts import HardwareFacts, Profile

logger = logging.getLogger(__name__)

OverrideMap = Dict[str, Any]
ProfileRule = Callable[[HardwareFacts], OverrideMap]


def clamp(value: int, low: int, high: int) -> int:
    """Constrain value into [low, high]"""
    if value < low:
        return low
    if value > high:
        return high
    return value


def tier(value: int, tiers: Sequence[Tuple[int, Any]], default: Any) -> Any:
    """Pick the result of the highest threshold that value reaches"""
    for threshold, result in tiers:
        if value >= threshold:
            return result
    return default


def general_overrides(facts: HardwareFacts) -> OverrideMap:
    ram, cores, threads, nic = facts.ram_gb, facts.cores, facts.threads, facts.nic_mbps
    min_free = min_free_kbytes(facts)
    wide = nic >= 10000
    tcp_buffers = (4096, 131072, 33554432) if wide else (4096, 65536, 16777216)

    return {
        # Network buffers
        "net.core.rmem_max": 33554432 if wide else 16777216,
        "net.core.wmem_max": 33554432 if wide else 16777216,
        "net.core.rmem_default": 2097152,
        "net.core.wmem_default": 2097152,
        "net.core.optmem_max": 4194304,
        "net.ipv4.tcp_rmem": tcp_buffers,
        "net.ipv4.tcp_wmem": tcp_buffers,
        "net.ipv4.udp_mem": (4194304, 8388608, 16777216),
        "net.ipv4.tcp_mem": (786432, 1048576, 16777216),

        # Connections
        "net.core.somaxconn": clamp(threads * 256, 4096, 65535),
        "net.ipv4.tcp_max_syn_backlog": clamp(threads * 512, 8192, 65536),
        "net.core.netdev_max_backlog": 250000 if wide else 30000,

        # Memory
        "vm.swappiness": 10 if facts.fast_disk else 20,
        "vm.vfs_cache_pressure": 50,
        "vm.dirty_ratio": 10 if ram >= 32 else 20,
        "vm.dirty_background_ratio": 3 if ram >= 32 else 5,
        "vm.min_free_kbytes": max(min_free, ram * 1024),

        # Process limits
        "kernel.pid_max": min(ram * 16384, 4194304),
        "fs.file-max": min(ram * 262144, 26214400),

        # Scheduler
        "kernel.sched_migration_cost_ns": 100000 if cores <= 4 else 500000,
        "kernel.sched_min_granularity_ns": 10000,
        "kernel.sched_wakeup_granularity_ns": 15000,
    }


def virtualization_overrides(facts: HardwareFacts) -> OverrideMap:
    ram, cores, threads, nic = facts.ram_gb, facts.cores, facts.threads, facts.nic_mbps
    min_free = min_free_kbytes(facts)
    buffer_max = tier(nic, ((25000, 134217728), (10000, 67108864)), 33554432)
    tcp_buffers = (8192, 262144, 134217728) if nic >= 25000 else (4096, 131072, 67108864)

    # Static huge pages share RAM across cores; never fewer than two
    hugepages_per_gb = 200 if ram >= 128 else 156
    nr_hugepages = ram * hugepages_per_gb // (cores + 1)
    nr_hugepages = max(nr_hugepages, 2)

    rpc_slots = clamp(ram // 4, 64, 256)

    return {
        # VM traffic buffers
        "net.core.rmem_max": buffer_max,
        "net.core.wmem_max": buffer_max,
        "net.core.rmem_default": 8388608,
        "net.core.wmem_default": 8388608,
        "net.core.optmem_max": 16777216,
        "net.ipv4.tcp_rmem": tcp_buffers,
        "net.ipv4.tcp_wmem": tcp_buffers,
        "net.ipv4.udp_mem": (16777216, 33554432, 67108864),
        "net.ipv4.tcp_mem": (16777216, 33554432, 67108864),

        # Forwarding and bridging for guests
        "net.ipv4.ip_forward": 1,
        "net.ipv6.conf.all.forwarding": 1,
        "net.bridge.bridge-nf-call-iptables": 0,
        "net.bridge.bridge-nf-call-ip6tables": 0,
        "net.bridge.bridge-nf-call-arptables": 0,
        "net.core.netdev_max_backlog": 250000 if nic >= 10000 else 100000,
        "net.core.somaxconn": min(threads * 1024, 65535),
        "net.ipv4.tcp_max_syn_backlog": clamp(threads * 1024, 16384, 262144),
        "net.ipv4.tcp_tw_reuse": 1,
        "net.ipv4.tcp_fin_timeout": 15,

        # Memory
        "vm.nr_hugepages": nr_hugepages,
        "vm.hugetlb_shm_group": 0,
        "vm.transparent_hugepage.enabled": "madvise",
        "vm.transparent_hugepage.defrag": "madvise" if ram >= 64 else "never",
        "vm.swappiness": 5 if facts.fast_disk else 10,
        "vm.dirty_ratio": tier(ram, ((64, 10), (16, 20)), 30),
        "vm.dirty_background_ratio": tier(ram, ((64, 3), (16, 5)), 10),
        "vm.overcommit_memory": 1,
        "vm.overcommit_ratio": min(50 + ram // 8, 95),
        "vm.zone_reclaim_mode": 0,
        "vm.min_free_kbytes": max(min_free, ram * 2048),
        "vm.vfs_cache_pressure": 50 if ram >= 64 else 75,

        # Scheduler
        "kernel.sched_migration_cost_ns": 1000000 if cores <= 4 else 5000000,
        "kernel.sched_autogroup_enabled": 0,
        "kernel.pid_max": min(ram * 16384, 8388608),

        # Connection tracking
        "net.netfilter.nf_conntrack_max": min(ram * 16384, 4194304),
        "net.netfilter.nf_conntrack_tcp_timeout_established": 86400,

        # NFS-backed images
        "sunrpc.tcp_slot_table_entries": rpc_slots,
        "sunrpc.udp_slot_table_entries": rpc_slots,

        # KVM/QEMU
        "kernel.tsc_reliable": 1,
        "kernel.randomize_va_space": 0,

        # File descriptors
        "fs.file-max": min(ram * 2097152, 1073741824),
        "fs.inotify.max_user_watches": min(ram * 65536, 8388608),
        "fs.inotify.max_user_instances": min(ram * 32, 8192),
    }


def web_overrides(facts: HardwareFacts) -> OverrideMap:
    ram, cores, threads, nic = facts.ram_gb, facts.cores, facts.threads, facts.nic_mbps
    min_free = min_free_kbytes(facts)
    wide = nic >= 10000
    tcp_buffers = (4096, 131072, 33554432) if wide else (4096, 65536, 16777216)

    overrides = {
        "net.core.rmem_max": 33554432 if wide else 16777216,
        "net.core.wmem_max": 33554432 if wide else 16777216,
        "net.core.rmem_default": 1048576,
        "net.core.wmem_default": 1048576,
        "net.core.optmem_max": 4194304,
        "net.ipv4.tcp_rmem": tcp_buffers,
        "net.ipv4.tcp_wmem": tcp_buffers,
        "net.ipv4.udp_mem": (4194304, 8388608, 16777216),
        "net.ipv4.tcp_mem": (786432, 1048576, 26777216),

        "vm.swappiness": 10 if facts.fast_disk else 30,
        "vm.vfs_cache_pressure": 70,
        "vm.min_free_kbytes": max(min_free * 3 // 2, ram * 1024),

        # Many concurrent connections
        "net.core.somaxconn": clamp(threads * 1024, 4096, 262144),
        "net.core.netdev_max_backlog": 250000 if wide else 65536,
        "net.ipv4.tcp_max_syn_backlog": max(threads * 1024, 8192),
        "net.ipv4.tcp_fin_timeout": 10 if wide else 15,
        "net.ipv4.tcp_keepalive_time": 600,
        "net.ipv4.tcp_max_tw_buckets": min(ram * 50000, 6000000),
        "net.ipv4.tcp_tw_reuse": 1,
        "net.ipv4.tcp_fastopen": 3,
        "net.ipv4.tcp_slow_start_after_idle": 0,

        "fs.file-max": min(ram * 1048576, 104857600),
        "fs.inotify.max_user_watches": min(ram * 131072, 8388608),

        "kernel.sched_min_granularity_ns": 15000000 if cores >= 16 else 10000000,
        "kernel.sched_wakeup_granularity_ns": 20000000 if cores >= 16 else 15000000,
        "kernel.pid_max": clamp(ram * 8192, 1048576, 4194304),
    }

    if facts.fast_disk:
        overrides.update({
            "vm.dirty_ratio": 5 if ram >= 32 else 10,
            "vm.dirty_background_ratio": 2 if ram >= 32 else 5,
            "vm.dirty_expire_centisecs": 300,
            "vm.dirty_writeback_centisecs": 100,
        })
    else:
        overrides.update({
            "vm.dirty_ratio": 3 if ram >= 32 else 5,
            "vm.dirty_background_ratio": 1 if ram >= 32 else 2,
            "vm.dirty_expire_centisecs": 500,
            "vm.dirty_writeback_centisecs": 250,
        })

    return overrides


def database_overrides(facts: HardwareFacts) -> OverrideMap:
    ram, cores, threads, nic = facts.ram_gb, facts.cores, facts.threads, facts.nic_mbps
    min_free = min_free_kbytes(facts)
    wide = nic >= 10000
    tcp_buffers = (8192, 262144, 67108864) if wide else (4096, 131072, 33554432)

    # shmall is expressed in 4 KB pages of shmmax, so shmmax goes first
    shmmax_percent = 80 if ram >= 64 else 90
    shmmax = ram * 1024 * 1024 * 1024 * shmmax_percent // 100
    shmall = shmmax // 4096

    overrides = {
        "net.core.rmem_max": 67108864 if wide else 33554432,
        "net.core.wmem_max": 67108864 if wide else 33554432,
        "net.core.rmem_default": 4194304,
        "net.core.wmem_default": 4194304,
        "net.core.optmem_max": 8388608,
        "net.ipv4.tcp_rmem": tcp_buffers,
        "net.ipv4.tcp_wmem": tcp_buffers,
        "net.ipv4.udp_mem": (8388608, 16777216, 33554432),
        "net.ipv4.tcp_mem": (1048576, 4194304, 33554432),

        # Shared memory
        "kernel.shmmax": shmmax,
        "kernel.shmall": shmall,
        "kernel.shmmni": max(ram * 32, 4096),

        "vm.swappiness": 1 if facts.fast_disk else 5,
        "vm.zone_reclaim_mode": 0,
        "vm.min_free_kbytes": max(min_free * 2, ram * 2048),
        "vm.vfs_cache_pressure": 50 if facts.fast_disk else 125,
        "vm.page-cluster": 0 if facts.fast_disk else 3,

        # Client connections
        "net.core.somaxconn": clamp(threads * 256, 4096, 65535),
        "net.ipv4.tcp_max_syn_backlog": min(threads * 2048, 131072),
        "net.ipv4.tcp_keepalive_time": 90,
        "net.ipv4.tcp_keepalive_intvl": 10,
        "net.ipv4.tcp_keepalive_probes": 9,
        "net.ipv4.tcp_max_tw_buckets": 2000000,
        "net.ipv4.tcp_tw_reuse": 0,

        "fs.aio-max-nr": min(ram * 65536, 4194304),
        "fs.file-max": min(ram * 2097152, 104857600),

        "kernel.sched_migration_cost_ns": 5000000 if cores >= 16 else 1000000,
        "kernel.sched_min_granularity_ns": 10000,
        "kernel.sched_wakeup_granularity_ns": 15000,
        "kernel.sched_autogroup_enabled": 0,
    }

    if facts.fast_disk:
        overrides.update({
            "vm.dirty_ratio": 20 if ram >= 32 else 40,
            "vm.dirty_background_ratio": 5 if ram >= 32 else 10,
            "vm.dirty_expire_centisecs": 500,
            "vm.dirty_writeback_centisecs": 100,
        })
    else:
        overrides.update({
            "vm.dirty_ratio": 10 if ram >= 32 else 20,
            "vm.dirty_background_ratio": 3 if ram >= 32 else 5,
            "vm.dirty_expire_centisecs": 1000,
            "vm.dirty_writeback_centisecs": 500,
        })

    return overrides


def cache_overrides(facts: HardwareFacts) -> OverrideMap:
    ram, cores, threads, nic = facts.ram_gb, facts.cores, facts.threads, facts.nic_mbps
    min_free = min_free_kbytes(facts)
    wide = nic >= 10000

    # Small requests in, larger responses out
    if wide:
        tcp_rmem, tcp_wmem = (4096, 65536, 33554432), (4096, 131072, 67108864)
    else:
        tcp_rmem, tcp_wmem = (4096, 32768, 16777216), (4096, 65536, 33554432)

    if cores <= 8:
        migration_cost = 5000
    else:
        migration_cost = max(cores * 10000, 100000)

    return {
        "net.core.rmem_max": 33554432 if wide else 16777216,
        "net.core.wmem_max": 67108864 if wide else 33554432,
        "net.core.rmem_default": 1048576,
        "net.core.wmem_default": 4194304,
        "net.core.optmem_max": 4194304,
        "net.ipv4.tcp_rmem": tcp_rmem,
        "net.ipv4.tcp_wmem": tcp_wmem,
        "net.ipv4.udp_mem": (8388608, 16777216, 33554432),
        "net.ipv4.tcp_mem": (1048576, 4194304, 33554432),

        # Keep the working set in RAM
        "vm.swappiness": 0,
        "vm.overcommit_memory": 1,
        "vm.overcommit_ratio": min(50 + ram // 4, 95),
        "vm.min_free_kbytes": max(min_free * 3 // 2, ram * 1024),
        "vm.vfs_cache_pressure": max(50 - ram // 8, 5),
        "vm.dirty_ratio": 3 if ram >= 64 else 5,
        "vm.dirty_background_ratio": 1 if ram >= 64 else 2,
        "vm.zone_reclaim_mode": 0,

        "net.core.somaxconn": clamp(threads * 2048, 65535, 524288),
        "net.ipv4.tcp_max_syn_backlog": clamp(threads * 4096, 65536, 262144),
        "net.ipv4.tcp_max_tw_buckets": 6000000,
        "net.ipv4.tcp_tw_reuse": 1,
        "net.ipv4.tcp_fin_timeout": 5 if wide else 10,
        "net.core.netdev_max_backlog": 250000 if wide else 100000,

        # Latency
        "kernel.sched_min_granularity_ns": 5000 if cores <= 4 else 10000,
        "kernel.sched_wakeup_granularity_ns": 10000 if cores <= 4 else 15000,
        "kernel.numa_balancing": 0,
        "kernel.sched_migration_cost_ns": migration_cost,
        "kernel.sched_autogroup_enabled": 0,

        "fs.file-max": min(ram * 2097152, 104857600),
        "fs.aio-max-nr": min(ram * 8192, 1048576),
    }


def compute_overrides(facts: HardwareFacts) -> OverrideMap:
    ram, cores, threads, nic = facts.ram_gb, facts.cores, facts.threads, facts.nic_mbps
    min_free = min_free_kbytes(facts)
    wide = nic >= 10000
    tcp_buffers = (4096, 131072, 33554432) if wide else (4096, 65536, 16777216)
    process_limit = clamp(ram * 32768, 4194304, 16777216)

    return {
        "net.core.rmem_max": 33554432 if wide else 16777216,
        "net.core.wmem_max": 33554432 if wide else 16777216,
        "net.core.rmem_default": 2097152,
        "net.core.wmem_default": 2097152,
        "net.core.optmem_max": 4194304,
        "net.ipv4.tcp_rmem": tcp_buffers,
        "net.ipv4.tcp_wmem": tcp_buffers,
        "net.ipv4.udp_mem": (4194304, 8388608, 16777216),
        "net.ipv4.tcp_mem": (1048576, 4194304, 16777216),

        # Scheduler scaled to core count
        "kernel.sched_min_granularity_ns": 3000 if cores <= 4 else 5000,
        "kernel.sched_wakeup_granularity_ns": 5000 if cores <= 4 else 10000,
        "kernel.sched_latency_ns": clamp(cores * 1000, 10000, 60000),
        "kernel.sched_migration_cost_ns": max(cores * 5000, 50000),
        "kernel.sched_autogroup_enabled": 0,
        "kernel.numa_balancing": 1 if cores >= 32 else 0,
        "kernel.sched_rt_runtime_us": 990000,

        # Memory
        "vm.swappiness": 1 if facts.fast_disk else 5,
        "vm.overcommit_ratio": min(50 + ram // 16, 95),
        "vm.min_free_kbytes": max(min_free * 6 // 5, ram * 512),
        "vm.zone_reclaim_mode": 1 if ram >= 64 and cores >= 16 else 0,
        "vm.transparent_hugepage.enabled": "always" if ram >= 16 else "madvise",
        "vm.transparent_hugepage.defrag": "always" if ram >= 32 else "madvise",

        "kernel.pid_max": process_limit,
        "kernel.threads-max": process_limit,

        "net.core.busy_poll": 50 if wide else 25,
        "net.core.busy_read": 50 if wide else 25,
        "net.core.netdev_budget": clamp(cores * 20, 300, 1000),
        "net.core.somaxconn": clamp(threads * 128, 1024, 65535),

        "fs.file-max": min(ram * 1048576, 52428800),
        "fs.aio-max-nr": min(ram * 4096, 1048576),
    }


def fileserver_overrides(facts: HardwareFacts) -> OverrideMap:
    ram, threads, nic = facts.ram_gb, facts.threads, facts.nic_mbps
    min_free = min_free_kbytes(facts)
    buffer_max = tier(nic, ((40000, 134217728), (10000, 67108864)), 33554432)
    tcp_buffers = (8192, 262144, 134217728) if nic >= 25000 else (4096, 131072, 67108864)
    rpc_slots = clamp(ram * 8, 128, 2048)

    overrides = {
        # Large transfers
        "net.core.rmem_max": buffer_max,
        "net.core.wmem_max": buffer_max,
        "net.core.rmem_default": 8388608,
        "net.core.wmem_default": 8388608,
        "net.core.optmem_max": 16777216,
        "net.ipv4.tcp_rmem": tcp_buffers,
        "net.ipv4.tcp_wmem": tcp_buffers,
        "net.ipv4.udp_mem": (16777216, 33554432, 67108864),
        "net.ipv4.tcp_mem": (16777216, 33554432, 67108864),

        "net.ipv4.tcp_window_scaling": 1,
        "net.ipv4.tcp_timestamps": 1,
        "net.ipv4.tcp_sack": 1,
        "net.ipv4.tcp_slow_start_after_idle": 0,
        "net.ipv4.tcp_fin_timeout": 20,
        "net.core.netdev_max_backlog": 250000 if nic >= 10000 else 100000,
        "net.core.somaxconn": clamp(threads * 512, 2048, 65535),

        # NFS/SMB
        "sunrpc.tcp_slot_table_entries": rpc_slots,
        "sunrpc.udp_slot_table_entries": rpc_slots,
        "fs.nfsd.max_connections": clamp(ram * 64, 256, 65536),

        "fs.file-max": min(ram * 4194304, 1073741824),
        "fs.inotify.max_user_watches": min(ram * 131072, 8388608),
        "fs.inotify.max_user_instances": min(ram * 256, 65536),
        "fs.aio-max-nr": min(ram * 32768, 4194304),

        "vm.min_free_kbytes": max(min_free * 3 // 2, ram * 1024),
    }

    # Page cache behaviour follows the medium
    if facts.fast_disk:
        overrides.update({
            "vm.dirty_ratio": 15 if ram >= 32 else 30,
            "vm.dirty_background_ratio": 3 if ram >= 32 else 5,
            "vm.vfs_cache_pressure": 50,
            "vm.swappiness": 10,
            "vm.dirty_expire_centisecs": 1500,
            "vm.dirty_writeback_centisecs": 250,
        })
    else:
        overrides.update({
            "vm.dirty_ratio": 10 if ram >= 32 else 20,
            "vm.dirty_background_ratio": 2 if ram >= 32 else 3,
            "vm.vfs_cache_pressure": 10,
            "vm.swappiness": 20,
            "vm.dirty_expire_centisecs": 3000,
            "vm.dirty_writeback_centisecs": 500,
        })

    return overrides


def network_overrides(facts: HardwareFacts) -> OverrideMap:
    ram, cores, threads, nic = facts.ram_gb, facts.cores, facts.threads, facts.nic_mbps
    min_free = min_free_kbytes(facts)
    buffer_max = tier(nic, ((40000, 268435456), (10000, 134217728)), 67108864)
    tcp_buffers = tier(
        nic,
        ((40000, (16384, 1048576, 268435456)), (10000, (8192, 524288, 134217728))),
        (4096, 262144, 67108864),
    )
    if nic >= 25000:
        protocol_mem = (33554432, 67108864, 134217728)
    else:
        protocol_mem = (16777216, 33554432, 67108864)

    budget_usecs = 4000 if nic <= 1000 else 8000
    budget_usecs = clamp(budget_usecs, 2000, 16000)
    fd_limit = min(ram * 1048576, 104857600)

    return {
        # Maximum throughput and buffering
        "net.core.rmem_max": buffer_max,
        "net.core.wmem_max": buffer_max,
        "net.core.rmem_default": 16777216,
        "net.core.wmem_default": 16777216,
        "net.core.optmem_max": 67108864 if nic >= 25000 else 33554432,
        "net.ipv4.tcp_rmem": tcp_buffers,
        "net.ipv4.tcp_wmem": tcp_buffers,
        "net.ipv4.udp_mem": protocol_mem,
        "net.ipv4.tcp_mem": protocol_mem,

        # Routing and forwarding
        "net.ipv4.ip_forward": 1,
        "net.ipv6.conf.all.forwarding": 1,
        "net.ipv4.conf.all.route_localnet": 1,
        "net.ipv4.conf.all.rp_filter": 2,
        "net.ipv4.conf.default.rp_filter": 2,

        "net.netfilter.nf_conntrack_max": min(ram * 65536, 8388608),
        "net.netfilter.nf_conntrack_tcp_timeout_established": 432000,
        "net.netfilter.nf_conntrack_tcp_timeout_time_wait": 30,

        # Packet processing
        "net.core.netdev_max_backlog": 1000000 if nic >= 40000 else 250000,
        "net.core.netdev_budget": clamp(cores * 25, 300, 1000),
        "net.core.netdev_budget_usecs": budget_usecs,
        "net.core.dev_weight": 600,
        "net.core.somaxconn": clamp(threads * 2048, 65535, 1048576),
        "net.ipv4.tcp_max_syn_backlog": clamp(threads * 2048, 65536, 1048576),
        "net.ipv4.tcp_adv_win_scale": 1 if nic >= 10000 else 2,
        "net.ipv4.tcp_no_metrics_save": 1,
        "net.ipv4.tcp_slow_start_after_idle": 0,
        "net.ipv4.tcp_max_tw_buckets": clamp(ram * 20000, 2000000, 6000000),

        "vm.min_free_kbytes": max(min_free * 2, ram * 2048),
        "vm.swappiness": 10,
        "vm.dirty_ratio": 5,
        "vm.dirty_background_ratio": 2,

        "fs.file-max": fd_limit,
        "fs.nr_open": fd_limit,
    }


def container_overrides(facts: HardwareFacts) -> OverrideMap:
    ram, threads, nic = facts.ram_gb, facts.threads, facts.nic_mbps
    min_free = min_free_kbytes(facts)
    wide = nic >= 10000
    tcp_buffers = (4096, 262144, 67108864) if wide else (4096, 131072, 33554432)
    namespace_limit = clamp(ram * 256, 5000, 30000)
    process_limit = clamp(ram * 32768, 4194304, 16777216)
    backlog = clamp(threads * 1024, 8192, 262144)

    return {
        "net.core.rmem_max": 67108864 if wide else 33554432,
        "net.core.wmem_max": 67108864 if wide else 33554432,
        "net.core.rmem_default": 4194304,
        "net.core.wmem_default": 4194304,
        "net.core.optmem_max": 8388608,
        "net.ipv4.tcp_rmem": tcp_buffers,
        "net.ipv4.tcp_wmem": tcp_buffers,
        "net.ipv4.udp_mem": (8388608, 16777216, 33554432),
        "net.ipv4.tcp_mem": (4194304, 8388608, 33554432),

        # Memory
        "vm.overcommit_memory": 1,
        "vm.overcommit_ratio": min(50 + ram // 4, 95),
        "kernel.panic_on_oom": 0,
        "vm.swappiness": 0 if facts.fast_disk else 5,
        "vm.vfs_cache_pressure": 50 if facts.fast_disk else 75,
        "vm.min_free_kbytes": max(min_free * 3 // 2, ram * 1024),
        "vm.dirty_ratio": 10,
        "vm.dirty_background_ratio": 5,
        "vm.dirty_expire_centisecs": 500,
        "vm.dirty_writeback_centisecs": 100,

        # Keyrings and namespaces
        "kernel.keys.root_maxkeys": clamp(ram * 4096, 10000, 2000000),
        "kernel.keys.root_maxbytes": clamp(ram * 100000, 1000000, 50000000),
        "kernel.keys.maxkeys": clamp(ram * 16, 1000, 4000),
        "kernel.keys.maxbytes": clamp(ram * 16000, 1000000, 4000000),
        "user.max_user_namespaces": namespace_limit,
        "user.max_ipc_namespaces": namespace_limit,
        "user.max_pid_namespaces": namespace_limit,
        "user.max_net_namespaces": namespace_limit,
        "user.max_mnt_namespaces": namespace_limit,
        "user.max_uts_namespaces": namespace_limit,

        "kernel.pid_max": process_limit,
        "kernel.threads-max": process_limit,

        # Container networking
        "net.ipv4.ip_forward": 1,
        "net.ipv6.conf.all.forwarding": 1,
        "net.bridge.bridge-nf-call-ip6tables": 1,
        "net.bridge.bridge-nf-call-iptables": 1,
        "net.ipv4.conf.default.rp_filter": 0,
        "net.ipv4.conf.all.rp_filter": 0,
        "net.core.somaxconn": backlog,
        "net.ipv4.tcp_max_syn_backlog": backlog,

        "fs.file-max": min(ram * 4194304, 1073741824),
        "fs.inotify.max_user_instances": min(ram * 512, 65536),
        "fs.inotify.max_user_watches": min(ram * 131072, 16777216),
        "fs.aio-max-nr": min(ram * 8192, 1048576),
    }


def development_overrides(facts: HardwareFacts) -> OverrideMap:
    ram, cores, nic = facts.ram_gb, facts.cores, facts.nic_mbps
    min_free = min_free_kbytes(facts)
    fast = facts.fast_disk

    return {
        "net.core.rmem_max": 8388608,
        "net.core.wmem_max": 8388608,
        "net.core.rmem_default": 1048576,
        "net.core.wmem_default": 1048576,
        "net.core.optmem_max": 2097152,
        "net.ipv4.tcp_rmem": (4096, 65536, 8388608),
        "net.ipv4.tcp_wmem": (4096, 65536, 8388608),
        "net.ipv4.udp_mem": (4194304, 4194304, 8388608),
        "net.ipv4.tcp_mem": (786432, 1048576, 4194304),

        # Desktop-friendly memory
        "vm.swappiness": 10 if fast else 20,
        "vm.vfs_cache_pressure": 50 if fast else 70,
        "vm.dirty_ratio": 10 if fast else 20,
        "vm.dirty_background_ratio": 3 if fast else 5,
        "vm.dirty_expire_centisecs": 1500 if fast else 3000,
        "vm.dirty_writeback_centisecs": 250 if fast else 500,
        "vm.min_free_kbytes": max(min_free, ram * 512),

        # Interactive scheduling
        "kernel.sched_autogroup_enabled": 1,
        "kernel.sched_child_runs_first": 1,
        "kernel.sched_min_granularity_ns": clamp(cores * 150000, 1000000, 10000000),
        "kernel.sched_wakeup_granularity_ns": clamp(cores * 200000, 2000000, 15000000),
        "kernel.sched_latency_ns": clamp(cores * 1000000, 6000000, 30000000),
        "kernel.sched_migration_cost_ns": clamp(cores * 30000, 100000, 2000000),

        "net.core.somaxconn": 4096 if nic >= 1000 else 1024,
        "net.ipv4.tcp_fastopen": 3,
        "net.ipv4.tcp_keepalive_time": 600,
        "net.ipv4.tcp_max_syn_backlog": 2048 if nic >= 1000 else 512,

        # IDE file watchers
        "fs.inotify.max_user_watches": min(ram * 65536, 8388608),
        "fs.file-max": min(ram * 32768, 4194304),
    }


PROFILE_RULES: Dict[Profile, ProfileRule] = {
    Profile.GENERAL: general_overrides,
    Profile.VIRTUALIZATION: virtualization_overrides,
    Profile.WEB: web_overrides,
    Profile.DATABASE: database_overrides,
    Profile.CACHE: cache_overrides,
    Profile.COMPUTE: compute_overrides,
    Profile.FILESERVER: fileserver_overrides,
    Profile.NETWORK: network_overrides,
    Profile.CONTAINER: container_overrides,
    Profile.DEVELOPMENT: development_overrides,
}


def profile_overrides(facts: HardwareFacts, profile: Profile) -> OverrideMap:
    """Evaluate the rule set registered for profile"""
    rule = PROFILE_RULES[profile]
    overrides = rule(facts)
    logger.debug(f"Profile '{profile.value}' produced {len(overrides)} overrides")
    return overrides
