"""
Parameter Registry for the sysctl generator.

Declares every kernel tunable the rule sets may emit together with its
value type. The type is fixed per key and decides how a value is rendered:

    int          -> integer literal            (vm.swappiness = 10)
    categorical  -> bare word                  (net.core.default_qdisc = fq)
    tuple        -> space-separated integers   (net.ipv4.tcp_rmem = 4096 131072 16777216)
"""

from typing import Any, Optional

INT = "int"
CATEGORICAL = "categorical"
TUPLE = "tuple"

PARAMETER_REGISTRY = {
    # =========================================================================
    # CORE NETWORK (net.core.*)
    # =========================================================================

    # Socket buffers
    "net.core.rmem_max": {
        "type": INT,
        "category": "network",
        "description": "Max socket receive buffer",
    },
    "net.core.wmem_max": {
        "type": INT,
        "category": "network",
        "description": "Max socket send buffer",
    },
    "net.core.rmem_default": {
        "type": INT,
        "category": "network",
        "description": "Default socket receive buffer",
    },
    "net.core.wmem_default": {
        "type": INT,
        "category": "network",
        "description": "Default socket send buffer",
    },
    "net.core.optmem_max": {
        "type": INT,
        "category": "network",
        "description": "Max ancillary buffer size per socket",
    },

    # Device queues / NAPI
    "net.core.netdev_max_backlog": {
        "type": INT,
        "category": "network",
        "description": "Device backlog queue",
    },
    "net.core.netdev_budget": {
        "type": INT,
        "category": "network",
        "description": "NAPI polling budget",
    },
    "net.core.netdev_budget_usecs": {
        "type": INT,
        "category": "network",
        "description": "NAPI polling budget in microseconds",
    },
    "net.core.dev_weight": {
        "type": INT,
        "category": "network",
        "description": "Device processing weight",
    },
    "net.core.somaxconn": {
        "type": INT,
        "category": "network",
        "description": "Max listen() backlog",
    },
    "net.core.busy_poll": {
        "type": INT,
        "category": "network",
        "description": "Busy polling timeout for poll/select (us)",
    },
    "net.core.busy_read": {
        "type": INT,
        "category": "network",
        "description": "Busy polling timeout for socket reads (us)",
    },
    "net.core.default_qdisc": {
        "type": CATEGORICAL,
        "category": "network",
        "description": "Default queueing discipline",
    },

    # =========================================================================
    # TCP/IP PARAMETERS (net.ipv4.*)
    # =========================================================================

    # Buffer management
    "net.ipv4.tcp_rmem": {
        "type": TUPLE,
        "category": "network",
        "description": "TCP read buffer (min, default, max)",
    },
    "net.ipv4.tcp_wmem": {
        "type": TUPLE,
        "category": "network",
        "description": "TCP write buffer (min, default, max)",
    },
    "net.ipv4.tcp_mem": {
        "type": TUPLE,
        "category": "network",
        "description": "TCP memory pages (min, pressure, max)",
    },
    "net.ipv4.udp_mem": {
        "type": TUPLE,
        "category": "network",
        "description": "UDP memory pages (min, pressure, max)",
    },
    "net.ipv4.udp_rmem_min": {
        "type": INT,
        "category": "network",
        "description": "Minimal UDP receive buffer",
    },
    "net.ipv4.udp_wmem_min": {
        "type": INT,
        "category": "network",
        "description": "Minimal UDP send buffer",
    },
    "net.ipv4.tcp_moderate_rcvbuf": {
        "type": INT,
        "category": "network",
        "description": "Receive buffer auto-tuning",
    },
    "net.ipv4.tcp_notsent_lowat": {
        "type": INT,
        "category": "network",
        "description": "Unsent bytes threshold for writability",
    },
    "net.ipv4.tcp_adv_win_scale": {
        "type": INT,
        "category": "network",
        "description": "Buffer overhead split between window and application",
    },

    # Connection management
    "net.ipv4.tcp_max_syn_backlog": {
        "type": INT,
        "category": "network",
        "description": "Max pending SYN connections",
    },
    "net.ipv4.tcp_max_tw_buckets": {
        "type": INT,
        "category": "network",
        "description": "Max TIME_WAIT sockets",
    },
    "net.ipv4.tcp_tw_reuse": {
        "type": INT,
        "category": "network",
        "description": "Reuse TIME_WAIT sockets",
    },
    "net.ipv4.tcp_fin_timeout": {
        "type": INT,
        "category": "network",
        "description": "TCP FIN timeout in seconds",
    },
    "net.ipv4.ip_local_port_range": {
        "type": TUPLE,
        "category": "network",
        "description": "Ephemeral port range (low, high)",
    },

    # Keepalive
    "net.ipv4.tcp_keepalive_time": {
        "type": INT,
        "category": "network",
        "description": "Keepalive time in seconds",
    },
    "net.ipv4.tcp_keepalive_intvl": {
        "type": INT,
        "category": "network",
        "description": "Keepalive interval in seconds",
    },
    "net.ipv4.tcp_keepalive_probes": {
        "type": INT,
        "category": "network",
        "description": "Keepalive probes before dropping",
    },

    # Performance & features
    "net.ipv4.tcp_fastopen": {
        "type": INT,
        "category": "network",
        "description": "TCP Fast Open (TFO)",
    },
    "net.ipv4.tcp_window_scaling": {
        "type": INT,
        "category": "network",
        "description": "TCP window scaling (RFC 7323)",
    },
    "net.ipv4.tcp_timestamps": {
        "type": INT,
        "category": "network",
        "description": "TCP timestamps (PAWS)",
    },
    "net.ipv4.tcp_sack": {
        "type": INT,
        "category": "network",
        "description": "TCP selective acknowledgments",
    },
    "net.ipv4.tcp_dsack": {
        "type": INT,
        "category": "network",
        "description": "TCP duplicate selective acknowledgments",
    },
    "net.ipv4.tcp_slow_start_after_idle": {
        "type": INT,
        "category": "network",
        "description": "Slow start after idle",
    },
    "net.ipv4.tcp_frto": {
        "type": INT,
        "category": "network",
        "description": "Forward RTO (F-RTO)",
    },
    "net.ipv4.tcp_mtu_probing": {
        "type": INT,
        "category": "network",
        "description": "MTU probing",
    },
    "net.ipv4.tcp_no_metrics_save": {
        "type": INT,
        "category": "network",
        "description": "Do not cache connection metrics",
    },
    "net.ipv4.tcp_congestion_control": {
        "type": CATEGORICAL,
        "category": "network",
        "description": "TCP congestion algorithm",
    },

    # Routing / filtering
    "net.ipv4.ip_forward": {
        "type": INT,
        "category": "network",
        "description": "IPv4 forwarding",
    },
    "net.ipv4.conf.all.rp_filter": {
        "type": INT,
        "category": "network",
        "description": "Reverse path filtering (all interfaces)",
    },
    "net.ipv4.conf.default.rp_filter": {
        "type": INT,
        "category": "network",
        "description": "Reverse path filtering (new interfaces)",
    },
    "net.ipv4.conf.all.accept_redirects": {
        "type": INT,
        "category": "network",
        "description": "Accept ICMP redirects (all interfaces)",
    },
    "net.ipv4.conf.default.accept_redirects": {
        "type": INT,
        "category": "network",
        "description": "Accept ICMP redirects (new interfaces)",
    },
    "net.ipv4.conf.all.route_localnet": {
        "type": INT,
        "category": "network",
        "description": "Route 127/8 addresses",
    },

    # Bridge netfilter
    "net.bridge.bridge-nf-call-iptables": {
        "type": INT,
        "category": "network",
        "description": "Pass bridged IPv4 traffic to iptables",
    },
    "net.bridge.bridge-nf-call-ip6tables": {
        "type": INT,
        "category": "network",
        "description": "Pass bridged IPv6 traffic to ip6tables",
    },
    "net.bridge.bridge-nf-call-arptables": {
        "type": INT,
        "category": "network",
        "description": "Pass bridged ARP traffic to arptables",
    },

    # =========================================================================
    # CONNECTION TRACKING (net.netfilter.*)
    # =========================================================================

    "net.netfilter.nf_conntrack_max": {
        "type": INT,
        "category": "netfilter",
        "description": "Max tracked connections",
    },
    "net.netfilter.nf_conntrack_tcp_timeout_established": {
        "type": INT,
        "category": "netfilter",
        "description": "Established TCP entry timeout in seconds",
    },
    "net.netfilter.nf_conntrack_tcp_timeout_time_wait": {
        "type": INT,
        "category": "netfilter",
        "description": "TIME_WAIT TCP entry timeout in seconds",
    },

    # =========================================================================
    # IPV6 (net.ipv6.*)
    # =========================================================================

    "net.ipv6.conf.all.disable_ipv6": {
        "type": INT,
        "category": "ipv6",
        "description": "Disable IPv6 (all interfaces)",
    },
    "net.ipv6.conf.default.disable_ipv6": {
        "type": INT,
        "category": "ipv6",
        "description": "Disable IPv6 (new interfaces)",
    },
    "net.ipv6.conf.lo.disable_ipv6": {
        "type": INT,
        "category": "ipv6",
        "description": "Disable IPv6 (loopback)",
    },
    "net.ipv6.conf.all.accept_redirects": {
        "type": INT,
        "category": "ipv6",
        "description": "Accept ICMPv6 redirects (all interfaces)",
    },
    "net.ipv6.conf.default.accept_redirects": {
        "type": INT,
        "category": "ipv6",
        "description": "Accept ICMPv6 redirects (new interfaces)",
    },
    "net.ipv6.conf.all.accept_ra": {
        "type": INT,
        "category": "ipv6",
        "description": "Accept router advertisements (all interfaces)",
    },
    "net.ipv6.conf.default.accept_ra": {
        "type": INT,
        "category": "ipv6",
        "description": "Accept router advertisements (new interfaces)",
    },
    "net.ipv6.conf.all.forwarding": {
        "type": INT,
        "category": "ipv6",
        "description": "IPv6 forwarding",
    },
    "net.ipv6.neigh.default.gc_thresh1": {
        "type": INT,
        "category": "ipv6",
        "description": "Neighbour table soft minimum",
    },
    "net.ipv6.neigh.default.gc_thresh2": {
        "type": INT,
        "category": "ipv6",
        "description": "Neighbour table soft maximum",
    },
    "net.ipv6.neigh.default.gc_thresh3": {
        "type": INT,
        "category": "ipv6",
        "description": "Neighbour table hard maximum",
    },

    # =========================================================================
    # SUNRPC / NFS
    # =========================================================================

    "sunrpc.tcp_slot_table_entries": {
        "type": INT,
        "category": "filesystem",
        "description": "Concurrent RPC requests over TCP",
    },
    "sunrpc.udp_slot_table_entries": {
        "type": INT,
        "category": "filesystem",
        "description": "Concurrent RPC requests over UDP",
    },
    "fs.nfsd.max_connections": {
        "type": INT,
        "category": "filesystem",
        "description": "Max NFS server connections",
    },

    # =========================================================================
    # FILESYSTEM (fs.*)
    # =========================================================================

    "fs.file-max": {
        "type": INT,
        "category": "filesystem",
        "description": "System-wide open file handles",
    },
    "fs.nr_open": {
        "type": INT,
        "category": "filesystem",
        "description": "Per-process open file handles",
    },
    "fs.aio-max-nr": {
        "type": INT,
        "category": "filesystem",
        "description": "Max concurrent async I/O requests",
    },
    "fs.inotify.max_user_instances": {
        "type": INT,
        "category": "filesystem",
        "description": "inotify instances per user",
    },
    "fs.inotify.max_user_watches": {
        "type": INT,
        "category": "filesystem",
        "description": "inotify watches per user",
    },

    # =========================================================================
    # SCHEDULER (kernel.sched_*)
    # =========================================================================

    "kernel.sched_min_granularity_ns": {
        "type": INT,
        "category": "scheduler",
        "description": "Minimal preemption granularity",
    },
    "kernel.sched_wakeup_granularity_ns": {
        "type": INT,
        "category": "scheduler",
        "description": "Wake-up preemption granularity",
    },
    "kernel.sched_latency_ns": {
        "type": INT,
        "category": "scheduler",
        "description": "Targeted preemption latency",
    },
    "kernel.sched_migration_cost_ns": {
        "type": INT,
        "category": "scheduler",
        "description": "Task migration cost",
    },
    "kernel.sched_rt_runtime_us": {
        "type": INT,
        "category": "scheduler",
        "description": "Realtime runtime share per period",
    },
    "kernel.sched_autogroup_enabled": {
        "type": INT,
        "category": "scheduler",
        "description": "Automatic process group scheduling",
    },
    "kernel.sched_cfs_bandwidth_slice_us": {
        "type": INT,
        "category": "scheduler",
        "description": "CFS bandwidth slice",
    },
    "kernel.sched_child_runs_first": {
        "type": INT,
        "category": "scheduler",
        "description": "Run forked child before parent",
    },
    "kernel.numa_balancing": {
        "type": INT,
        "category": "scheduler",
        "description": "Automatic NUMA balancing",
    },

    # =========================================================================
    # KERNEL (kernel.*)
    # =========================================================================

    "kernel.pid_max": {
        "type": INT,
        "category": "kernel",
        "description": "Max PID value",
    },
    "kernel.threads-max": {
        "type": INT,
        "category": "kernel",
        "description": "Max number of threads",
    },
    "kernel.shmmax": {
        "type": INT,
        "category": "kernel",
        "description": "Max shared memory segment size in bytes",
    },
    "kernel.shmall": {
        "type": INT,
        "category": "kernel",
        "description": "Total shared memory in pages",
    },
    "kernel.shmmni": {
        "type": INT,
        "category": "kernel",
        "description": "Max shared memory segments",
    },
    "kernel.panic_on_oom": {
        "type": INT,
        "category": "kernel",
        "description": "Panic on out-of-memory",
    },
    "kernel.tsc_reliable": {
        "type": INT,
        "category": "kernel",
        "description": "Treat TSC as reliable clocksource",
    },
    "kernel.randomize_va_space": {
        "type": INT,
        "category": "kernel",
        "description": "Address space layout randomization",
    },
    "kernel.keys.root_maxkeys": {
        "type": INT,
        "category": "namespaces",
        "description": "Max keys owned by root",
    },
    "kernel.keys.root_maxbytes": {
        "type": INT,
        "category": "namespaces",
        "description": "Max key payload bytes owned by root",
    },
    "kernel.keys.maxkeys": {
        "type": INT,
        "category": "namespaces",
        "description": "Max keys per non-root user",
    },
    "kernel.keys.maxbytes": {
        "type": INT,
        "category": "namespaces",
        "description": "Max key payload bytes per non-root user",
    },

    # =========================================================================
    # USER NAMESPACES (user.*)
    # =========================================================================

    "user.max_user_namespaces": {
        "type": INT,
        "category": "namespaces",
        "description": "Max user namespaces",
    },
    "user.max_ipc_namespaces": {
        "type": INT,
        "category": "namespaces",
        "description": "Max IPC namespaces",
    },
    "user.max_pid_namespaces": {
        "type": INT,
        "category": "namespaces",
        "description": "Max PID namespaces",
    },
    "user.max_net_namespaces": {
        "type": INT,
        "category": "namespaces",
        "description": "Max network namespaces",
    },
    "user.max_mnt_namespaces": {
        "type": INT,
        "category": "namespaces",
        "description": "Max mount namespaces",
    },
    "user.max_uts_namespaces": {
        "type": INT,
        "category": "namespaces",
        "description": "Max UTS namespaces",
    },

    # =========================================================================
    # VIRTUAL MEMORY (vm.*)
    # =========================================================================

    "vm.swappiness": {
        "type": INT,
        "category": "memory",
        "description": "Swap tendency",
    },
    "vm.dirty_ratio": {
        "type": INT,
        "category": "memory",
        "description": "Dirty page ratio that blocks writers",
    },
    "vm.dirty_background_ratio": {
        "type": INT,
        "category": "memory",
        "description": "Dirty page ratio that starts background writeback",
    },
    "vm.dirty_expire_centisecs": {
        "type": INT,
        "category": "memory",
        "description": "Age at which dirty data is written out",
    },
    "vm.dirty_writeback_centisecs": {
        "type": INT,
        "category": "memory",
        "description": "Writeback thread wake-up interval",
    },
    "vm.min_free_kbytes": {
        "type": INT,
        "category": "memory",
        "description": "Reserved free memory in KB",
    },
    "vm.vfs_cache_pressure": {
        "type": INT,
        "category": "memory",
        "description": "Dentry/inode cache reclaim tendency",
    },
    "vm.zone_reclaim_mode": {
        "type": INT,
        "category": "memory",
        "description": "NUMA zone reclaim",
    },
    "vm.overcommit_memory": {
        "type": INT,
        "category": "memory",
        "description": "Overcommit policy",
    },
    "vm.overcommit_ratio": {
        "type": INT,
        "category": "memory",
        "description": "Overcommit ratio in percent",
    },
    "vm.max_map_count": {
        "type": INT,
        "category": "memory",
        "description": "Max memory map areas per process",
    },
    "vm.page-cluster": {
        "type": INT,
        "category": "memory",
        "description": "Swap readahead (log2 pages)",
    },
    "vm.oom_kill_allocating_task": {
        "type": INT,
        "category": "memory",
        "description": "Kill the allocating task on OOM",
    },
    "vm.nr_hugepages": {
        "type": INT,
        "category": "memory",
        "description": "Static huge pages",
    },
    "vm.hugetlb_shm_group": {
        "type": INT,
        "category": "memory",
        "description": "Group allowed to create SysV huge page segments",
    },
    "vm.transparent_hugepage.enabled": {
        "type": CATEGORICAL,
        "category": "memory",
        "description": "Transparent huge pages mode",
    },
    "vm.transparent_hugepage.defrag": {
        "type": CATEGORICAL,
        "category": "memory",
        "description": "Transparent huge pages defrag mode",
    },
}


def declared_type(key: str) -> Optional[str]:
    """Value type registered for a key, or None for unknown keys"""
    entry = PARAMETER_REGISTRY.get(key)
    return entry['type'] if entry else None


def type_matches(key: str, value: Any) -> bool:
    """Check a value against the type registered for its key"""
    registry_type = declared_type(key)
    if registry_type == INT:
        return isinstance(value, int) and not isinstance(value, bool)
    if registry_type == CATEGORICAL:
        return isinstance(value, str) and bool(value) and ' ' not in value
    if registry_type == TUPLE:
        return isinstance(value, tuple) and all(isinstance(v, int) for v in value)
    return False
