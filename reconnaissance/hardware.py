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

import os
import re
import logging
from typing import Any, Dict, Optional, Sequence, Tuple

import psutil

logger = logging.getLogger(__name__)

DEFAULT_NIC_MBPS = 1000
DEFAULT_DISK_MEDIUM = "hdd"

# cgroup v1 reports this for "no limit" on 64-bit kernels
CGROUP_UNLIMITED = "9223372036854771712"

CGROUP_MEMORY_LIMIT_FILES = (
    "/sys/fs/cgroup/memory/memory.limit_in_bytes",
    "/sys/fs/cgroup/memory.max",
)
RHEL_RELEASE_FILES = (
    "/etc/redhat-release",
    "/etc/centos-release",
    "/etc/fedora-release",
)
RHEL_INSTALL_PATH = "/etc/sysctl.d/99-custom.conf"
DEFAULT_INSTALL_PATH = "/etc/sysctl.conf"

CLOUD_VENDORS = ("Amazon", "Google", "Azure", "Digital Ocean")

ROOT_DEVICE_PATTERN = re.compile(r"/dev/(sd[a-z]|nvme[0-9]+n[0-9]+|xvd[a-z]|vd[a-z])")


def _read_text(path: str) -> Optional[str]:
    try:
        with open(path) as f:
            return f.read().strip()
    except OSError:
        return None


def detect_container(dockerenv: str = "/.dockerenv", cgroup_path: str = "/proc/1/cgroup",
                     containerenv: str = "/run/.containerenv") -> Tuple[bool, Optional[str]]:
    """
    Detect whether we run inside a container.

    Returns:
        (is_container, container_type) where container_type is 'docker',
        'lxc', 'podman' or None
    """
    cgroup = _read_text(cgroup_path) or ""

    if os.path.exists(dockerenv) or "docker" in cgroup:
        return True, "docker"
    if re.search(r"/(lxc|docker)/", cgroup):
        return True, "lxc" if "lxc" in cgroup else "docker"
    if os.path.exists(containerenv):
        return True, "podman"
    return False, None


def detect_install_path(release_files: Sequence[str] = RHEL_RELEASE_FILES) -> str:
    """RHEL-family systems read drop-ins from /etc/sysctl.d, others use /etc/sysctl.conf"""
    if any(os.path.exists(path) for path in release_files):
        return RHEL_INSTALL_PATH
    return DEFAULT_INSTALL_PATH


def detect_cpu() -> Tuple[int, int]:
    """CPUs usable by this process; respects cpusets, so containers see their share"""
    try:
        count = len(psutil.Process().cpu_affinity())
    except (AttributeError, psutil.Error) as e:
        logger.warning(f"CPU affinity unavailable ({e}), falling back to logical CPU count")
        count = psutil.cpu_count(logical=True) or 1
    return count, count


def parse_cgroup_memory_limit(raw: Optional[str]) -> Optional[int]:
    """Convert a cgroup memory limit in bytes to whole GB (at least 1); None when unlimited"""
    if not raw or raw in ("max", CGROUP_UNLIMITED):
        return None
    try:
        limit = int(raw)
    except ValueError:
        logger.warning(f"Unparseable cgroup memory limit: {raw!r}")
        return None
    return max(limit // 1024 ** 3, 1)


def ram_gb_from_bytes(total_bytes: int) -> int:
    """Round to the nearest GB, never below 1"""
    return max(int(total_bytes / 1024 ** 3 + 0.5), 1)


def detect_ram(is_container: bool,
               limit_files: Sequence[str] = CGROUP_MEMORY_LIMIT_FILES) -> int:
    if is_container:
        for path in limit_files:
            if not os.path.exists(path):
                continue
            limit_gb = parse_cgroup_memory_limit(_read_text(path))
            if limit_gb is not None:
                logger.info(f"Container RAM limit from {path}: {limit_gb} GB")
                return limit_gb
            break

    return ram_gb_from_bytes(psutil.virtual_memory().total)


def default_route_interface(route_table: str = "/proc/net/route") -> Optional[str]:
    """Interface carrying the IPv4 default route"""
    content = _read_text(route_table)
    if not content:
        return None
    for line in content.splitlines()[1:]:
        fields = line.split()
        if len(fields) > 1 and fields[1] == "00000000":
            return fields[0]
    return None


def active_interface(route_table: str = "/proc/net/route") -> Optional[str]:
    iface = default_route_interface(route_table)
    if iface and iface != "lo":
        return iface

    # First non-loopback interface that is up
    for name, stats in psutil.net_if_stats().items():
        if name != "lo" and stats.isup:
            return name
    return None


def detect_nic_speed(iface: Optional[str], sysfs_net: str = "/sys/class/net") -> int:
    """Link speed in Mbps, DEFAULT_NIC_MBPS when it cannot be determined"""
    if not iface:
        logger.warning(f"No active network interface found, assuming {DEFAULT_NIC_MBPS} Mbps")
        return DEFAULT_NIC_MBPS

    stats = psutil.net_if_stats().get(iface)
    if stats and stats.speed > 0:
        return stats.speed

    raw = _read_text(os.path.join(sysfs_net, iface, "speed"))
    if raw and raw.lstrip("-").isdigit() and int(raw) > 0:
        return int(raw)

    logger.warning(f"Link speed of {iface} unknown, assuming {DEFAULT_NIC_MBPS} Mbps")
    return DEFAULT_NIC_MBPS


def root_block_device() -> Optional[str]:
    """Base block device backing '/', e.g. 'nvme0n1' for /dev/nvme0n1p2"""
    for partition in psutil.disk_partitions(all=False):
        if partition.mountpoint == "/":
            match = ROOT_DEVICE_PATTERN.match(partition.device)
            return match.group(1) if match else None
    return None


def detect_disk_medium(is_container: bool, device: Optional[str] = None,
                       sysfs_block: str = "/sys/block",
                       vendor_file: str = "/sys/devices/virtual/dmi/id/sys_vendor") -> str:
    if is_container:
        # Storage belongs to the host; cloud hosts are SSD-backed
        vendor = _read_text(vendor_file) or ""
        if vendor.startswith(CLOUD_VENDORS):
            return "ssd"
        return DEFAULT_DISK_MEDIUM

    if device is None:
        device = root_block_device()
    if not device:
        logger.warning(f"Root block device not found, assuming {DEFAULT_DISK_MEDIUM}")
        return DEFAULT_DISK_MEDIUM

    if device.startswith("nvme"):
        return "nvme"
    if _read_text(os.path.join(sysfs_block, device, "queue", "rotational")) == "0":
        return "ssd"
    return DEFAULT_DISK_MEDIUM


def main() -> Dict[str, Any]:
    """
    Detect hardware facts of the local system.

    Returns:
        Hardware dict in generation config shape, plus the active interface
    """
    is_container, container_type = detect_container()
    if is_container:
        logger.info(f"Running in a {container_type} container environment")

    cores, threads = detect_cpu()
    iface = active_interface()

    hardware = {
        "cores": cores,
        "threads": threads,
        "ram_gb": detect_ram(is_container),
        "nic_mbps": detect_nic_speed(iface),
        "disk_medium": detect_disk_medium(is_container),
        "is_container": is_container,
        "container_type": container_type,
        "interface": iface,
    }
    logger.info(f"Detected hardware: {hardware}")
    return hardware
