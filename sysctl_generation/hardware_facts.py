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
Input data model for sysctl generation.

HardwareFacts is captured once per run (detection or manual entry) and
passed by value into every rule function. Profile is the closed set of
workload archetypes the generator knows about.
"""

from enum import Enum
from typing import Dict, NamedTuple


class DiskMedium(Enum):
    HDD = "hdd"
    SSD = "ssd"
    NVME = "nvme"

    @property
    def label(self) -> str:
        return DISK_LABELS[self]

    @property
    def is_fast(self) -> bool:
        return self in (DiskMedium.SSD, DiskMedium.NVME)


DISK_LABELS = {
    DiskMedium.HDD: "HDD",
    DiskMedium.SSD: "SSD",
    DiskMedium.NVME: "NVMe",
}


class Profile(Enum):
    GENERAL = "general"
    VIRTUALIZATION = "virtualization"
    WEB = "web"
    DATABASE = "database"
    CACHE = "cache"
    COMPUTE = "compute"
    FILESERVER = "fileserver"
    NETWORK = "network"
    CONTAINER = "container"
    DEVELOPMENT = "development"

    @property
    def description(self) -> str:
        return PROFILE_DESCRIPTIONS[self]

    @property
    def label(self) -> str:
        """Short label used in the artifact header, e.g. 'Web Server'"""
        return self.description.split(":", 1)[0]


PROFILE_DESCRIPTIONS: Dict[Profile, str] = {
    Profile.GENERAL: "General Purpose: Balanced tuning for mixed workloads",
    Profile.VIRTUALIZATION: "Virtualization Host: For KVM/QEMU/Proxmox/ESXi/etc.",
    Profile.WEB: "Web Server: Optimized for HTTP traffic",
    Profile.DATABASE: "Database Server: Tuned for MySQL/PostgreSQL/etc.",
    Profile.CACHE: "Caching Server: For Redis/Memcached/etc.",
    Profile.COMPUTE: "HPC / Compute Node: For computational workloads",
    Profile.FILESERVER: "File Server: For NFS/SMB/file storage",
    Profile.NETWORK: "Network Appliance: For routers/firewalls/gateways",
    Profile.CONTAINER: "Container Host: For Docker/Kubernetes nodes",
    Profile.DEVELOPMENT: "Development Machine: For coding workstations",
}


class HardwareFacts(NamedTuple):
    cores: int
    threads: int
    ram_gb: int
    nic_mbps: int
    disk_medium: DiskMedium
    is_container: bool = False

    @property
    def fast_disk(self) -> bool:
        return self.disk_medium.is_fast

    def summary(self) -> str:
        """One-line hardware description as used in the artifact header"""
        return (
            f"{self.cores} cores / {self.threads} threads, {self.ram_gb}GB RAM, "
            f"{self.nic_mbps}Mb/s NIC, {self.disk_medium.label}"
        )
