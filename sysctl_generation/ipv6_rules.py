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

import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)

DISABLE_KEYS = (
    "net.ipv6.conf.all.disable_ipv6",
    "net.ipv6.conf.default.disable_ipv6",
    "net.ipv6.conf.lo.disable_ipv6",
)

# Redirect/RA hardening and neighbour table sizing, tuned like IPv4
IPV6_HARDENING = {
    "net.ipv6.conf.all.accept_redirects": 0,
    "net.ipv6.conf.default.accept_redirects": 0,
    "net.ipv6.conf.all.accept_ra": 0,
    "net.ipv6.conf.default.accept_ra": 0,
    "net.ipv6.neigh.default.gc_thresh1": 1024,
    "net.ipv6.neigh.default.gc_thresh2": 4096,
    "net.ipv6.neigh.default.gc_thresh3": 8192,
}


def ipv6_overrides(disabled: bool) -> Dict[str, Any]:
    """Override map for the IPv6 toggle; the two branches share only DISABLE_KEYS"""
    if disabled:
        logger.debug("IPv6 disabled on all/default/lo scopes")
        return {key: 1 for key in DISABLE_KEYS}

    overrides: Dict[str, Any] = dict(IPV6_HARDENING)
    overrides.update({key: 0 for key in DISABLE_KEYS})
    return overrides
