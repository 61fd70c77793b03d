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
Resolution engine.

Merges the baseline, profile and IPv6 layers into one canonical mapping and
renders it as a sysctl.conf artifact. Precedence is baseline < profile < IPv6;
later layers replace whole values, never individual fields of a tuple.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sysctl_generation.baseline import baseline_settings
from sysctl_generation.hardware_facts import HardwareFacts, Profile
from sysctl_generation.ipv6_rules import ipv6_overrides
from sysctl_generation.parameter_registry import CATEGORICAL, INT, TUPLE, declared_type
from sysctl_generation.profile_rules import profile_overrides

logger = logging.getLogger(__name__)

ResolvedSettings = List[Tuple[str, Any]]

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def merge_layers(*layers: Mapping[str, Any]) -> Dict[str, Any]:
    """Fold layers left to right; a later layer wins on key collision"""
    merged: Dict[str, Any] = {}
    for layer in layers:
        merged.update(layer)
    return merged


def resolve_layers(facts: HardwareFacts, profile: Profile, ipv6_disabled: bool) -> Dict[str, Dict[str, Any]]:
    """Baseline, profile and IPv6 layers in precedence order"""
    baseline = baseline_settings(facts)
    overrides = profile_overrides(facts, profile)

    replaced = sum(1 for key in overrides if key in baseline)
    logger.debug(f"Profile '{profile.value}' replaces {replaced} baseline values "
                 f"and adds {len(overrides) - replaced}")

    return {
        'baseline': baseline,
        'profile': overrides,
        'ipv6': ipv6_overrides(ipv6_disabled),
    }


def order_settings(merged: Mapping[str, Any]) -> ResolvedSettings:
    return sorted(merged.items(), key=lambda item: item[0].encode())


def resolve(facts: HardwareFacts, profile: Profile, ipv6_disabled: bool) -> ResolvedSettings:
    """Final (key, value) sequence, sorted by key in byte order"""
    layers = resolve_layers(facts, profile, ipv6_disabled)
    return order_settings(merge_layers(*layers.values()))


def render_value(key: str, value: Any) -> str:
    """Text form of a value according to the type registered for its key"""
    registry_type = declared_type(key)

    if registry_type == TUPLE:
        return " ".join(str(v) for v in value)
    if registry_type in (INT, CATEGORICAL):
        return str(value)

    # Unregistered keys fall back to the runtime type
    logger.warning(f"Parameter {key} is not registered, rendering by value type")
    if isinstance(value, tuple):
        return " ".join(str(v) for v in value)
    return str(value)


def render_header(facts: HardwareFacts, profile: Profile, install_path: str,
                  generated_at: datetime) -> str:
    lines = [
        f"# Optimized sysctl.conf for {profile.label}",
        f"# Hardware: {facts.summary()}",
        f"# Generated on: {generated_at.strftime(TIMESTAMP_FORMAT)}",
        "#",
        f"# Apply changes with: sudo sysctl -p {install_path}",
        "#",
        "# IMPORTANT: Test these settings with your specific workload.",
        "#",
    ]
    return "\n".join(lines) + "\n"


def render_settings(settings: ResolvedSettings) -> str:
    return "".join(f"{key} = {render_value(key, value)}\n" for key, value in settings)


def render(facts: HardwareFacts, profile: Profile, ipv6_disabled: bool,
           install_path: str, generated_at: Optional[datetime] = None,
           settings: Optional[ResolvedSettings] = None) -> str:
    """
    Render the complete artifact: header followed by one line per parameter.

    Args:
        facts: Hardware snapshot for this run
        profile: Selected workload profile
        ipv6_disabled: Whether IPv6 is switched off on all interfaces
        install_path: Path quoted in the apply hint of the header
        generated_at: Timestamp for the header (defaults to now)
        settings: Already resolved settings (resolved here when omitted)

    Returns:
        Artifact text ending in a newline
    """
    if settings is None:
        settings = resolve(facts, profile, ipv6_disabled)
    generated_at = generated_at or datetime.now()

    logger.info(f"Rendering {len(settings)} parameters for profile '{profile.value}'")
    return render_header(facts, profile, install_path, generated_at) + render_settings(settings)
