"""
Preflight validation for the sysctl generator.

This module performs semantic validation before anything is rendered:
- Validates hardware facts are positive integers and the disk medium is known
- Validates the profile is one of the supported workload profiles
- Returns error if config is invalid, so no partial artifact is ever written

Called synchronously by the generator worker and the CLI before the engine runs.
"""

import logging
from typing import Any, Dict, List, Optional

from sysctl_generation.errors import InvalidHardwareFact, UnknownProfile
from sysctl_generation.hardware_facts import DiskMedium, HardwareFacts, Profile

logger = logging.getLogger(__name__)

# field -> constraint reported when the value is below 1
POSITIVE_FIELDS = {
    "cores": "must be positive",
    "threads": "must be positive",
    "ram_gb": "must be >= 1",
    "nic_mbps": "must be positive",
}


def _check_positive(field: str, value: Any, constraint: str) -> Optional[InvalidHardwareFact]:
    if isinstance(value, bool) or not isinstance(value, int):
        return InvalidHardwareFact(field, value, "must be an integer")
    if value < 1:
        return InvalidHardwareFact(field, value, constraint)
    return None


def collect_fact_errors(hardware: Dict[str, Any]) -> List[InvalidHardwareFact]:
    """Check every hardware constraint and return all failures, not just the first"""
    errors = []

    for field, constraint in POSITIVE_FIELDS.items():
        if field not in hardware:
            errors.append(InvalidHardwareFact(field, None, "missing"))
            continue
        error = _check_positive(field, hardware[field], constraint)
        if error:
            errors.append(error)

    medium = hardware.get("disk_medium")
    supported_media = [m.value for m in DiskMedium]
    known = isinstance(medium, DiskMedium) or (
        isinstance(medium, str) and medium.lower() in supported_media
    )
    if not known:
        errors.append(InvalidHardwareFact(
            "disk_medium", medium, f"must be one of {', '.join(supported_media)}"
        ))

    is_container = hardware.get("is_container", False)
    if not isinstance(is_container, bool):
        errors.append(InvalidHardwareFact("is_container", is_container, "must be a boolean"))

    return errors


def parse_profile(name: Any) -> Profile:
    """Resolve a profile name (or Profile) to a Profile, raising UnknownProfile"""
    if isinstance(name, Profile):
        return name
    supported = [p.value for p in Profile]
    if isinstance(name, str) and name.lower() in supported:
        return Profile(name.lower())
    raise UnknownProfile(name, supported)


def parse_disk_medium(medium: Any) -> DiskMedium:
    if isinstance(medium, DiskMedium):
        return medium
    return DiskMedium(medium.lower())


def require_valid_facts(hardware: Dict[str, Any]) -> HardwareFacts:
    """
    Build HardwareFacts from a hardware dict.

    Raises:
        InvalidHardwareFact: for the first constraint that fails
    """
    errors = collect_fact_errors(hardware)
    if errors:
        for error in errors:
            logger.error(f"Invalid hardware fact: {error}")
        raise errors[0]

    return HardwareFacts(
        cores=hardware["cores"],
        threads=hardware["threads"],
        ram_gb=hardware["ram_gb"],
        nic_mbps=hardware["nic_mbps"],
        disk_medium=parse_disk_medium(hardware["disk_medium"]),
        is_container=hardware.get("is_container", False),
    )


def facts_from_config(config: Dict[str, Any]) -> HardwareFacts:
    return require_valid_facts(config.get("hardware", {}))


def main(config=None):
    """
    Validate a generation config.

    Args:
        config: Generation configuration dict

    Returns:
        dict with result status and either success or error details
    """
    if not config:
        return {
            "result": "FAILURE",
            "error": "Missing config parameter"
        }

    errors = []

    hardware = config.get("hardware")
    if not isinstance(hardware, dict):
        errors.append("hardware: must be a dict")
    else:
        errors.extend(str(e) for e in collect_fact_errors(hardware))

    try:
        parse_profile(config.get("profile"))
    except UnknownProfile as e:
        errors.append(f"profile: {e}")

    ipv6 = config.get("ipv6", {})
    if not isinstance(ipv6, dict):
        errors.append("ipv6: must be a dict")
    elif not isinstance(ipv6.get("disabled", False), bool):
        errors.append(f"ipv6.disabled: must be a boolean (got {ipv6.get('disabled')!r})")

    output = config.get("output", {})
    if not isinstance(output, dict):
        errors.append("output: must be a dict")

    if errors:
        error_msg = "Preflight validation failed:\n" + "\n".join(f"  - {err}" for err in errors)
        logger.warning(error_msg)
        return {
            "result": "FAILURE",
            "error": error_msg
        }

    return {
        "result": "SUCCESS",
        "data": {
            "message": "Preflight validation passed"
        }
    }
