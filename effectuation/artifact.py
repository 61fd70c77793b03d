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
import logging
from typing import Any, Dict, List

from sysctl_generation.errors import RenderFailure

logger = logging.getLogger(__name__)

CONTAINER_NOTES = [
    "Some settings may require host privileges and might be ignored",
    "For LXC containers, you may need to adjust permissions "
    "(e.g., 'lxc.cap.drop=' in your container config)",
    "Consider applying security-critical settings on the host system instead",
]


def write_artifact(content: str, path: str) -> str:
    """
    Write the rendered artifact, replacing any existing file.

    Raises:
        RenderFailure: wrapping the OSError; nothing is retried
    """
    destination = os.path.expanduser(path)
    try:
        with open(destination, "w") as f:
            f.write(content)
    except OSError as e:
        logger.error(f"Writing artifact to {destination} failed: {e}", exc_info=True)
        raise RenderFailure(destination, e) from e

    logger.info(f"Wrote {len(content)} bytes to {destination}")
    return destination


def apply_instructions(output_path: str, install_path: str, is_container: bool) -> List[str]:
    """Human steps for reviewing, installing and applying the artifact"""
    lines = [
        "To apply these settings:",
        f"  1. Review the configuration: less {output_path}",
        f"  2. Copy it to system location: sudo cp {output_path} {install_path}",
        f"  3. Apply the settings: sudo sysctl -p {install_path}",
        "",
    ]

    if is_container:
        lines.append("Container Environment Notes:")
        lines.extend(f"- {note}" for note in CONTAINER_NOTES)
        lines.append("")

    lines.append("Note: Always test these settings in a staging environment before applying to production.")
    return lines


def main(content: str, output_path: str, install_path: str, is_container: bool = False) -> Dict[str, Any]:
    """
    Write the artifact and print apply instructions.

    Args:
        content: Rendered sysctl.conf text
        output_path: Destination file (user home is expanded)
        install_path: System location the instructions point at
        is_container: Adds container notes to the instructions

    Returns:
        Dictionary with the written path and byte count
    """
    written = write_artifact(content, output_path)

    print()
    print("Optimization complete!")
    print(f"Configuration saved to: {written}")
    print()
    for line in apply_instructions(written, install_path, is_container):
        print(line)

    return {
        'status': 'completed',
        'path': written,
        'bytes': len(content),
    }
