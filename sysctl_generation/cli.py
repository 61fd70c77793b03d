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
sysctl-generator command line.

Detects the local hardware, lets the operator confirm or override it, picks
a workload profile and writes an optimized sysctl.conf suggestion. All
prompts can be bypassed with flags for scripted use (--non-interactive).

Exit status: 0 on success or user abort, 1 when the artifact cannot be
written, 2 for invalid hardware facts or an unknown profile.
"""

import os
import sys
import argparse
import logging
from typing import Any, Callable, Dict, List, Optional

from reconnaissance import hardware as hardware_detection
from sysctl_generation import preflight
from sysctl_generation.errors import InvalidHardwareFact, RenderFailure, UnknownProfile
from sysctl_generation.generator_worker import SysctlGenerator
from sysctl_generation.hardware_facts import DiskMedium, Profile

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_RENDER_FAILURE = 1
EXIT_INVALID_INPUT = 2

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

InputFn = Callable[[str], str]

DISK_MENU = [DiskMedium.HDD, DiskMedium.SSD, DiskMedium.NVME]
DISK_MENU_LABELS = {
    DiskMedium.HDD: "HDD (Hard Disk Drive)",
    DiskMedium.SSD: "SSD (Solid State Drive)",
    DiskMedium.NVME: "NVMe SSD",
}


def configure_logging(verbose: bool):
    level_name = os.getenv("SYSCTL_GENERATOR_LOG_LEVEL", "WARNING").upper()
    level = logging.DEBUG if verbose else logging.getLevelName(level_name)

    # getLevelName maps unknown names to a "Level X" string
    unknown = not isinstance(level, int)
    if unknown:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)

    if unknown:
        logger.warning(f"Unknown log level {level_name!r} in SYSCTL_GENERATOR_LOG_LEVEL, using WARNING")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='sysctl-generator',
        description='Generate an optimized sysctl.conf from hardware facts and a workload profile',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                        # Interactive session
  %(prog)s --list-profiles                        # Show available profiles
  %(prog)s --non-interactive --profile web        # Detected hardware, web profile
  %(prog)s --non-interactive --profile database \\
           --cores 16 --threads 32 --ram-gb 128 --nic-mbps 10000 --disk nvme --stdout
        """)

    parser.add_argument('--profile', metavar='NAME',
                        help=f"Workload profile ({', '.join(p.value for p in Profile)})")
    parser.add_argument('--disable-ipv6', action='store_true', help='Disable IPv6 completely')
    parser.add_argument('--output', metavar='PATH',
                        help='Output file (default: $SYSCTL_GENERATOR_OUTPUT_FILE or ~/sysctl-suggestion.conf)')
    parser.add_argument('--install-path', metavar='PATH',
                        help='System location quoted in the apply instructions')

    hardware = parser.add_argument_group('hardware overrides', 'Replace detected values')
    hardware.add_argument('--cores', type=int, help='Number of CPU cores')
    hardware.add_argument('--threads', type=int, help='Number of CPU threads')
    hardware.add_argument('--ram-gb', type=int, help='RAM in GB')
    hardware.add_argument('--nic-mbps', type=int, help='Network speed in Mbps')
    hardware.add_argument('--disk', choices=[m.value for m in DiskMedium], help='Disk medium')

    parser.add_argument('--non-interactive', action='store_true', help='Never prompt')
    parser.add_argument('-y', '--yes', action='store_true', help='Skip the confirmation prompt')
    parser.add_argument('--stdout', action='store_true', help='Print the artifact instead of writing it')
    parser.add_argument('--list-profiles', action='store_true', help='List available profiles and exit')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose logging')
    return parser


def print_banner():
    print("sysctl-generator")
    print("Automatic sysctl.conf Optimizer")
    print("Analyzes your system and generates optimized kernel parameters")
    print()


def describe_hardware(hardware: Dict[str, Any]) -> List[str]:
    disk = DiskMedium(hardware['disk_medium']).label
    return [
        f"CPU: {hardware['cores']} cores / {hardware['threads']} threads",
        f"RAM: {hardware['ram_gb']} GB",
        f"Network: {hardware['nic_mbps']} Mbps",
        f"Disk: {disk}",
    ]


def prompt_positive_int(prompt: str, input_fn: InputFn = input) -> int:
    while True:
        answer = input_fn(prompt).strip()
        if answer.isdecimal() and int(answer) > 0:
            return int(answer)
        print("Invalid input. Please enter a positive number.")


def prompt_selection(prompt: str, count: int, input_fn: InputFn = input,
                     default: Optional[int] = None) -> int:
    """Read a 1-based menu selection; an empty answer picks default when there is one"""
    while True:
        answer = input_fn(prompt).strip()
        if answer == "" and default is not None:
            return default
        if answer.isdecimal() and 1 <= int(answer) <= count:
            return int(answer)
        print("Invalid selection. Please try again.")


def choose_hardware(hardware: Dict[str, Any], input_fn: InputFn = input) -> Dict[str, Any]:
    print("Hardware Parameters:")
    print("Current detected values:")
    for index, line in enumerate(describe_hardware(hardware), start=1):
        print(f"  {index}. {line}")
    print()
    print("Do you want to use these detected values or manually input your own?")
    print("1) Use detected values (default)")
    print("2) Manually input values")

    if prompt_selection("\nEnter selection [1-2]: ", 2, input_fn, default=1) == 1:
        print("Using detected hardware values.")
        return hardware

    chosen = dict(hardware)
    chosen['cores'] = prompt_positive_int("\nEnter number of CPU cores: ", input_fn)
    chosen['threads'] = prompt_positive_int("Enter number of CPU threads: ", input_fn)
    chosen['ram_gb'] = prompt_positive_int("\nEnter RAM in GB: ", input_fn)
    chosen['nic_mbps'] = prompt_positive_int("\nEnter network speed in Mbps (e.g., 1000 for 1Gbps): ", input_fn)

    print("\nSelect disk type:")
    for index, medium in enumerate(DISK_MENU, start=1):
        print(f"{index}) {DISK_MENU_LABELS[medium]}")
    selection = prompt_selection("\nEnter selection [1-3]: ", len(DISK_MENU), input_fn)
    chosen['disk_medium'] = DISK_MENU[selection - 1].value

    print("\nHardware parameters updated:")
    for line in describe_hardware(chosen):
        print(f"  - {line}")
    return chosen


def choose_profile(input_fn: InputFn = input) -> Profile:
    profiles = list(Profile)
    print("\nSelect your server's primary use case:")
    print("This will determine which optimization profile to use.\n")
    for index, profile in enumerate(profiles, start=1):
        print(f"{index:2d}) {profile.value:<20} {profile.description}")

    selection = prompt_selection(f"\nEnter selection [1-{len(profiles)}]: ", len(profiles), input_fn)
    profile = profiles[selection - 1]
    print(f"\nSelected: {profile.value} - {profile.description}")
    return profile


def ask_ipv6(input_fn: InputFn = input) -> bool:
    print("\nIPv6 Configuration:")
    print("Do you want to disable IPv6 on this system?\n")
    print("1) No, keep IPv6 enabled (default)")
    print("2) Yes, disable IPv6 completely")

    disabled = prompt_selection("\nEnter selection [1-2]: ", 2, input_fn, default=1) == 2
    print(f"IPv6 will be {'disabled' if disabled else 'enabled'} in the generated configuration.")
    return disabled


def confirm(config: Dict[str, Any], output_path: str, input_fn: InputFn = input) -> bool:
    hardware = config['hardware']
    profile = Profile(config['profile'])

    print("\nConfiguration Summary:")
    print(f"  - Use Case: {profile.value} ({profile.description})")
    for line in describe_hardware(hardware):
        print(f"  - {line}")
    if hardware.get('is_container'):
        print(f"  - Environment: {hardware.get('container_type')} container")
    print(f"  - IPv6: {'Disabled' if config['ipv6']['disabled'] else 'Enabled'}")
    print(f"  - Output file: {output_path}")

    while True:
        answer = input_fn("\nGenerate sysctl.conf with these settings? [Y/n]: ").strip()
        if answer in ("", "y", "Y"):
            return True
        if answer in ("n", "N"):
            return False
        print("Invalid choice. Please enter Y or n.")


def apply_overrides(hardware: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Flags win over detected values"""
    overridden = dict(hardware)
    for field, value in (('cores', args.cores), ('threads', args.threads),
                         ('ram_gb', args.ram_gb), ('nic_mbps', args.nic_mbps),
                         ('disk_medium', args.disk)):
        if value is not None:
            logger.debug(f"Overriding detected {field}={hardware.get(field)!r} with {value!r}")
            overridden[field] = value
    return overridden


def list_profiles():
    for profile in Profile:
        print(f"{profile.value:<20} {profile.description}")


def collect_config(args: argparse.Namespace, input_fn: InputFn = input) -> Optional[Dict[str, Any]]:
    """Assemble a generation config from detection, flags and prompts; None on abort"""
    interactive = not args.non_interactive

    if interactive:
        print_banner()

    detected = hardware_detection.main()
    if interactive and detected['is_container']:
        print(f"Running in a {detected['container_type']} container environment")
        print("Note: Container-specific optimizations will be applied\n")

    hardware = apply_overrides(detected, args)
    if interactive:
        hardware = choose_hardware(hardware, input_fn)

    # Fail before the remaining prompts, not after them
    preflight.require_valid_facts(hardware)

    if args.profile:
        profile = preflight.parse_profile(args.profile).value
    elif interactive:
        profile = choose_profile(input_fn).value
    else:
        profile = Profile.GENERAL.value

    if args.disable_ipv6 or not interactive:
        ipv6_disabled = args.disable_ipv6
    else:
        ipv6_disabled = ask_ipv6(input_fn)

    config = {
        'hardware': hardware,
        'profile': profile,
        'ipv6': {'disabled': ipv6_disabled},
        'output': {'path': args.output, 'install_path': args.install_path},
    }

    if interactive and not args.yes and not args.stdout:
        output_path = args.output or os.getenv("SYSCTL_GENERATOR_OUTPUT_FILE", "~/sysctl-suggestion.conf")
        if not confirm(config, output_path, input_fn):
            print("Aborted by user.")
            return None

    return config


def main(argv: Optional[List[str]] = None, input_fn: InputFn = input) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    if args.list_profiles:
        list_profiles()
        return EXIT_OK

    try:
        config = collect_config(args, input_fn)
        if config is None:
            return EXIT_OK
        generator = SysctlGenerator(config)
    except (EOFError, KeyboardInterrupt):
        print("\nAborted by user.")
        return EXIT_OK
    except (InvalidHardwareFact, UnknownProfile) as e:
        logger.error(f"Invalid input: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID_INPUT

    if args.stdout:
        sys.stdout.write(generator.generate())
        return EXIT_OK

    print("\nGenerating optimized sysctl.conf...")
    try:
        generator.run()
    except RenderFailure as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RENDER_FAILURE

    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
