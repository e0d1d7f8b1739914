"""
piSignage Golden Player Setup (Pi 4)

Provisions a piSignage player once, typically on the card that becomes the
golden image:
1. Force HDMI audio + hotplug (boot config)
2. Force ALSA HDMI output (now, and on every boot via a one-shot unit)
3. Set the piSignage server URL (player2/package.json + settings JSON)
4. Install first-boot identity regeneration (machine-id + SSH keys + optional hostname)
5. Optional: --prep-for-clone wipes identity and shuts down (for SD cloning)

Usage examples:
  sudo pisignage-golden-setup --server https://digiddpm.com
  sudo pisignage-golden-setup --server https://digiddpm.com --prep-for-clone
  sudo pisignage-golden-setup --no-hostname

Every step is idempotent, so a failed run can simply be repeated.
"""

import argparse
import sys
from dataclasses import dataclass
from typing import List, Optional, Sequence

from pisignage_tools.constants import SERVER_URL_DEFAULT
from pisignage_tools.exceptions.configuration_exception import ConfigurationException
from pisignage_tools.exceptions.provisioning_exception import ProvisioningException
from .common.boot_config import ensure_hdmi_audio
from .common.identity import prepare_for_clone
from .common.logging_config import setup_service_logging, log_service_start
from .common.paths import DEFAULT_PATHS, SystemPaths
from .common.player_config import set_server_url
from .common.results import StepResult
from .common.system import require_root, single_instance_lock
from .common.units import (
    force_hdmi_audio_now,
    install_first_boot_unit,
    install_hdmi_audio_unit,
)

logger = setup_service_logging('pisignage-golden-setup')

PROG = 'pisignage-golden-setup'


@dataclass(frozen=True)
class ProvisionOptions:
    server_url: str = SERVER_URL_DEFAULT
    prep_for_clone: bool = False
    set_hostname: bool = True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        # A prefix such as --p must not silently mean --prep-for-clone
        allow_abbrev=False,
        description='Provision a piSignage player: HDMI audio, server URL and first-boot identity regeneration.',
    )
    # A bare --server resolves to '' and is rejected after the root check
    parser.add_argument('--server', metavar='URL', nargs='?', const='', default=SERVER_URL_DEFAULT,
                        help=f'Server URL to set (default: {SERVER_URL_DEFAULT})')
    parser.add_argument('--prep-for-clone', action='store_true',
                        help='Wipe SSH host keys + machine-id (so clones regenerate), then shutdown')
    parser.add_argument('--no-hostname', action='store_true',
                        help='Do not change hostname (otherwise sets pisignage-<last6serial> on first boot)')
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> ProvisionOptions:
    """Parse the command line. Unknown flags exit with status 2, --help with 0."""
    args = build_parser().parse_args(argv)
    return ProvisionOptions(
        server_url=args.server.strip(),
        prep_for_clone=args.prep_for_clone,
        set_hostname=not args.no_hostname,
    )


def validate_options(options: ProvisionOptions) -> None:
    if not options.server_url:
        raise ConfigurationException("--server URL is empty")


def provision(options: ProvisionOptions, paths: SystemPaths = DEFAULT_PATHS) -> List[StepResult]:
    """
    Run the provisioning sequence in order.

    A ProvisioningException from any step stops the sequence; steps already
    applied are left in place.

    Returns:
        The result of every step that ran.
    """
    results = []

    logger.info("[1/5] Boot config")
    results.append(ensure_hdmi_audio(paths))

    logger.info("[2/5] HDMI audio route")
    results.append(force_hdmi_audio_now())
    results.append(install_hdmi_audio_unit(paths))

    logger.info("[3/5] Server URL")
    results.extend(set_server_url(paths, options.server_url))

    logger.info("[4/5] First-boot identity regeneration")
    results.append(install_first_boot_unit(paths, options.set_hostname))

    logger.info(f"[5/5] Done installing settings ({sum(1 for r in results if r.changed)} step(s) changed).")
    for result in results:
        if result.is_warning:
            logger.warning(f"  {result.name}: {result.message}")

    if options.prep_for_clone:
        logger.info("=== PREP FOR CLONE ===")
        if not prepare_for_clone(paths):
            raise ProvisioningException(
                "Shutdown failed after wiping identity. Power the device off manually before imaging it."
            )
    else:
        logger.info("Next:")
        logger.info(f"  1) Reboot and test: HDMI audio + piSignage connects to {options.server_url}")
        logger.info("  2) If you ever want cloning: run with --prep-for-clone (it will shutdown)")

    return results


def main(argv: Optional[Sequence[str]] = None, paths: SystemPaths = DEFAULT_PATHS):
    """Entry point for the provisioning command."""
    options = parse_args(argv)

    try:
        require_root(PROG)
        validate_options(options)

        log_service_start(logger, 'piSignage Golden Setup')
        logger.info(f"Server URL: {options.server_url}")
        logger.info(f"Prep for clone: {options.prep_for_clone}")
        logger.info(f"Set hostname on first boot: {options.set_hostname}")

        with single_instance_lock(paths.lock_file):
            provision(options, paths)
    except ProvisioningException as e:
        logger.error(f"ERROR: {e.message}")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Unhandled exception during provisioning: {e}")
        sys.exit(1)

    sys.exit(0)


if __name__ == '__main__':
    main()
