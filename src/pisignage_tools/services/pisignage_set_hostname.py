"""
piSignage Set Hostname

Applies the serial-derived hostname (pisignage-<last6serial>) right away,
the same way the first-boot routine does, without waiting for a reboot.
"""

import sys

from pisignage_tools.exceptions.provisioning_exception import ProvisioningException
from .common.identity import apply_serial_hostname
from .common.logging_config import setup_service_logging
from .common.paths import DEFAULT_PATHS, SystemPaths
from .common.system import require_root

logger = setup_service_logging('pisignage-set-hostname')


def main(paths: SystemPaths = DEFAULT_PATHS):
    """Entry point for the command."""
    try:
        require_root('pisignage-set-hostname')
    except ProvisioningException as e:
        logger.error(f"ERROR: {e.message}")
        sys.exit(1)

    hostname = apply_serial_hostname(paths)
    if not hostname:
        logger.error("ERROR: Could not set hostname from CPU serial")
        sys.exit(1)

    logger.info(f"Hostname set to {hostname}")
    sys.exit(0)


if __name__ == '__main__':
    main()
