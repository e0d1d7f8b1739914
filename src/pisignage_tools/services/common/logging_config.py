"""
piSignage Player Tools - Centralized Logging Configuration

Provides consistent logging setup across the provisioning services.
"""

import logging

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_LEVEL = logging.INFO


def setup_service_logging(
    service_name: str,
    level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT
) -> logging.Logger:
    """
    Setup logging for a piSignage tools service.

    Args:
        service_name: Name of the service (used as logger name, e.g., 'pisignage-first-boot')
        level: Logging level (default INFO)
        log_format: Log format string (uses default if not specified)

    Returns:
        Configured logger instance
    """
    logging.basicConfig(level=level, format=log_format)
    return logging.getLogger(service_name)


def log_service_start(logger: logging.Logger, service_name: str) -> None:
    """
    Log the standard service startup banner.

    Args:
        logger: Logger instance to use
        service_name: Human-readable service name for the banner
    """
    logger.info("=" * 60)
    logger.info(f"{service_name} Starting")
    logger.info("=" * 60)
