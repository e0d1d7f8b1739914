# piSignage Player Tools - Common Utilities
#
# Shared helpers used by the provisioning and first-boot services.
# Import directly from the specific module, not from this __init__.py.
#
# Example:
#   from pisignage_tools.services.common.paths import DEFAULT_PATHS
#   from pisignage_tools.services.common.system import enable_unit
