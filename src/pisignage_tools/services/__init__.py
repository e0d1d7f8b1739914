# piSignage Player Tools - Services
#
# Entry points installed as console scripts by setup.py:
#   - pisignage_golden_setup.py: One-time provisioning of a golden player image
#   - pisignage_first_boot.py: Identity regeneration run once by
#     firstboot-identity-fix.service on every cloned card
#   - pisignage_set_hostname.py: Applies the serial-derived hostname on demand
