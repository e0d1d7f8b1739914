from pathlib import Path

from pisignage_tools.exceptions import provisioning_exception


class AlreadyRunningException(provisioning_exception.ProvisioningException):

    def __init__(self, lock_path: Path):
        self.lock_path = lock_path
        super().__init__(f"Another provisioning run holds {lock_path}")
