from pisignage_tools.exceptions import provisioning_exception


class RootRequiredException(provisioning_exception.ProvisioningException):

    def __init__(self, program: str = "pisignage-golden-setup"):
        super().__init__(f"Please run as root: sudo {program} ...")
