class ProvisioningException(Exception):
    """Base class for errors that abort provisioning."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)
