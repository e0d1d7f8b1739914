from pathlib import Path

from pisignage_tools.exceptions import provisioning_exception


class PlayerConfigException(provisioning_exception.ProvisioningException):

    def __init__(self, path: Path, message: str = None):
        self.path = path
        text = f"Could not update player config {path}."
        if message:
            text = f"{text} {message}"
        super().__init__(text)


class PlayerConfigNotFoundException(PlayerConfigException):

    def __init__(self, path: Path):
        super().__init__(path, "File does not exist; is the piSignage player installed?")
