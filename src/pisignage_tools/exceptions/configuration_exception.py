from pisignage_tools.exceptions import provisioning_exception


class ConfigurationException(provisioning_exception.ProvisioningException):
    pass
