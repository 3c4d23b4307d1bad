class RentMapException(Exception):
    """Base Exception Class"""
    pass
class DatasetLoadError(RentMapException):
    """Error class for when a boundary or rent file cannot be loaded at startup"""
    pass
class ConfigError(RentMapException):
    """Config Error"""
    pass
