# File: common/exceptions/base_exception.py


class KeysweepException(Exception):
    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


# Specific custom exceptions using KeysweepException
class TopologyException(KeysweepException):
    def __init__(self, detail: str = "No usable Redis shards were resolved."):
        super().__init__(detail)

class InvalidPatternException(KeysweepException):
    def __init__(self, detail: str = "Key pattern must not be empty."):
        super().__init__(detail)

class ServiceUnavailableException(KeysweepException):
    def __init__(self, detail: str = "Redis temporarily unavailable. Please try again later."):
        super().__init__(detail)


# Group all custom exceptions so the CLI can catch them in one place
CUSTOM_EXCEPTIONS = (
    TopologyException,
    InvalidPatternException,
    ServiceUnavailableException,
)
