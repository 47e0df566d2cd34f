class ProxyError(Exception):
    """Base class for failures on the cache data path."""


class TransportError(ProxyError):
    def __init__(self, message: str):
        super().__init__(message)


class UpstreamError(ProxyError):
    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status


class ParseError(ProxyError):
    def __init__(self, message: str):
        super().__init__(message)


class NotFound(ProxyError):
    def __init__(self, message: str):
        super().__init__(message)


class MissingConfig(Exception):
    def __init__(self, message: str):
        super().__init__(message)
