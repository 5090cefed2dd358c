from httpx import TransportError

__all__ = ["S3Error", "ServiceError", "ParseError", "ConfigError", "TransportError"]


class S3Error(Exception):
    pass


class ServiceError(S3Error):
    def __init__(self, message: str, *, status: int, reason: str, body: str):
        super().__init__(message)
        self.message = message
        self.status = status
        self.reason = reason
        self.body = body

    def __str__(self):
        return f"{self.message}: {self.status} {self.reason}. Response: {self.body}"


class ParseError(S3Error):
    def __init__(self, message: str, payload: str):
        super().__init__(message)
        self.message = message
        self.payload = payload

    def __str__(self):
        return f"{self.message} Payload: {self.payload}"


class ConfigError(S3Error):
    pass
