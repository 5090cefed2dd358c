from .config import S3Config
from .exceptions import ConfigError, ParseError, S3Error, ServiceError, TransportError
from .s3.bucket import S3Bucket
from .s3.client import S3Client
from .s3.pagination import ListingCursor

__all__ = [
    "ConfigError",
    "ListingCursor",
    "ParseError",
    "S3Bucket",
    "S3Client",
    "S3Config",
    "S3Error",
    "ServiceError",
    "TransportError",
]
