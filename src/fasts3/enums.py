from enum import Enum


class Service(Enum):
    S3 = "s3"
