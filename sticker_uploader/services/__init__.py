"""Services for sticker uploader."""
from .classifier import ResponseClassifier
from .naming import PackNaming
from .retry import RetryEngine, RetryPolicy
from .transport import HTTPTransport, MalformedResponseFailure, TransportFailure, TransportResponse

__all__ = [
    "ResponseClassifier",
    "PackNaming",
    "RetryEngine",
    "RetryPolicy",
    "HTTPTransport",
    "MalformedResponseFailure",
    "TransportFailure",
    "TransportResponse",
]
