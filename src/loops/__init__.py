"""Loops Python SDK - contacts, events and transactional email."""

from .client import ClientConfig, LoopsClient, RequestContext, RequestInterceptor
from .models import (
    APIKeyInfo,
    Contact,
    ContactIdentifier,
    ContactProperty,
    ContactPropertyCreate,
    EmailAttachment,
    Event,
    MailingList,
    Pagination,
    TransactionalEmail,
    TransactionalEmailList,
    TransactionalEmailSummary,
)
from .exceptions import (
    LoopsError,
    ValidationError,
    ConfigurationError,
    EncodingError,
    DecodingError,
    TransportError,
    NotFoundError,
    RemoteError,
    AuthenticationError,
    ForbiddenError,
    RateLimitError,
)

__version__ = "0.1.0"
__all__ = [
    "LoopsClient",
    "ClientConfig",
    "RequestContext",
    "RequestInterceptor",
    "APIKeyInfo",
    "Contact",
    "ContactIdentifier",
    "ContactProperty",
    "ContactPropertyCreate",
    "EmailAttachment",
    "Event",
    "MailingList",
    "Pagination",
    "TransactionalEmail",
    "TransactionalEmailList",
    "TransactionalEmailSummary",
    "LoopsError",
    "ValidationError",
    "ConfigurationError",
    "EncodingError",
    "DecodingError",
    "TransportError",
    "NotFoundError",
    "RemoteError",
    "AuthenticationError",
    "ForbiddenError",
    "RateLimitError",
]
