"""Loops API client."""

from __future__ import annotations

import json
import logging
import os
import warnings
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

import httpx

from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    DecodingError,
    EncodingError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    RemoteError,
    TransportError,
    ValidationError,
)
from .models import (
    APIKeyInfo,
    Contact,
    ContactIdentifier,
    ContactProperty,
    ContactPropertyCreate,
    ContactPropertyList,
    Event,
    IDResponse,
    MailingList,
    MessageResponse,
    SuccessResponse,
    TransactionalEmail,
    TransactionalEmailList,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_URL = "https://app.loops.so/api/v1/"
API_KEY_ENV = "LOOPS_API_KEY"
USER_AGENT = "loops-python/0.1.0"


@dataclass(frozen=True)
class RequestContext:
    """Per-call information handed to every request interceptor."""

    method: str
    path: str
    timeout: float | None = None


RequestInterceptor = Callable[[httpx.Request, RequestContext], None]
"""Mutates an outgoing request in place. Raising aborts the call."""


@dataclass(frozen=True)
class ClientConfig:
    """Construction-time settings of a :class:`LoopsClient`.

    Attributes:
        api_key: Loops API key, sent as a bearer token. Requests are sent
            unauthenticated when empty.
        base_url: Versioned API root all request paths are resolved against.
        timeout: Default request timeout in seconds.
        transport: Replacement httpx transport, e.g. ``httpx.MockTransport``
            in tests.
        request_interceptors: Extra interceptors, run after authentication
            and before the content type is set.
        user_agent: Value of the ``User-Agent`` header.
    """

    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0
    transport: httpx.BaseTransport | None = None
    request_interceptors: tuple[RequestInterceptor, ...] = field(default_factory=tuple)
    user_agent: str = USER_AGENT


def _parse_base_url(base_url: str) -> httpx.URL:
    try:
        url = httpx.URL(base_url)
    except (httpx.InvalidURL, TypeError) as e:
        raise ConfigurationError(f"invalid api url {base_url!r}: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(f"invalid api url {base_url!r}: expected an absolute http(s) URL")
    # paths are resolved relative to the last segment
    if not url.path.endswith("/"):
        url = url.copy_with(path=url.path + "/")
    return url


def _error_message(body: str, status_code: int) -> str:
    """Pick the server's error text out of a failure response body.

    Tries ``{"error": "..."}``, then ``{"message": "..."}``; empty strings do
    not count. Falls back to the raw body, or to a status line when the body
    is blank.
    """
    if not body.strip():
        return f"Request failed with status {status_code}"
    try:
        data = json.loads(body)
    except ValueError:
        return body
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, str) and error:
            return error
        message = data.get("message")
        if isinstance(message, str) and message:
            return message
    return body


def _remote_error(response: httpx.Response) -> RemoteError:
    body = response.text
    status = response.status_code
    message = _error_message(body, status)
    if status == 401:
        return AuthenticationError(message, status_code=status, body=body)
    if status == 403:
        return ForbiddenError(message, status_code=status, body=body)
    if status == 429:
        retry_after = response.headers.get("Retry-After")
        return RateLimitError(
            message,
            status_code=status,
            body=body,
            retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
        )
    return RemoteError(message, status_code=status, body=body)


def _list_of(decode: Callable[[Any], T]) -> Callable[[Any], list[T]]:
    def decode_list(data: Any) -> list[T]:
        if not isinstance(data, list):
            raise DecodingError(f"expected a JSON array, got {type(data).__name__}")
        return [decode(item) for item in data]

    return decode_list


def _string(data: Any) -> str:
    if not isinstance(data, str):
        raise DecodingError(f"expected a string, got {type(data).__name__}")
    return data


class LoopsClient:
    """Client for interacting with the Loops API.

    Example:
        ```python
        from loops import Contact, LoopsClient

        with LoopsClient(api_key="your-api-key") as client:
            contact_id = client.contacts.create(
                Contact(
                    email="neil.armstrong@moon.space",
                    first_name="Neil",
                    custom_properties={"mission": "Apollo 11"},
                )
            )

            contact = client.contacts.find(email="neil.armstrong@moon.space")
            print(contact.custom_properties["mission"])
        ```
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        request_interceptors: tuple[RequestInterceptor, ...] | list[RequestInterceptor] = (),
        *,
        config: ClientConfig | None = None,
    ):
        """Initialize the Loops client.

        Args:
            api_key: Your Loops API key. Defaults to the ``LOOPS_API_KEY``
                environment variable.
            base_url: Base URL for the Loops API.
            timeout: Default request timeout in seconds.
            transport: Custom httpx transport (for example a mock in tests).
            request_interceptors: Additional request interceptors.
            config: A complete configuration; overrides all other arguments.

        Raises:
            ConfigurationError: If ``base_url`` is not an absolute http(s) URL.
        """
        if config is None:
            config = ClientConfig(
                api_key=api_key if api_key is not None else os.environ.get(API_KEY_ENV),
                base_url=base_url,
                timeout=timeout,
                transport=transport,
                request_interceptors=tuple(request_interceptors),
            )
        self.config = config
        self.base_url = _parse_base_url(config.base_url)

        interceptors: list[RequestInterceptor] = []
        if config.api_key:
            interceptors.append(self._authorize)
        interceptors.extend(config.request_interceptors)
        interceptors.append(self._set_content_type)
        self._interceptors = tuple(interceptors)

        self._client = httpx.Client(
            headers={"User-Agent": config.user_agent},
            timeout=config.timeout,
            transport=config.transport,
        )

        # Resource endpoints
        self.contacts = ContactsResource(self)
        self.contact_properties = ContactPropertiesResource(self)
        self.mailing_lists = MailingListsResource(self)
        self.events = EventsResource(self)
        self.transactional = TransactionalResource(self)

    def _authorize(self, request: httpx.Request, context: RequestContext) -> None:
        request.headers["Authorization"] = f"Bearer {self.config.api_key}"

    @staticmethod
    def _set_content_type(request: httpx.Request, context: RequestContext) -> None:
        request.headers["Content-Type"] = "application/json"

    def build_request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: Any = None,
        timeout: float | None = None,
    ) -> httpx.Request:
        """Build a request and run the interceptor chain over it.

        Args:
            method: HTTP method.
            path: Path relative to the base URL; a leading ``/`` does not
                escape the base path.
            params: Query parameters, encoded in insertion order.
            body: A model with ``to_dict()`` or any JSON-serializable value.
            timeout: Timeout for this call in seconds, defaults to the
                client's timeout.

        Raises:
            ConfigurationError: If the target URL cannot be built.
            EncodingError: If the body cannot be serialized.
        """
        if not path:
            raise ConfigurationError("request path must not be empty")
        try:
            target = httpx.URL(path)
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"invalid request path {path!r}: {e}") from e
        if target.scheme or target.host:
            raise ConfigurationError(f"request path {path!r} must be relative to the base URL")
        relative = "." + path if path.startswith("/") else path
        try:
            url = self.base_url.join(relative)
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"invalid request path {path!r}: {e}") from e

        content = None
        if body is not None:
            payload = body.to_dict() if hasattr(body, "to_dict") else body
            try:
                content = json.dumps(payload, allow_nan=False).encode()
            except (TypeError, ValueError) as e:
                raise EncodingError(f"failed to marshal request body: {e}") from e

        effective_timeout = timeout if timeout is not None else self.config.timeout
        request = self._client.build_request(
            method,
            url,
            params=params or None,
            content=content,
            timeout=effective_timeout,
        )
        context = RequestContext(method=method, path=path, timeout=effective_timeout)
        for interceptor in self._interceptors:
            interceptor(request, context)
        return request

    def send(self, request: httpx.Request, decode: Callable[[Any], T]) -> T:
        """Send a built request and decode the response.

        Args:
            request: Request from :meth:`build_request`.
            decode: Turns the parsed JSON body of a successful response into
                the result; raises ``DecodingError`` on unexpected shapes.

        Raises:
            TransportError: On network errors and timeouts.
            RemoteError: If the API answers with a status of 300 or above.
            DecodingError: If a successful response cannot be decoded.
        """
        logger.debug("Sending %s %s", request.method, request.url)
        try:
            response = self._client.send(request)
        except httpx.RequestError as e:
            raise TransportError(f"failed to send request {request.url}: {e}") from e
        logger.debug("%s %s returned %s", request.method, request.url, response.status_code)

        if response.status_code >= 300:
            raise _remote_error(response)

        try:
            data = response.json()
        except ValueError as e:
            raise DecodingError(f"failed to unmarshal response body: {e}") from e
        return decode(data)

    def _request(
        self,
        method: str,
        path: str,
        decode: Callable[[Any], T],
        params: dict[str, Any] | None = None,
        body: Any = None,
        timeout: float | None = None,
    ) -> T:
        """Make an API request."""
        request = self.build_request(method, path, params=params, body=body, timeout=timeout)
        return self.send(request, decode)

    def dedicated_sending_ips(self, *, timeout: float | None = None) -> list[str]:
        """List Loops' dedicated sending IP addresses.

        Returns:
            IP addresses as strings.
        """
        return self._request("GET", "/dedicated-sending-ips", _list_of(_string), timeout=timeout)

    def test_api_key(self, *, timeout: float | None = None) -> APIKeyInfo:
        """Check that the configured API key is valid.

        Returns:
            Key info including the name of the team it belongs to.

        Raises:
            AuthenticationError: If the key is invalid.
        """
        return self._request("GET", "/api-key", APIKeyInfo.from_dict, timeout=timeout)

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> LoopsClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class ContactsResource:
    """Contacts API resource."""

    def __init__(self, client: LoopsClient):
        self._client = client

    def create(self, contact: Contact, *, timeout: float | None = None) -> str:
        """Create a contact.

        Args:
            contact: The contact. ``email`` is required by the API.

        Returns:
            ID of the new contact.
        """
        response = self._client._request(
            "POST", "/contacts/create", IDResponse.from_dict, body=contact, timeout=timeout
        )
        return response.id

    def update(self, contact: Contact, *, timeout: float | None = None) -> str:
        """Update a contact, creating it if it does not exist.

        Args:
            contact: The contact, matched by ``email`` or ``user_id``.

        Returns:
            ID of the contact.
        """
        response = self._client._request(
            "PUT", "/contacts/update", IDResponse.from_dict, body=contact, timeout=timeout
        )
        return response.id

    def find(
        self,
        email: str | None = None,
        user_id: str | None = None,
        *,
        timeout: float | None = None,
    ) -> Contact:
        """Find a contact by email or user ID.

        Args:
            email: Contact email address.
            user_id: Contact user ID.

        Returns:
            The matching contact.

        Raises:
            ValidationError: If not exactly one of ``email`` and ``user_id`` is given.
            NotFoundError: If no contact matches.
        """
        identifier = ContactIdentifier(email=email, user_id=user_id)
        identifier.validate()
        contacts = self._client._request(
            "GET",
            "/contacts/find",
            _list_of(Contact.from_dict),
            params=identifier.to_dict(),
            timeout=timeout,
        )
        if not contacts:
            raise NotFoundError()
        return contacts[0]

    def delete(
        self,
        email: str | None = None,
        user_id: str | None = None,
        *,
        timeout: float | None = None,
    ) -> MessageResponse:
        """Delete a contact by email or user ID.

        Args:
            email: Contact email address.
            user_id: Contact user ID.

        Returns:
            Success response.

        Raises:
            ValidationError: If not exactly one of ``email`` and ``user_id`` is given.
        """
        identifier = ContactIdentifier(email=email, user_id=user_id)
        identifier.validate()
        return self._client._request(
            "POST", "/contacts/delete", MessageResponse.from_dict, body=identifier, timeout=timeout
        )


class ContactPropertiesResource:
    """Contact properties API resource."""

    def __init__(self, client: LoopsClient):
        self._client = client

    def list(
        self,
        list_type: ContactPropertyList = "all",
        *,
        timeout: float | None = None,
    ) -> list[ContactProperty]:
        """List contact properties.

        Args:
            list_type: ``"all"`` (default) or ``"custom"`` to only list the
                team's custom properties.

        Returns:
            List of contact properties.
        """
        if list_type == "custom":
            params = {"list": "custom"}
        elif list_type == "all":
            params = None
        else:
            raise ValidationError(f"invalid list type {list_type!r}, expected 'all' or 'custom'")
        return self._client._request(
            "GET",
            "/contacts/properties",
            _list_of(ContactProperty.from_dict),
            params=params,
            timeout=timeout,
        )

    def create(
        self,
        contact_property: ContactPropertyCreate,
        *,
        timeout: float | None = None,
    ) -> None:
        """Create a custom contact property.

        Args:
            contact_property: Name (camelCase) and type of the property.
        """
        self._client._request(
            "POST",
            "/contacts/properties",
            SuccessResponse.from_dict,
            body=contact_property,
            timeout=timeout,
        )

    def custom_fields(self, *, timeout: float | None = None) -> list[ContactProperty]:
        """List custom contact fields.

        Deprecated: use ``list("custom")`` instead.
        """
        warnings.warn(
            "custom_fields() is deprecated, use contact_properties.list('custom')",
            DeprecationWarning,
            stacklevel=2,
        )
        return self._client._request(
            "GET", "/contacts/customFields", _list_of(ContactProperty.from_dict), timeout=timeout
        )


class MailingListsResource:
    """Mailing lists API resource."""

    def __init__(self, client: LoopsClient):
        self._client = client

    def list(self, *, timeout: float | None = None) -> list[MailingList]:
        """List the team's mailing lists.

        Returns:
            List of mailing lists.
        """
        return self._client._request(
            "GET", "/lists", _list_of(MailingList.from_dict), timeout=timeout
        )


class EventsResource:
    """Events API resource."""

    def __init__(self, client: LoopsClient):
        self._client = client

    def send(self, event: Event, *, timeout: float | None = None) -> None:
        """Send an event to trigger emails.

        Args:
            event: The event; must name the contact by exactly one of
                ``email`` and ``user_id``.

        Raises:
            ValidationError: If the contact is not identified by exactly one field.
        """
        event.validate()
        self._client._request(
            "POST", "/events/send", MessageResponse.from_dict, body=event, timeout=timeout
        )


class TransactionalResource:
    """Transactional email API resource."""

    def __init__(self, client: LoopsClient):
        self._client = client

    def send(self, email: TransactionalEmail, *, timeout: float | None = None) -> None:
        """Send a transactional email.

        Args:
            email: Template ID, recipient, data variables and attachments.
        """
        self._client._request(
            "POST", "/transactional", MessageResponse.from_dict, body=email, timeout=timeout
        )

    def list(
        self,
        per_page: int | None = None,
        cursor: str | None = None,
        *,
        timeout: float | None = None,
    ) -> TransactionalEmailList:
        """List published transactional emails.

        Args:
            per_page: Results per page, 10 to 50 (API default: 20).
            cursor: Pagination cursor from a previous page.

        Returns:
            One page of transactional emails.

        Raises:
            ValidationError: If ``per_page`` is out of range.
        """
        params: dict[str, Any] = {}
        if per_page is not None:
            if per_page < 10 or per_page > 50:
                raise ValidationError("perPage must be between 10 and 50 (inclusive)")
            params["perPage"] = per_page
        if cursor:
            params["cursor"] = cursor
        return self._client._request(
            "GET",
            "/transactional",
            TransactionalEmailList.from_dict,
            params=params,
            timeout=timeout,
        )
