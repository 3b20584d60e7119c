"""Request and response models for the Loops API.

Models are plain dataclasses with snake_case attributes. ``to_dict`` builds
the camelCase wire object for outgoing bodies and ``from_dict`` decodes a
parsed response object, raising :class:`~loops.exceptions.DecodingError`
when a required field is missing or has the wrong type.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Literal

from .exceptions import DecodingError, EncodingError, ValidationError


ContactPropertyType = Literal["string", "number", "boolean", "date"]
ContactPropertyList = Literal["all", "custom"]


def _is_type(value: Any, kind: type) -> bool:
    # bool is an int subclass, never accept it for numeric fields
    if kind is int:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, kind)


def _expect_object(data: Any, model: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise DecodingError(f"{model}: expected a JSON object, got {type(data).__name__}")
    return data


def _required(data: dict[str, Any], key: str, kind: type, model: str) -> Any:
    if key not in data:
        raise DecodingError(f"{model}: missing required field '{key}'")
    value = data[key]
    if not _is_type(value, kind):
        raise DecodingError(
            f"{model}: field '{key}' must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


def _optional(data: dict[str, Any], key: str, kind: type) -> Any:
    """Return ``data[key]`` if present and of ``kind``, otherwise None."""
    value = data.get(key)
    if value is None or not _is_type(value, kind):
        return None
    return value


def _decode_bool_map(value: Any, key: str, model: str) -> dict[str, bool]:
    if not isinstance(value, dict):
        raise DecodingError(f"{model}: field '{key}' must be an object")
    result: dict[str, bool] = {}
    for name, flag in value.items():
        if not isinstance(flag, bool):
            raise DecodingError(
                f"{model}: '{key}.{name}' must be bool, got {type(flag).__name__}"
            )
        result[name] = flag
    return result


def _load_json(raw: bytes | str, model: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError as e:
        raise DecodingError(f"{model}: invalid JSON: {e}") from e


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


def require_identity(email: str | None, user_id: str | None, what: str) -> None:
    """Check that exactly one of ``email`` and ``user_id`` is set."""
    if email is None and user_id is None:
        raise ValidationError(f"{what} must contain either an email or a userId")
    if email is not None and user_id is not None:
        raise ValidationError(f"{what} must contain either an email or a userId, but not both")


# Wire keys of the known contact attributes, in encoding order.
_CONTACT_FIELDS: dict[str, str] = {
    "id": "id",
    "email": "email",
    "subscribed": "subscribed",
    "first_name": "firstName",
    "last_name": "lastName",
    "source": "source",
    "user_group": "userGroup",
    "user_id": "userId",
    "opt_in_status": "optInStatus",
    "mailing_lists": "mailingLists",
}
_CONTACT_OPTIONAL_STRINGS = (
    "first_name",
    "last_name",
    "source",
    "user_group",
    "user_id",
    "opt_in_status",
)
RESERVED_CONTACT_KEYS = frozenset(_CONTACT_FIELDS.values())


@dataclass
class Contact:
    """A Loops contact.

    Custom contact properties live in ``custom_properties`` and are inlined
    next to the known attributes on the wire::

        Contact(id="123", email="a@b.c", subscribed=True,
                custom_properties={"favoriteColor": "blue"}).to_dict()
        # {"id": "123", "email": "a@b.c", "subscribed": True, "favoriteColor": "blue"}

    A custom property named like a known attribute (see
    ``RESERVED_CONTACT_KEYS``) is never written; the known attribute wins.
    """

    email: str = ""
    id: str = ""
    subscribed: bool = False
    first_name: str | None = None
    last_name: str | None = None
    source: str | None = None
    user_group: str | None = None
    user_id: str | None = None
    opt_in_status: str | None = None
    mailing_lists: dict[str, bool] | None = None
    custom_properties: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Encode to the flat wire object.

        Raises:
            EncodingError: If a custom property value is not JSON-serializable.
        """
        data: dict[str, Any] = {
            "id": self.id,
            "email": self.email,
            "subscribed": self.subscribed,
        }
        for attr in _CONTACT_OPTIONAL_STRINGS:
            value = getattr(self, attr)
            if value is not None:
                data[_CONTACT_FIELDS[attr]] = value
        if self.mailing_lists:
            data["mailingLists"] = dict(self.mailing_lists)

        for key, value in self.custom_properties.items():
            if key in RESERVED_CONTACT_KEYS:
                continue
            try:
                json.dumps(value, allow_nan=False)
            except (TypeError, ValueError) as e:
                raise EncodingError(
                    f"Contact: custom property '{key}' is not JSON-serializable: {e}"
                ) from e
            data[key] = value
        return data

    def to_json(self) -> bytes:
        """Encode to JSON bytes.

        Raises:
            EncodingError: If any value, mailing lists included, is not
                JSON-serializable.
        """
        try:
            return json.dumps(self.to_dict(), allow_nan=False).encode()
        except (TypeError, ValueError) as e:
            raise EncodingError(f"Contact: failed to marshal contact: {e}") from e

    @classmethod
    def from_dict(cls, data: Any) -> Contact:
        """Decode a wire object, folding unknown keys into ``custom_properties``.

        Raises:
            DecodingError: If ``id``, ``email`` or ``subscribed`` is missing or
                mistyped, or if ``mailingLists`` is not an object of booleans.
        """
        remaining = dict(_expect_object(data, "Contact"))

        contact_id = _required(remaining, "id", str, "Contact")
        email = _required(remaining, "email", str, "Contact")
        subscribed = _required(remaining, "subscribed", bool, "Contact")

        optional = {
            attr: _optional(remaining, _CONTACT_FIELDS[attr], str)
            for attr in _CONTACT_OPTIONAL_STRINGS
        }

        mailing_lists = None
        if remaining.get("mailingLists") is not None:
            mailing_lists = _decode_bool_map(remaining["mailingLists"], "mailingLists", "Contact")

        for key in RESERVED_CONTACT_KEYS:
            remaining.pop(key, None)

        return cls(
            id=contact_id,
            email=email,
            subscribed=subscribed,
            mailing_lists=mailing_lists,
            custom_properties=remaining,
            **optional,
        )

    @classmethod
    def from_json(cls, raw: bytes | str) -> Contact:
        return cls.from_dict(_load_json(raw, "Contact"))


@dataclass
class ContactIdentifier:
    """Addresses one contact by email or by user ID, never both."""

    email: str | None = None
    user_id: str | None = None

    def validate(self) -> None:
        require_identity(self.email, self.user_id, "contact identifier")

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({"email": self.email, "userId": self.user_id})


@dataclass
class MailingList:
    """A mailing list of the team."""

    id: str
    name: str
    is_public: bool
    description: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> MailingList:
        data = _expect_object(data, "MailingList")
        return cls(
            id=_required(data, "id", str, "MailingList"),
            name=_required(data, "name", str, "MailingList"),
            is_public=_required(data, "isPublic", bool, "MailingList"),
            description=_optional(data, "description", str),
        )


@dataclass
class Event:
    """An event sent to trigger loops for a contact."""

    event_name: str
    email: str | None = None
    user_id: str | None = None
    contact_properties: dict[str, Any] | None = None
    event_properties: dict[str, Any] | None = None
    mailing_lists: dict[str, bool] | None = None

    def validate(self) -> None:
        require_identity(self.email, self.user_id, "event")

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "email": self.email,
                "userId": self.user_id,
                "eventName": self.event_name,
                "contactProperties": self.contact_properties or None,
                "eventProperties": self.event_properties,
                "mailingLists": self.mailing_lists,
            }
        )


@dataclass
class EmailAttachment:
    """A file sent along with a transactional email."""

    filename: str
    content_type: str
    data: str  # base64-encoded

    def to_dict(self) -> dict[str, Any]:
        return {"filename": self.filename, "contentType": self.content_type, "data": self.data}


@dataclass
class TransactionalEmail:
    """A transactional email to send to one recipient."""

    transactional_id: str
    email: str
    add_to_audience: bool | None = None
    data_variables: dict[str, Any] | None = None
    attachments: list[EmailAttachment] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "transactionalId": self.transactional_id,
            "email": self.email,
        }
        if self.add_to_audience is not None:
            data["addToAudience"] = self.add_to_audience
        if self.data_variables is not None:
            data["dataVariables"] = self.data_variables
        if self.attachments is not None:
            data["attachments"] = [a.to_dict() for a in self.attachments]
        return data


@dataclass
class ContactProperty:
    """A contact property defined for the team."""

    key: str
    label: str
    type: str

    @classmethod
    def from_dict(cls, data: Any) -> ContactProperty:
        data = _expect_object(data, "ContactProperty")
        return cls(
            key=_required(data, "key", str, "ContactProperty"),
            label=_required(data, "label", str, "ContactProperty"),
            type=_required(data, "type", str, "ContactProperty"),
        )


@dataclass
class ContactPropertyCreate:
    """A new custom contact property.

    ``name`` must be camelCase, e.g. ``planName``.
    """

    name: str
    type: ContactPropertyType

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type}


@dataclass
class Pagination:
    total_results: int
    returned_results: int
    per_page: int
    total_pages: int
    next_cursor: str | None = None
    next_page: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Pagination:
        data = _expect_object(data, "Pagination")
        return cls(
            total_results=_required(data, "totalResults", int, "Pagination"),
            returned_results=_required(data, "returnedResults", int, "Pagination"),
            per_page=_required(data, "perPage", int, "Pagination"),
            total_pages=_required(data, "totalPages", int, "Pagination"),
            next_cursor=_optional(data, "nextCursor", str),
            next_page=_optional(data, "nextPage", str),
        )


@dataclass
class TransactionalEmailSummary:
    """A published transactional email template."""

    id: str
    name: str
    last_updated: str
    data_variables: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> TransactionalEmailSummary:
        data = _expect_object(data, "TransactionalEmailSummary")
        variables = data.get("dataVariables") or []
        if not isinstance(variables, list) or not all(isinstance(v, str) for v in variables):
            raise DecodingError(
                "TransactionalEmailSummary: field 'dataVariables' must be a list of strings"
            )
        return cls(
            id=_required(data, "id", str, "TransactionalEmailSummary"),
            name=_required(data, "name", str, "TransactionalEmailSummary"),
            last_updated=_required(data, "lastUpdated", str, "TransactionalEmailSummary"),
            data_variables=list(variables),
        )


@dataclass
class TransactionalEmailList:
    """One page of published transactional emails."""

    pagination: Pagination
    data: list[TransactionalEmailSummary]

    @classmethod
    def from_dict(cls, data: Any) -> TransactionalEmailList:
        data = _expect_object(data, "TransactionalEmailList")
        items = _required(data, "data", list, "TransactionalEmailList")
        return cls(
            pagination=Pagination.from_dict(
                _required(data, "pagination", dict, "TransactionalEmailList")
            ),
            data=[TransactionalEmailSummary.from_dict(item) for item in items],
        )


@dataclass
class APIKeyInfo:
    success: bool
    team_name: str

    @classmethod
    def from_dict(cls, data: Any) -> APIKeyInfo:
        data = _expect_object(data, "APIKeyInfo")
        return cls(
            success=_required(data, "success", bool, "APIKeyInfo"),
            team_name=_required(data, "teamName", str, "APIKeyInfo"),
        )


@dataclass
class IDResponse:
    success: bool
    id: str

    @classmethod
    def from_dict(cls, data: Any) -> IDResponse:
        data = _expect_object(data, "IDResponse")
        return cls(
            success=_required(data, "success", bool, "IDResponse"),
            id=_required(data, "id", str, "IDResponse"),
        )


@dataclass
class MessageResponse:
    success: bool
    message: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> MessageResponse:
        data = _expect_object(data, "MessageResponse")
        return cls(
            success=_required(data, "success", bool, "MessageResponse"),
            message=_optional(data, "message", str) or "",
        )


@dataclass
class SuccessResponse:
    success: bool

    @classmethod
    def from_dict(cls, data: Any) -> SuccessResponse:
        data = _expect_object(data, "SuccessResponse")
        return cls(success=_required(data, "success", bool, "SuccessResponse"))
