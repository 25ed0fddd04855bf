# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .exceptions import InvalidIdentityPayloadError


def _parse_timestamp(value: Any, field: str) -> datetime | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidIdentityPayloadError(
            f"Invalid timestamp for {field}", context={"field": field}
        )
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise InvalidIdentityPayloadError(
            f"Invalid timestamp for {field}", context={"field": field, "value": value}
        ) from exc


def _format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _optional_str(value: Any, field: str) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise InvalidIdentityPayloadError(f"Invalid value for {field}", context={"field": field})


def _optional_bool(value: Any, field: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    raise InvalidIdentityPayloadError(f"Invalid value for {field}", context={"field": field})


@dataclass(slots=True, frozen=True)
class UserIdentity:
    """Identity of the signed-in user.

    Produced either by the auth provider's profile endpoint or by the
    backend profile API. The two sources are not reconciled.
    """

    id: str
    display_name: str
    email: str | None = None
    email_verified: bool = False
    profile_image_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "uid": self.id,
            "displayName": self.display_name,
            "email": self.email,
            "emailVerified": self.email_verified,
            "profileImageUrl": self.profile_image_url,
            "createdAt": _format_timestamp(self.created_at),
            "updatedAt": _format_timestamp(self.updated_at),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Any) -> UserIdentity:
        if not isinstance(data, Mapping):
            raise InvalidIdentityPayloadError("Identity payload must be an object")

        uid = data.get("uid")
        if not isinstance(uid, str) or not uid.strip():
            raise InvalidIdentityPayloadError("Identity payload has no uid")

        display_name = data.get("displayName", "")
        if not isinstance(display_name, str):
            raise InvalidIdentityPayloadError(
                "Invalid value for displayName", context={"field": "displayName"}
            )

        return cls(
            id=uid,
            display_name=display_name,
            email=_optional_str(data.get("email"), "email"),
            email_verified=_optional_bool(data.get("emailVerified"), "emailVerified"),
            profile_image_url=_optional_str(data.get("profileImageUrl"), "profileImageUrl"),
            created_at=_parse_timestamp(data.get("createdAt"), "createdAt"),
            updated_at=_parse_timestamp(data.get("updatedAt"), "updatedAt"),
        )

    @classmethod
    def from_json(cls, raw: str) -> UserIdentity:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise InvalidIdentityPayloadError("Identity payload is not valid JSON") from exc
        return cls.from_dict(data)

    @classmethod
    def from_provider_profile(cls, data: Mapping[str, Any], now: datetime) -> UserIdentity:
        """Map a Graph API ``/me`` response.

        Provider emails are verified by the provider, so ``email_verified``
        is always true here.
        """
        uid = data.get("id")
        if uid is None or not str(uid).strip():
            raise InvalidIdentityPayloadError("Provider profile has no id")

        picture_url = None
        picture = data.get("picture")
        if isinstance(picture, Mapping):
            picture_data = picture.get("data")
            if isinstance(picture_data, Mapping):
                picture_url = _optional_str(picture_data.get("url"), "picture.data.url")

        return cls(
            id=str(uid),
            display_name=str(data.get("name") or ""),
            email=_optional_str(data.get("email"), "email"),
            email_verified=True,
            profile_image_url=picture_url,
            created_at=now,
        )

    @classmethod
    def from_backend_user(cls, data: Mapping[str, Any]) -> UserIdentity:
        uid = data.get("_id") or data.get("id")
        if uid is None or not str(uid).strip():
            raise InvalidIdentityPayloadError("Backend user has no _id")

        image_url = None
        image = data.get("profileImage")
        if isinstance(image, Mapping):
            image_url = _optional_str(image.get("url"), "profileImage.url")

        return cls(
            id=str(uid),
            display_name=str(data.get("displayName") or ""),
            email=_optional_str(data.get("email"), "email"),
            email_verified=_optional_bool(data.get("emailVerified"), "emailVerified"),
            profile_image_url=image_url,
            created_at=_parse_timestamp(data.get("createdAt"), "createdAt"),
            updated_at=_parse_timestamp(data.get("updatedAt"), "updatedAt"),
        )
