# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Client for the backend user-profile REST API."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx

from social_auth.domain.users.entities import UserIdentity
from social_auth.domain.users.exceptions import InvalidIdentityPayloadError
from social_auth.shared.config import ApiConfig, load_config
from social_auth.shared.logging import logger

from .exceptions import BackendApiError, EmptyProfileUpdateError, MissingAccessTokenError

IMAGE_CONTENT_TYPES: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}
_DEFAULT_IMAGE_TYPE = "image/jpeg"
_IMAGE_FIELD = "profileImage"


def image_content_type(extension: str) -> str:
    return IMAGE_CONTENT_TYPES.get(extension.lower(), _DEFAULT_IMAGE_TYPE)


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ProfileClient:
    """Stateless mapper over the profile endpoints.

    Every call needs a bearer token set beforehand with ``set_access_token``;
    tokens are never refreshed here.
    """

    def __init__(
        self,
        config: ApiConfig | None = None,
        *,
        access_token: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        config = config or load_config().api
        self._auth_url = config.auth_url.rstrip("/")
        self._users_url = config.users_url.rstrip("/")
        self._access_token = access_token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.timeout)

        logger.debug(
            f"ProfileClient: initialized auth_url={self._auth_url} users_url={self._users_url}"
        )

    async def __aenter__(self) -> ProfileClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def set_access_token(self, token: str) -> None:
        self._access_token = token

    def clear_access_token(self) -> None:
        self._access_token = None

    @property
    def has_access_token(self) -> bool:
        return bool(self._access_token)

    async def get_profile(self) -> UserIdentity:
        response = await self._request(
            "GET", f"{self._auth_url}/me", fallback="Failed to load user profile"
        )
        return self._parse_user(response, "Failed to load user profile")

    async def get_user_by_id(self, user_id: str) -> UserIdentity:
        response = await self._request(
            "GET",
            f"{self._users_url}/{quote(user_id, safe='')}",
            fallback="Failed to load user",
        )
        return self._parse_user(response, "Failed to load user")

    async def update_profile(
        self,
        display_name: str,
        profile_image: str | Path | None = None,
        remove_image: bool = False,
    ) -> UserIdentity:
        fields = {"displayName": display_name}
        if remove_image:
            fields["removeImage"] = "true"

        response = await self._request(
            "PUT",
            f"{self._users_url}/profile",
            fallback="Failed to update profile",
            **await self._multipart(fields, profile_image),
        )
        return self._parse_user(response, "Failed to update profile")

    async def update_profile_partial(self, changed_fields: Mapping[str, Any]) -> UserIdentity:
        """Send only the changed fields; ``profileImage`` may hold an image path."""
        fields = {
            key: _form_value(value)
            for key, value in changed_fields.items()
            if key != _IMAGE_FIELD and value is not None
        }
        image = changed_fields.get(_IMAGE_FIELD)
        if not fields and image is None:
            raise EmptyProfileUpdateError()

        response = await self._request(
            "PUT",
            f"{self._users_url}/profile",
            fallback="Failed to update profile",
            **await self._multipart(fields, image),
        )
        return self._parse_user(response, "Failed to update profile")

    async def remove_profile_image(self) -> None:
        await self._request(
            "DELETE",
            f"{self._users_url}/profile/image",
            fallback="Failed to remove profile image",
        )

    async def delete_account(
        self, password: str | None = None, google_id_token: str | None = None
    ) -> None:
        body: dict[str, str] = {}
        if password is not None:
            body["password"] = password
        if google_id_token is not None:
            body["googleIdToken"] = google_id_token

        await self._request(
            "DELETE",
            f"{self._users_url}/deleteAccount",
            fallback="Failed to delete account",
            json=body,
        )

    def _auth_headers(self) -> dict[str, str]:
        if not self._access_token:
            raise MissingAccessTokenError()
        return {"Authorization": f"Bearer {self._access_token}"}

    async def _multipart(
        self, fields: dict[str, str], image: str | Path | None
    ) -> dict[str, Any]:
        if image is None:
            # Text-only parts still go out as multipart/form-data.
            return {"files": {name: (None, value) for name, value in fields.items()}}

        path = Path(image)
        extension = path.suffix.lstrip(".").lower() or "jpg"
        content = await asyncio.to_thread(path.read_bytes)

        return {
            "data": fields,
            "files": {
                _IMAGE_FIELD: (
                    f"profile_image.{extension}",
                    content,
                    image_content_type(extension),
                )
            },
        }

    async def _request(
        self,
        method: str,
        url: str,
        *,
        fallback: str,
        json: Any = None,
        data: Mapping[str, str] | None = None,
        files: Mapping[str, Any] | None = None,
    ) -> httpx.Response:
        headers = self._auth_headers()
        if files is None:
            headers["Content-Type"] = "application/json"

        try:
            response = await self._client.request(
                method, url, headers=headers, json=json, data=data, files=files
            )
        except httpx.HTTPError as e:
            logger.warning(f"ProfileClient: {method} {url} transport error detail={e}")
            raise BackendApiError(f"{fallback}: {e}", context={"url": url}) from e

        logger.debug(f"ProfileClient: {method} {url} -> {response.status_code}")

        if not response.is_success:
            message = self._error_message(response, fallback)
            logger.warning(
                f"ProfileClient: {method} {url} failed code={response.status_code} message={message}"
            )
            raise BackendApiError(message, status_code=response.status_code)

        return response

    @staticmethod
    def _error_message(response: httpx.Response, fallback: str) -> str:
        try:
            payload = response.json()
        except ValueError:
            return fallback

        if isinstance(payload, dict):
            message = payload.get("message")
            if isinstance(message, str) and message:
                return message
        return fallback

    @staticmethod
    def _parse_user(response: httpx.Response, fallback: str) -> UserIdentity:
        try:
            user = response.json()["data"]["user"]
            return UserIdentity.from_backend_user(user)
        except (ValueError, KeyError, TypeError, InvalidIdentityPayloadError) as e:
            raise BackendApiError(
                f"{fallback}: malformed response",
                status_code=response.status_code,
                error_code="malformed_response",
            ) from e
