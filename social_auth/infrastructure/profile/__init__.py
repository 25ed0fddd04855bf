# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .client import ProfileClient, image_content_type
from .exceptions import BackendApiError, EmptyProfileUpdateError, MissingAccessTokenError

__all__ = [
    "BackendApiError",
    "EmptyProfileUpdateError",
    "MissingAccessTokenError",
    "ProfileClient",
    "image_content_type",
]
