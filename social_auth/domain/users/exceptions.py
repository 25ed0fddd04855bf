# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from social_auth.shared.errors.base import DomainError


class InvalidIdentityPayloadError(DomainError):
    code = "invalid_identity_payload"
