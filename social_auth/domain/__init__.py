# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .users import InvalidIdentityPayloadError, UserIdentity

__all__ = ["InvalidIdentityPayloadError", "UserIdentity"]
