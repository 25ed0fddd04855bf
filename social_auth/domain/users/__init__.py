# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .entities import UserIdentity
from .exceptions import InvalidIdentityPayloadError

__all__ = ["InvalidIdentityPayloadError", "UserIdentity"]
