# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from enum import StrEnum


class ErrorCategory(StrEnum):
    NETWORK = "network"
    PERMISSION = "permission"
    TOKEN = "token"
    CANCELLED = "cancelled"
    ACCESS_DENIED = "access_denied"
    UNKNOWN = "unknown"


# Checked in order; the first keyword found in the lowercased message wins.
ERROR_KEYWORDS: list[tuple[str, ErrorCategory]] = [
    ("network", ErrorCategory.NETWORK),
    ("permission", ErrorCategory.PERMISSION),
    ("token", ErrorCategory.TOKEN),
    ("cancelled", ErrorCategory.CANCELLED),
    ("denied", ErrorCategory.ACCESS_DENIED),
]


USER_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.NETWORK: "Network error. Please check your connection and try again.",
    ErrorCategory.PERMISSION: "Permission denied. Please allow access to continue.",
    ErrorCategory.TOKEN: "Authentication failed. Please try logging in again.",
    ErrorCategory.CANCELLED: "Login was cancelled.",
    ErrorCategory.ACCESS_DENIED: "Access was denied. Please try again.",
    ErrorCategory.UNKNOWN: "Login failed. Please try again later.",
}


def categorize_error(message: str) -> ErrorCategory:
    lowered = message.lower()
    for keyword, category in ERROR_KEYWORDS:
        if keyword in lowered:
            return category
    return ErrorCategory.UNKNOWN


def user_friendly_message(message: str) -> str:
    return USER_MESSAGES[categorize_error(message)]
