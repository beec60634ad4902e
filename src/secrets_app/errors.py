# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Exception hierarchy.

All application exceptions inherit from SecretsAppError. A failed login is
not an exception: strategies report it through AuthResult.
"""


class SecretsAppError(Exception):
    """Base exception for all application errors."""


class ConfigError(SecretsAppError):
    """Missing or invalid configuration value."""


class DataAccessError(SecretsAppError):
    """Store unreachable or query failure."""


class ConflictError(DataAccessError):
    """Insert rejected by a uniqueness constraint (duplicate email or federated id)."""


class SessionError(SecretsAppError):
    """Session state could not be persisted or invalidated."""
