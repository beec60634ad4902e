# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication and sessions.

This package provides:
- Password hashing/verification (argon2)
- Local and Google login strategies with a shared AuthResult outcome
- Identity resolution between users and the id kept in the session
- Server-side sessions keyed by a signed cookie (itsdangerous)
"""
