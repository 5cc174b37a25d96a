"""Centralized constants for database schema, passcodes and playback timing."""

from __future__ import annotations

import string


class SQLPragmas:
    """SQLite PRAGMA statements."""

    JOURNAL_MODE_WAL = "PRAGMA journal_mode=WAL"
    FOREIGN_KEYS_ON = "PRAGMA foreign_keys=ON"
    BUSY_TIMEOUT = "PRAGMA busy_timeout={timeout}"


class IdentifierConstants:
    """Alphabets and lengths for generated identifiers."""

    # Readable alphanumerics: no 0/O, 1/l/I look-alikes.
    PASSCODE_ALPHABET = "".join(
        c for c in string.ascii_letters + string.digits if c not in "0Oo1lI"
    )
    MEMBER_ID_ALPHABET = string.ascii_letters + string.digits
    MEMBER_ID_LENGTH = 32


class PlaybackConstants:
    """Defaults for the playback scheduler."""

    GUARD_BAND_MS = 1000
    NEAR_END_THRESHOLD_MS = 5000
    RETRY_BACKOFF_MS = 5000
    MAX_CHECK_FAILURES = 5


class ProviderConstants:
    """Streaming provider endpoints."""

    API_BASE_URL = "https://api.spotify.com/v1"
    ACCOUNTS_URL = "https://accounts.spotify.com/api/token"
    TRACK_URI_PREFIX = "spotify:track:"
