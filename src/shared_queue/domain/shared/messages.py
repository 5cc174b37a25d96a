"""Centralized message constants for error messages, validation, and log output."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Track Validation Errors
    EMPTY_TRACK_ID = "Track ID cannot be empty"
    INVALID_TRACK_URI = "Track URI '{uri}' does not contain a track id"

    # Session Validation Errors
    DUPLICATE_MEMBER = "Member '{member_id}' appears more than once"
    OWNER_NOT_MEMBER = "Session owner '{owner}' is not a member"
    NOT_A_MEMBER = "'{member_id}' is not a member of this session"
    NOTHING_PLAYING = "Nothing is playing right now"

    # Time/Date Validation Errors
    TIMEZONE_REQUIRED_UTC_DATETIME = "UtcDateTime requires a timezone-aware datetime"

    # Configuration Errors
    INVALID_DATABASE_URL = "Database URL must start with sqlite://"
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"

    # Provider Errors
    AUTHENTICATION_FAILED = "Failed to authenticate with the streaming provider"
    NO_ACTIVE_PLAYER = "No active player on the streaming account"
    PROVIDER_UNREACHABLE = "Unable to reach the streaming provider: {error}"
    PROVIDER_STATUS = "Streaming provider responded with HTTP {status}"
    NO_REFRESH_TOKEN = "No refresh token stored for this session"


class LogTemplates:
    """Log message templates.

    Use these with logger.info(), logger.error(), etc. and pass values as
    parameters so records stay cheap when the level is disabled.
    """

    # Database Lifecycle
    DATABASE_INITIALIZED = "Database initialized at %s"
    DATABASE_CLOSED = "Database manager closed"

    # Session Store
    SESSION_SAVED = "Saved session %s (playing=%s)"
    SESSION_CREATED = "Created session %s for account %s"
    SESSION_LOCK_WAIT = "Waiting for lock on session %s"

    # Session Lifecycle
    SESSION_CREATING = "Creating new session..."
    SESSION_EXISTING_FOUND = "Found existing session %s for account %s, reactivating"
    SESSION_REACTIVATED = "Reactivated session %s"
    SESSION_OWNER_MIGRATED = "Owner member id of session %s changed from %s to %s"
    SESSION_LOGGED_OUT = "Owner logged out of session %s, session is now inactive"
    PASSCODE_COLLISION = "Passcode collision on attempt %d"
    PASSCODE_GENERATED = "Generated passcode %s"

    # Membership
    MEMBER_JOINED = "Member %s joined session %s"
    MEMBER_ALREADY_JOINED = "Member %s already part of session %s"
    JOIN_REJECTED_INACTIVE = "Session %s not active, join rejected (owner=%s)"

    # Queue
    TRACK_QUEUED = "Queued %s in session %s by %s (queue length %d)"
    TRACK_METADATA_FETCH = "Fetching track metadata for %s in session %s"
    QUEUE_EXHAUSTED = "No more tracks queued in session %s, stopping playback"
    NEXT_TRACK = "Next track in session %s is %s"
    TRACK_STARTED = "Track %s started in session %s"
    TRACK_START_FAILED = "Failed to start track %s in session %s: %s"
    STALE_ADVANCE = "Ignoring stale advance for session %s: expected %s, current is %s"
    TRACK_RESUMING = "Retrying start of stalled track %s in session %s"
    VOTE_TOGGLED = "Member %s %s vote on %s in session %s (%d votes)"
    DEVICE_SELECTED = "Selected device %s for session %s"
    SETTINGS_UPDATED = "Updated settings of session %s"

    # Remote sync
    SYNC_POLL_FAILED = "Unable to get playback state for session %s, returning local state: %r"
    SYNC_ADOPTED_REMOTE = "Session %s adopted remote track %s (was %s)"
    SYNC_REARM = "Session %s is playing remotely without a timer, re-arming"

    # Credentials
    CREDENTIALS_REFRESHING = "Access token expired for session %s, refreshing"
    CREDENTIALS_REFRESHED = "Access token refreshed for session %s"
    CREDENTIALS_REFRESH_FAILED = "Failed to refresh access token for session %s: %r"

    # Scheduler
    TIMER_ARMED = "Armed %d ms check for track %s in session %s"
    TIMER_CANCELLED = "Cancelled timer for session %s"
    CHECK_STARTED = "Checking playback state of %s in session %s"
    CHECK_STOPPED_REMOTELY = "Track %s in session %s is no longer playing, advancing"
    CHECK_NEAR_END = "Less than %d ms left on %s in session %s, advancing"
    CHECK_STILL_PLAYING = "Track %s in session %s still playing for %d ms, checking again"
    CHECK_TRANSIENT_FAILURE = "Playback check failed for session %s (attempt %d/%d): %r"
    CHECK_GAVE_UP = "Giving up on playback checks for session %s after %d failures"
    CHECK_DEFINITIVE_FAILURE = "Playback target gone for session %s, stopping: %s"
    CHECK_SESSION_GONE = "Session %s no longer active, dropping timer"
    RESTART_SCHEDULED = "Track start failed in session %s, retrying in %d ms"
    RECOVERY_STARTED = "Recovering timers for %d playing sessions"
    RECOVERY_SKIPPED = "Not recovering session %s: no credentials or current track"
    SCHEDULER_SHUTDOWN = "Scheduler shut down, cancelled %d timers"

    # Application Lifecycle
    APP_STARTING = "Starting shared queue service ({environment})..."
    APP_READY = "Shared queue service ready"
    APP_STOPPED = "Shared queue service stopped"
    APP_FATAL_ERROR = "Fatal error: %s"
