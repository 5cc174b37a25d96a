"""Credential Guard - keeps a session's provider token usable before playback calls."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from ...domain.shared.datetime_utils import current_unix_seconds
from ...domain.shared.exceptions import (
    ProviderRejectedError,
    RefreshFailedError,
    UnauthorizedError,
)
from ...domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from ...domain.session.entities import Session
    from ..interfaces.playback_client import PlaybackClient, TokenGrant

logger = logging.getLogger(__name__)


class CredentialGuard:
    """Refreshes expired provider credentials.

    ``ensure_fresh`` applies a refreshed grant to the session it was given and
    returns it; the caller must save the session before issuing any provider
    call with the new token. A ``None`` return means nothing changed and no
    remote call was made.
    """

    def __init__(
        self,
        client: PlaybackClient,
        clock: Callable[[], int] = current_unix_seconds,
    ) -> None:
        self._client = client
        self._clock = clock

    def now(self) -> int:
        return self._clock()

    def is_expired(self, session: Session) -> bool:
        return session.credentials.is_expired(self._clock())

    async def ensure_fresh(self, session: Session) -> TokenGrant | None:
        """Refresh the session's token if it has expired.

        Raises:
            RefreshFailedError: The provider refused the refresh token.
            RemoteUnavailableError: The provider could not be reached; retryable.
        """
        now = self._clock()
        if not session.credentials.is_expired(now):
            return None

        logger.info(LogTemplates.CREDENTIALS_REFRESHING, session.passcode)
        refresh_token = session.credentials.refresh_token
        if not refresh_token:
            logger.error(LogTemplates.CREDENTIALS_REFRESH_FAILED, session.passcode, ErrorMessages.NO_REFRESH_TOKEN)
            raise RefreshFailedError(ErrorMessages.NO_REFRESH_TOKEN)

        try:
            grant = await self._client.refresh_credentials(refresh_token)
        except (UnauthorizedError, ProviderRejectedError) as exc:
            logger.error(LogTemplates.CREDENTIALS_REFRESH_FAILED, session.passcode, exc)
            raise RefreshFailedError() from exc

        session.apply_refresh(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token or refresh_token,
            expires_in_seconds=grant.expires_in_seconds,
            acquired_at=now,
        )
        logger.info(LogTemplates.CREDENTIALS_REFRESHED, session.passcode)
        return grant
