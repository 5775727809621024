from __future__ import annotations

from typing import Mapping, Protocol

from authflow.application.dto.auth import OAuthProfileResult
from authflow.domain.entities.provider import Provider


class OAuthPort(Protocol):
    async def get_profile(
        self,
        *,
        provider: Provider,
        query: Mapping[str, str],
        csrf_token: str | None,
    ) -> OAuthProfileResult:
        """Exchange the callback query for a profile.

        Raises on transport/protocol failure; returns a result without profile when
        the provider sent none.
        """
        ...
