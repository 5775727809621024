from __future__ import annotations

from authflow.application.dto.auth import ProviderSummary
from authflow.application.dto.options import AuthOptions
from authflow.domain.entities.user import ProviderType


class ListProvidersUseCase:
    def execute(self, options: AuthOptions) -> list[ProviderSummary]:
        summaries: list[ProviderSummary] = []
        for provider in options.providers.values():
            # Credentials providers without declared fields have nothing to render.
            if provider.type is ProviderType.CREDENTIALS and not provider.credentials:
                continue
            summaries.append(
                ProviderSummary(
                    id=provider.id,
                    name=provider.name,
                    type=provider.type.value,
                    sign_in_url=f"{options.auth_url}/signin/{provider.id}",
                    callback_url=f"{options.auth_url}/callback/{provider.id}",
                )
            )
        return summaries
