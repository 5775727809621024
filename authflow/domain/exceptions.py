from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors."""


class ResolutionError(DomainError):
    """Identity proof could not be turned into a profile/account pair."""


class ProviderError(ResolutionError):
    """OAuth exchange failed at the transport or protocol level."""


class NoProfile(ResolutionError):
    """Provider returned no profile (user cancelled or provider error, indistinguishable)."""


class InvalidOrExpiredToken(ResolutionError):
    """Verification token missing, expired or already consumed."""


class Misconfigured(ResolutionError):
    """Provider cannot run with the current configuration."""


class AuthorizationRejected(ResolutionError):
    """Credentials authorize step returned no user."""


class ResolutionFault(ResolutionError):
    """Credentials authorize step raised."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class MaterializeError(DomainError):
    """User/account records could not be resolved or created."""


class AccountNotLinked(MaterializeError):
    """Email or account already belongs to a different user."""


class CreateUserFailed(MaterializeError):
    """Adapter refused to create the user."""


class SessionError(DomainError):
    """Session artifact could not be produced."""


class SigningFailed(SessionError):
    """Token codec failed to sign or encrypt the claim set."""


class GoogleTokenValidationError(DomainError):
    """Google id_token could not be verified."""
