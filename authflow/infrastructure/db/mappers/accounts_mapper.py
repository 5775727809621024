from __future__ import annotations

from datetime import datetime, timezone

from authflow.domain.entities.user import SessionRecord, User, VerificationRequest
from authflow.infrastructure.db.models.accounts import SessionModel, UserModel, VerificationTokenModel


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo; stored values are always UTC.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def map_model_to_user(model: UserModel) -> User:
    return User(
        id=str(model.id),
        name=model.name,
        email=model.email,
        image=model.image,
        email_verified=_aware(model.email_verified),
    )


def map_model_to_session(model: SessionModel) -> SessionRecord:
    return SessionRecord(
        session_token=model.session_token,
        user_id=str(model.user_id),
        expires=_aware(model.expires),
    )


def map_model_to_verification_request(model: VerificationTokenModel) -> VerificationRequest:
    return VerificationRequest(
        identifier=model.identifier,
        token=model.token,
        expires=_aware(model.expires),
    )
