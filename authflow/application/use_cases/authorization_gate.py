from __future__ import annotations

import logging
from typing import Any

from authflow.application.dto.auth import SignInDecision
from authflow.application.dto.options import CallbacksOptions
from authflow.domain.entities.user import Account, Profile, User

from .auth_common import maybe_await


logger = logging.getLogger(__name__)


class AuthorizationGate:
    """Run the deployment's sign-in and claims policies.

    The sign-in policy may answer with ``False`` (deny), a ``SignInDecision``, a URL string
    (redirect there instead of continuing) or anything else (allow). A policy that raises is
    reported as a fault carrying the exception message.
    """

    def __init__(self, callbacks: CallbacksOptions):
        self._callbacks = callbacks

    async def decide_sign_in(
        self,
        user_or_profile: User | Profile,
        account: Account,
        provider_payload: Any,
    ) -> SignInDecision:
        policy = self._callbacks.sign_in
        if policy is None:
            return SignInDecision.allow()
        try:
            answer = await maybe_await(policy(user_or_profile, account, provider_payload))
        except Exception as exc:
            logger.warning("authorization_gate: sign-in policy raised provider=%s error=%s", account.provider, exc)
            return SignInDecision.fault(str(exc) or type(exc).__name__)

        if isinstance(answer, SignInDecision):
            return answer
        if answer is False:
            return SignInDecision.deny()
        if isinstance(answer, str):
            return SignInDecision.redirect(answer)
        return SignInDecision.allow()

    async def shape_claims(
        self,
        claims: dict[str, Any],
        user: User,
        account: Account,
        provider_payload: Any,
        is_new_user: bool,
    ) -> dict[str, Any]:
        policy = self._callbacks.jwt
        if policy is None:
            return claims
        shaped = await maybe_await(policy(dict(claims), user, account, provider_payload, is_new_user))
        if shaped is None:
            return claims
        return dict(shaped)
