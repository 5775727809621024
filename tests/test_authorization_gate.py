from __future__ import annotations

import pytest

from authflow.application.dto.auth import DecisionKind, SignInDecision
from authflow.application.dto.options import CallbacksOptions
from authflow.application.use_cases.authorization_gate import AuthorizationGate
from authflow.domain.entities.user import Account, Profile, ProviderType, User


PROFILE = Profile(email="alice@example.com", name="Alice")
ACCOUNT = Account(provider="google", type=ProviderType.OAUTH, provider_account_id="g-1")
USER = User(id="u-1", name="Alice", email="alice@example.com", image=None)


async def _decide(policy) -> SignInDecision:
    return await AuthorizationGate(CallbacksOptions(sign_in=policy)).decide_sign_in(PROFILE, ACCOUNT, {})


@pytest.mark.asyncio
async def test_no_policy_allows():
    decision = await AuthorizationGate(CallbacksOptions()).decide_sign_in(PROFILE, ACCOUNT, {})

    assert decision.allowed


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "answer,kind",
    [
        (True, DecisionKind.ALLOW),
        (None, DecisionKind.ALLOW),
        (False, DecisionKind.DENY),
        ("/elsewhere", DecisionKind.REDIRECT),
        (SignInDecision.deny(), DecisionKind.DENY),
    ],
)
async def test_policy_answers_map_to_decisions(answer, kind):
    decision = await _decide(lambda *_args: answer)

    assert decision.kind is kind


@pytest.mark.asyncio
async def test_async_policy_redirect_keeps_url():
    async def policy(*_args):
        return "https://app.example.com/verify"

    decision = await _decide(policy)

    assert decision == SignInDecision.redirect("https://app.example.com/verify")


@pytest.mark.asyncio
async def test_raising_policy_is_fault_with_message():
    def policy(*_args):
        raise ValueError("Domain not allowed")

    decision = await _decide(policy)

    assert decision.kind is DecisionKind.FAULT
    assert decision.message == "Domain not allowed"
    assert not decision.allowed


@pytest.mark.asyncio
async def test_shape_claims_without_policy_returns_defaults():
    claims = {"sub": "u-1"}

    shaped = await AuthorizationGate(CallbacksOptions()).shape_claims(claims, USER, ACCOUNT, {}, False)

    assert shaped == {"sub": "u-1"}


@pytest.mark.asyncio
async def test_async_claims_policy_receives_is_new_user():
    async def jwt(claims, user, account, payload, is_new_user):
        return {**claims, "uid": user.id, "new": is_new_user}

    shaped = await AuthorizationGate(CallbacksOptions(jwt=jwt)).shape_claims({"sub": "u-1"}, USER, ACCOUNT, {}, True)

    assert shaped == {"sub": "u-1", "uid": "u-1", "new": True}
