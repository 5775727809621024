from __future__ import annotations

import logging
from typing import Awaitable, Callable
from urllib.parse import quote

from authflow.application.dto.auth import (
    CallbackInput,
    CallbackOutput,
    DecisionKind,
    MaterializeResult,
    Redirect,
    Rejection,
    ResolvedIdentity,
    SignInDecision,
)
from authflow.application.dto.options import AuthOptions
from authflow.application.ports.auth_port import AuthPort
from authflow.application.ports.oauth_port import OAuthPort
from authflow.application.ports.token_port import TokenPort
from authflow.domain.entities.error_codes import ErrorCode
from authflow.domain.entities.event import EventKind, LifecycleEvent
from authflow.domain.entities.provider import Provider
from authflow.domain.entities.user import ProviderType
from authflow.domain.exceptions import (
    AccountNotLinked,
    AuthorizationRejected,
    CreateUserFailed,
    InvalidOrExpiredToken,
    Misconfigured,
    NoProfile,
    ProviderError,
    ResolutionFault,
)

from .auth_common import as_user, default_claims, describe_account
from .authorization_gate import AuthorizationGate
from .dispatch_events import EventDispatcher
from .establish_session import SessionEstablisher, session_cookie
from .materialize_user import AccountLinker
from .resolve_identity import IdentityResolver


logger = logging.getLogger(__name__)

CallbackHandler = Callable[[Provider, CallbackInput, AuthOptions], Awaitable[CallbackOutput]]


class HandleCallbackUseCase:
    """Complete a sign-in callback and decide where the browser goes next.

    One handler per provider type. Every handler ends in exactly one outcome: a redirect to
    the landing page, the new-user page, the sign-in page or the error page, or a direct
    rejection when the provider/method combination is not supported.
    """

    def __init__(
        self,
        *,
        token_port: TokenPort,
        auth_port: AuthPort | None = None,
        oauth_port: OAuthPort | None = None,
        dispatcher: EventDispatcher | None = None,
    ):
        self._auth_port = auth_port
        self._dispatcher = dispatcher or EventDispatcher()
        self._resolver = IdentityResolver(token_port=token_port, auth_port=auth_port, oauth_port=oauth_port)
        self._linker = AccountLinker(token_port=token_port, dispatcher=self._dispatcher, auth_port=auth_port)
        self._establisher = SessionEstablisher(token_port=token_port, account_linker=self._linker)
        self._handlers: dict[ProviderType, CallbackHandler] = {
            ProviderType.OAUTH: self._handle_oauth,
            ProviderType.EMAIL: self._handle_email,
            ProviderType.CREDENTIALS: self._handle_credentials,
        }

    @property
    def dispatcher(self) -> EventDispatcher:
        return self._dispatcher

    async def execute(self, command: CallbackInput, options: AuthOptions) -> CallbackOutput:
        provider = options.providers.get(command.provider_id)
        if provider is None:
            return CallbackOutput(outcome=Rejection(status_code=404, detail=f"Error: Provider {command.provider_id} not found"))

        handler = self._handlers.get(provider.type)
        if handler is None or (provider.type is ProviderType.CREDENTIALS and command.method.upper() != "POST"):
            type_name = getattr(provider.type, "value", provider.type)
            return CallbackOutput(
                outcome=Rejection(status_code=500, detail=f"Error: Callback for provider type {type_name} not supported")
            )
        return await handler(provider, command, options)

    async def _handle_oauth(self, provider: Provider, command: CallbackInput, options: AuthOptions) -> CallbackOutput:
        if not options.session.use_jwt and self._auth_port is None:
            logger.error("callback: database sessions require an adapter provider=%s", provider.id)
            return _error(options, ErrorCode.CONFIGURATION)

        try:
            identity = await self._resolver.resolve(provider, command)
        except NoProfile:
            # Cancelled sign in and provider errors look the same here.
            return CallbackOutput(outcome=Redirect(url=options.sign_in_url()))
        except ProviderError as exc:
            logger.error("callback: oauth provider error provider=%s error=%s", provider.id, exc)
            return _error(options, ErrorCode.OAUTH_CALLBACK)
        except Misconfigured as exc:
            logger.error("callback: %s", exc)
            return _error(options, ErrorCode.CONFIGURATION)
        except Exception:
            logger.exception("callback: oauth resolution failed provider=%s", provider.id)
            return _error(options, ErrorCode.CALLBACK)

        try:
            user_or_profile = identity.profile
            if self._auth_port is not None:
                existing = await self._auth_port.get_user_by_provider_account_id(
                    provider=identity.account.provider,
                    provider_account_id=identity.account.provider_account_id or "",
                )
                if existing is not None:
                    user_or_profile = existing

            decision = await AuthorizationGate(options.callbacks).decide_sign_in(
                user_or_profile,
                identity.account,
                identity.provider_payload,
            )
            if not decision.allowed:
                return _refused(options, decision)

            result = await self._linker.materialize(command.session_token, identity.profile, identity.account, options)
            return await self._complete(command, options, identity, result)
        except AccountNotLinked:
            return _error(options, ErrorCode.OAUTH_ACCOUNT_NOT_LINKED)
        except CreateUserFailed:
            return _error(options, ErrorCode.OAUTH_CREATE_ACCOUNT)
        except Exception:
            logger.exception("callback: oauth handler failed provider=%s", provider.id)
            return _error(options, ErrorCode.CALLBACK)

    async def _handle_email(self, provider: Provider, command: CallbackInput, options: AuthOptions) -> CallbackOutput:
        try:
            identity = await self._resolver.resolve(provider, command)
        except Misconfigured as exc:
            logger.error("callback: %s", exc)
            return _error(options, ErrorCode.CONFIGURATION)
        except InvalidOrExpiredToken as exc:
            logger.info("callback: verification failed provider=%s reason=%s", provider.id, exc)
            return _error(options, ErrorCode.VERIFICATION)
        except Exception:
            logger.exception("callback: email resolution failed provider=%s", provider.id)
            return _error(options, ErrorCode.CALLBACK)

        try:
            decision = await AuthorizationGate(options.callbacks).decide_sign_in(
                identity.profile,
                identity.account,
                identity.provider_payload,
            )
            if not decision.allowed:
                return _refused(options, decision)

            result = await self._linker.materialize(command.session_token, identity.profile, identity.account, options)
            return await self._complete(command, options, identity, result)
        except CreateUserFailed:
            return _error(options, ErrorCode.EMAIL_CREATE_ACCOUNT)
        except Exception:
            logger.exception("callback: email handler failed provider=%s", provider.id)
            return _error(options, ErrorCode.CALLBACK)

    async def _handle_credentials(
        self,
        provider: Provider,
        command: CallbackInput,
        options: AuthOptions,
    ) -> CallbackOutput:
        if not options.session.use_jwt:
            logger.error("callback: credentials sign in is only supported with jwt sessions provider=%s", provider.id)
            return _error(options, ErrorCode.CONFIGURATION)

        try:
            identity = await self._resolver.resolve(provider, command)
        except Misconfigured as exc:
            logger.error("callback: %s", exc)
            return _error(options, ErrorCode.CONFIGURATION)
        except AuthorizationRejected:
            return _error(options, ErrorCode.CREDENTIALS_SIGNIN, provider=provider.id)
        except ResolutionFault as exc:
            return CallbackOutput(outcome=Redirect(url=options.error_url(quote(exc.detail, safe=""))))

        try:
            decision = await AuthorizationGate(options.callbacks).decide_sign_in(
                identity.profile,
                identity.account,
                identity.provider_payload,
            )
            if not decision.allowed:
                return _refused(options, decision)

            # Credentials users are never materialized; the authorize result is the user.
            result = MaterializeResult(user=as_user(identity.profile), session=None, is_new_user=False)
            return await self._complete(command, options, identity, result, report_new_user=False)
        except Exception:
            logger.exception("callback: credentials handler failed provider=%s", provider.id)
            return _error(options, ErrorCode.CALLBACK)

    async def _complete(
        self,
        command: CallbackInput,
        options: AuthOptions,
        identity: ResolvedIdentity,
        result: MaterializeResult,
        *,
        report_new_user: bool = True,
    ) -> CallbackOutput:
        user = result.user
        claims = None
        if options.session.use_jwt:
            claims = await AuthorizationGate(options.callbacks).shape_claims(
                default_claims(user),
                user,
                identity.account,
                identity.claims_payload,
                result.is_new_user,
            )

        artifact = await self._establisher.establish(options, user, result.session, claims)
        cookies = (session_cookie(options, artifact),)

        self._dispatcher.dispatch(
            options.events,
            LifecycleEvent(
                kind=EventKind.SIGN_IN,
                user=user,
                account=identity.account,
                is_new_user=result.is_new_user if report_new_user else None,
            ),
        )
        logger.info(
            "callback: signed in user=%s account=%s new_user=%s",
            user.id,
            describe_account(identity.account),
            result.is_new_user,
        )

        if result.is_new_user and options.pages.new_user:
            return CallbackOutput(outcome=Redirect(url=options.pages.new_user), cookies=cookies)
        return CallbackOutput(outcome=Redirect(url=command.callback_url or options.base_url), cookies=cookies)


def _error(options: AuthOptions, code: ErrorCode, **params: str) -> CallbackOutput:
    return CallbackOutput(outcome=Redirect(url=options.error_url(code.value, **params)))


def _refused(options: AuthOptions, decision: SignInDecision) -> CallbackOutput:
    if decision.kind is DecisionKind.REDIRECT and decision.url:
        return CallbackOutput(outcome=Redirect(url=decision.url))
    if decision.kind is DecisionKind.FAULT:
        return CallbackOutput(outcome=Redirect(url=options.error_url(quote(decision.message or "", safe=""))))
    return _error(options, ErrorCode.ACCESS_DENIED)
