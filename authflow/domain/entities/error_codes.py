from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    CONFIGURATION = "Configuration"
    ACCESS_DENIED = "AccessDenied"
    VERIFICATION = "Verification"
    OAUTH_CALLBACK = "OAuthCallback"
    OAUTH_ACCOUNT_NOT_LINKED = "OAuthAccountNotLinked"
    OAUTH_CREATE_ACCOUNT = "OAuthCreateAccount"
    EMAIL_CREATE_ACCOUNT = "EmailCreateAccount"
    CREDENTIALS_SIGNIN = "CredentialsSignin"
    CALLBACK = "Callback"


_RETRY_WITH_OTHER_ACCOUNT = "Try signing with a different account."

_MESSAGES: dict[str, str] = {
    "Signin": _RETRY_WITH_OTHER_ACCOUNT,
    "OAuthSignin": _RETRY_WITH_OTHER_ACCOUNT,
    ErrorCode.OAUTH_CALLBACK.value: _RETRY_WITH_OTHER_ACCOUNT,
    ErrorCode.OAUTH_CREATE_ACCOUNT.value: _RETRY_WITH_OTHER_ACCOUNT,
    ErrorCode.EMAIL_CREATE_ACCOUNT.value: _RETRY_WITH_OTHER_ACCOUNT,
    ErrorCode.CALLBACK.value: _RETRY_WITH_OTHER_ACCOUNT,
    ErrorCode.OAUTH_ACCOUNT_NOT_LINKED.value: (
        "To confirm your identity, sign in with the same account you used originally."
    ),
    "EmailSignin": "Check your email address.",
    ErrorCode.CREDENTIALS_SIGNIN.value: "Sign in failed. Check the details you provided are correct.",
    ErrorCode.ACCESS_DENIED.value: "You do not have permission to sign in.",
    ErrorCode.VERIFICATION.value: "The sign in link is no longer valid. It may have been used already or it may have expired.",
    ErrorCode.CONFIGURATION.value: "There is a problem with the server configuration.",
}

DEFAULT_MESSAGE = "Unable to sign in."


def describe_error(code: str | None) -> str:
    if not code:
        return DEFAULT_MESSAGE
    return _MESSAGES.get(code, DEFAULT_MESSAGE)
