from __future__ import annotations

import logging
from urllib.parse import SplitResult, urljoin, urlsplit

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from authflow.api.deps import get_auth_options, get_handle_callback_use_case, get_list_providers_use_case
from authflow.api.schemas.auth import ErrorResponse, ProviderResponse
from authflow.application.dto.auth import CallbackInput, CallbackOutput, Redirect
from authflow.application.dto.options import AuthOptions
from authflow.application.use_cases.handle_callback import HandleCallbackUseCase
from authflow.application.use_cases.list_providers import ListProvidersUseCase
from authflow.domain.entities.error_codes import describe_error


logger = logging.getLogger(__name__)

router = APIRouter()

CSRF_COOKIE_BASENAME = "authflow.csrf-token"
CALLBACK_URL_COOKIE_BASENAME = "authflow.callback-url"


def _csrf_cookie_name(options: AuthOptions) -> str:
    return f"__Host-{CSRF_COOKIE_BASENAME}" if options.cookie.secure else CSRF_COOKIE_BASENAME


def _callback_url_cookie_name(options: AuthOptions) -> str:
    return f"__Secure-{CALLBACK_URL_COOKIE_BASENAME}" if options.cookie.secure else CALLBACK_URL_COOKIE_BASENAME


def _csrf_token(raw: str | None) -> str | None:
    # Cookie value is "<token>|<hash>".
    if not raw:
        return None
    return raw.split("|", 1)[0] or None


def _same_origin_callback_url(raw: str | None, options: AuthOptions) -> str | None:
    """Return the callback URL when it is a relative path or shares the base URL's origin."""
    if not raw:
        return None
    target = urlsplit(raw)
    if not target.scheme and not target.netloc:
        if raw.startswith("/") and not raw.startswith("//") and "\\" not in raw:
            return urljoin(options.base_url, raw)
        return None
    base = urlsplit(options.base_url)
    try:
        same_origin = (
            target.scheme.lower() == base.scheme.lower()
            and (target.hostname or "") == (base.hostname or "")
            and _port(target) == _port(base)
        )
    except ValueError:
        return None
    if not same_origin:
        logger.warning("auth_router: ignoring foreign callback url host=%s", target.hostname)
        return None
    return raw


def _port(parts: SplitResult) -> int | None:
    if parts.port is not None:
        return parts.port
    return {"http": 80, "https": 443}.get(parts.scheme.lower())


def _to_response(output: CallbackOutput) -> Response:
    outcome = output.outcome
    if not isinstance(outcome, Redirect):
        return PlainTextResponse(outcome.detail, status_code=outcome.status_code)

    response = RedirectResponse(url=outcome.url, status_code=outcome.status_code)
    for cookie in output.cookies:
        response.set_cookie(
            key=cookie.name,
            value=cookie.value,
            expires=cookie.expires,
            path=cookie.path,
            secure=cookie.secure,
            httponly=cookie.http_only,
            samesite=cookie.same_site,
        )
    return response


@router.api_route("/callback/{provider_id}", methods=["GET", "POST"])
async def callback(
    provider_id: str,
    request: Request,
    options: AuthOptions = Depends(get_auth_options),
    use_case: HandleCallbackUseCase = Depends(get_handle_callback_use_case),
):
    body: dict[str, str] = {}
    if request.method == "POST":
        form = await request.form()
        body = {key: value for key, value in form.items() if isinstance(value, str)}

    command = CallbackInput(
        provider_id=provider_id,
        method=request.method,
        query=dict(request.query_params),
        body=body,
        session_token=request.cookies.get(options.cookie.name),
        csrf_token=_csrf_token(request.cookies.get(_csrf_cookie_name(options))),
        callback_url=_same_origin_callback_url(request.cookies.get(_callback_url_cookie_name(options)), options),
    )
    output = await use_case.execute(command, options)
    logger.debug("auth_router: callback provider=%s outcome=%s", provider_id, type(output.outcome).__name__)
    return _to_response(output)


@router.get("/providers", response_model=list[ProviderResponse])
def list_providers(
    options: AuthOptions = Depends(get_auth_options),
    use_case: ListProvidersUseCase = Depends(get_list_providers_use_case),
):
    return [
        ProviderResponse(
            id=summary.id,
            name=summary.name,
            type=summary.type,
            sign_in_url=summary.sign_in_url,
            callback_url=summary.callback_url,
        )
        for summary in use_case.execute(options)
    ]


@router.get("/error", response_model=ErrorResponse)
def describe_sign_in_error(error: str | None = None):
    return ErrorResponse(error=error or "Default", message=describe_error(error))
