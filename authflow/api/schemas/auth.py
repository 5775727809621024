from __future__ import annotations

from pydantic import BaseModel


class ProviderResponse(BaseModel):
    id: str
    name: str
    type: str
    sign_in_url: str
    callback_url: str


class ErrorResponse(BaseModel):
    error: str
    message: str
