from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from authflow.domain.entities.user import Account


class EventKind(str, Enum):
    SIGN_IN = "signIn"
    SIGN_OUT = "signOut"
    CREATE_USER = "createUser"
    UPDATE_USER = "updateUser"
    LINK_ACCOUNT = "linkAccount"
    SESSION = "session"
    ERROR = "error"


@dataclass(frozen=True)
class LifecycleEvent:
    kind: EventKind
    user: Any
    account: Account | None = None
    is_new_user: bool | None = None
