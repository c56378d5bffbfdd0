"""ソーシャルログインとセッション管理の公開API。"""

from __future__ import annotations

from weddy.auth.authorize import AuthorizationRequestBuilder, build_authorization_url
from weddy.auth.callback import CallbackProcessor
from weddy.auth.guard import RoleGuard
from weddy.auth.navigation import HistoryNavigator, Navigator, RouteTable
from weddy.auth.profile import ProfileCache
from weddy.auth.service import AuthService
from weddy.auth.state import DEFAULT_ROLE, StateCodec
from weddy.auth.storage import KeyValueStorage, SessionStore, get_session_store

__all__ = [
    "AuthService",
    "AuthorizationRequestBuilder",
    "CallbackProcessor",
    "DEFAULT_ROLE",
    "HistoryNavigator",
    "KeyValueStorage",
    "Navigator",
    "ProfileCache",
    "RoleGuard",
    "RouteTable",
    "SessionStore",
    "StateCodec",
    "build_authorization_url",
    "get_session_store",
]
