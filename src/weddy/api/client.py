"""バックエンドAPIクライアント

ログイン(認可コード交換)、役割ごとのプロフィール取得・更新、ログアウトを扱う。
ログイン系以外のリクエストには保存済みのアクセストークンを付与し、
アクセストークンの期限切れ(AUTH4001)はリフレッシュトークンで一度だけ更新して再送する。
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import TYPE_CHECKING, Any, Dict, Optional

import httpx

from weddy.errors import (
    AuthenticationException,
    ErrorCode,
    TransportException,
    WeddyException,
    create_api_error,
    create_auth_error,
    not_authenticated,
)
from weddy.models import ExchangeResult, Role, SocialProvider

if TYPE_CHECKING:
    from weddy.auth.storage import SessionStore

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/v1/auth/login"
LOGOUT_PATH = "/api/v1/auth/logout"
REFRESH_PATH = "/auth/refresh"
PROFILE_PATHS = {
    Role.CUSTOMER: "/api/v1/customer",
    Role.OWNER: "/api/v1/owner",
}

# バックエンドがアクセストークンの期限切れを示すコード
TOKEN_EXPIRED_CODE = "AUTH4001"

# Authorizationヘッダーを付与しないパス
AUTH_PATHS = (LOGIN_PATH, "/auth/login", "/auth/kakao", "/auth/naver", REFRESH_PATH)

_ENVELOPE_KEYS = frozenset({"data", "result", "message", "code", "status", "success", "isSuccess"})


def is_auth_path(path: str) -> bool:
    """ログイン/リフレッシュ系のパスかどうか"""
    return any(candidate in path for candidate in AUTH_PATHS)


class BackendClient:
    """バックエンドAPIクライアント

    Attributes:
        base_url: APIのベースURL
        timeout: タイムアウト秒数
    """

    def __init__(
        self,
        base_url: str,
        session_store: SessionStore,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        """BackendClientを初期化

        Args:
            base_url: APIのベースURL
            session_store: アクセストークンの取得元
            http_client: 共有するhttpxクライアント（未指定ならリクエストごとに生成）
            timeout: タイムアウト秒数
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session_store = session_store
        self._http_client = http_client
        self._refresh_lock = asyncio.Lock()

    async def exchange_code(
        self,
        code: str,
        provider: SocialProvider,
        role: Role,
        state: Optional[str] = None,
    ) -> ExchangeResult:
        """認可コードをセッションに交換する

        Raises:
            AuthenticationException: バックエンドが拒否した場合（AUTH_EXCHANGE_REJECTED）
            TransportException: 通信できなかった場合（AUTH_TRANSPORT_FAILURE）
        """
        body: Dict[str, Any] = {
            "code": code,
            "socialProvider": provider.value,
            "userRole": role.value,
        }
        if state is not None:
            body["state"] = state

        response = await self._request("POST", LOGIN_PATH, json=body, authorized=False)
        if response.status_code >= 500:
            raise self._transport_error(
                "ログインサーバーが応答しません。",
                {"status": response.status_code, "path": LOGIN_PATH},
            )
        if response.status_code >= 400:
            raise AuthenticationException(
                create_auth_error(
                    ErrorCode.AUTH_EXCHANGE_REJECTED,
                    "ログインに失敗しました。もう一度お試しください。",
                    details={
                        "status": response.status_code,
                        "provider": provider.value,
                        "backend_message": _backend_message(response),
                    },
                )
            )

        result = _token_result(_unwrap_envelope(_json_or_none(response)))
        if result is None:
            raise AuthenticationException(
                create_auth_error(
                    ErrorCode.AUTH_EXCHANGE_REJECTED,
                    "アクセストークンがレスポンスに含まれていません。",
                    details={"status": response.status_code, "provider": provider.value},
                )
            )
        return result

    async def fetch_profile(self, role: Role) -> Dict[str, Any]:
        """役割に対応する「自分の情報」を取得する"""
        response = await self._request("GET", PROFILE_PATHS[role])
        self._raise_for_profile_status(response, role)
        return self._profile_payload(response, role)

    async def update_profile(self, role: Role, changes: Dict[str, Any]) -> Dict[str, Any]:
        """役割に対応するプロフィールを部分更新する"""
        response = await self._request("PATCH", PROFILE_PATHS[role], json=changes)
        self._raise_for_profile_status(response, role)
        if not response.content:
            return {}
        return self._profile_payload(response, role)

    async def logout(self) -> None:
        """バックエンドにログアウトを通知する"""
        response = await self._request("POST", LOGOUT_PATH)
        if response.status_code >= 500:
            raise self._transport_error(
                "ログアウト要求が失敗しました。",
                {"status": response.status_code, "path": LOGOUT_PATH},
            )
        if response.status_code >= 400:
            raise WeddyException(
                create_api_error(
                    ErrorCode.API_REQUEST_REJECTED,
                    "ログアウト要求が拒否されました。",
                    details={"status": response.status_code, "backend_message": _backend_message(response)},
                )
            )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        authorized: bool = True,
    ) -> httpx.Response:
        if not authorized or is_auth_path(path):
            return await self._send(method, path, json=json)

        token = self._session_store.access_token()
        if not token:
            raise not_authenticated()

        response = await self._send(method, path, json=json, token=token)
        if response.status_code == 401 and _backend_code(response) == TOKEN_EXPIRED_CODE:
            # 再送は一度だけ。再送後の401は通常の未認証として扱う
            new_token = await self._refresh_access_token(token)
            response = await self._send(method, path, json=json, token=new_token)
        return response

    async def _refresh_access_token(self, expired_token: str) -> str:
        """リフレッシュトークンでアクセストークンを更新し、新しいトークンを返す

        同時に期限切れを検知したリクエストはロックで待ち合わせ、
        更新は一度だけ行う。更新が拒否された場合はセッションを破棄する。

        Raises:
            AuthenticationException: 更新できなかった場合（AUTH_NOT_AUTHENTICATED）
            TransportException: 通信できなかった場合（セッションは保持）
        """
        async with self._refresh_lock:
            current = self._session_store.access_token()
            if current and current != expired_token:
                return current

            refresh_token = self._session_store.refresh_token()
            if not refresh_token:
                self._invalidate_session("refresh_token_missing")
                raise not_authenticated("セッションの有効期限が切れました。再度ログインしてください。")

            response = await self._send("POST", REFRESH_PATH, json={"refreshToken": refresh_token})
            if response.status_code >= 500:
                raise self._transport_error(
                    "トークンの更新に失敗しました。",
                    {"status": response.status_code, "path": REFRESH_PATH},
                )

            result = None
            if response.status_code < 400:
                result = _token_result(_unwrap_envelope(_json_or_none(response)))
            if result is None:
                self._invalidate_session("refresh_rejected", status=response.status_code)
                raise AuthenticationException(
                    create_auth_error(
                        ErrorCode.AUTH_NOT_AUTHENTICATED,
                        "セッションの有効期限が切れました。再度ログインしてください。",
                        details={
                            "status": response.status_code,
                            "backend_message": _backend_message(response),
                        },
                    )
                )

            self._session_store.update_tokens(result)
            logger.info("auth.token.refreshed")
            return result.access_token

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
    ) -> httpx.Response:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = f"{self.base_url}{path}"
        try:
            if self._http_client is not None:
                return await self._http_client.request(method, url, json=json, headers=headers)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.request(method, url, json=json, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Backend request failed: method=%s path=%s error=%s", method, path, exc)
            raise self._transport_error(
                "サーバーに接続できません。ネットワーク接続を確認してください。",
                {"path": path, "error": type(exc).__name__},
            ) from exc

    def _invalidate_session(self, reason: str, status: Optional[int] = None) -> None:
        logger.info("auth.token.refresh_failed", extra={"reason": reason, "status": status})
        self._session_store.clear()

    def _raise_for_profile_status(self, response: httpx.Response, role: Role) -> None:
        status = response.status_code
        if status in (401, 403):
            raise AuthenticationException(
                create_auth_error(
                    ErrorCode.AUTH_NOT_AUTHENTICATED,
                    "セッションが無効です。再度ログインしてください。",
                    details={"status": status, "role": role.value},
                )
            )
        if status >= 500:
            raise self._transport_error(
                "サーバーが応答しません。",
                {"status": status, "path": PROFILE_PATHS[role]},
            )
        if status >= 400:
            raise WeddyException(
                create_api_error(
                    ErrorCode.API_REQUEST_REJECTED,
                    "プロフィールの要求が拒否されました。",
                    details={
                        "status": status,
                        "role": role.value,
                        "backend_message": _backend_message(response),
                    },
                )
            )

    def _profile_payload(self, response: httpx.Response, role: Role) -> Dict[str, Any]:
        payload = _unwrap_envelope(_json_or_none(response))
        if not isinstance(payload, dict):
            raise WeddyException(
                create_api_error(
                    ErrorCode.API_INVALID_RESPONSE,
                    "プロフィールのレスポンス形式が不正です。",
                    details={"role": role.value, "type": type(payload).__name__},
                    recoverable=False,
                )
            )
        return payload

    def _transport_error(self, message: str, details: Dict[str, Any]) -> TransportException:
        return TransportException(
            create_auth_error(ErrorCode.AUTH_TRANSPORT_FAILURE, message, details=details)
        )


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _unwrap_envelope(payload: Any) -> Any:
    """{"data": {...}} 形式の共通レスポンスを剥がす"""
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        if set(payload.keys()) <= _ENVELOPE_KEYS:
            return payload["data"]
    return payload


def _backend_message(response: httpx.Response) -> Optional[str]:
    payload = _json_or_none(response)
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str):
            return message
    return None


def _token_result(payload: Any) -> Optional[ExchangeResult]:
    """トークンを含むレスポンスを解釈する。accessTokenが無ければNone"""
    if not isinstance(payload, dict):
        return None
    access_token = payload.get("accessToken")
    if not isinstance(access_token, str) or not access_token:
        return None

    refresh_token = payload.get("refreshToken")
    expires_in = payload.get("expiresIn")
    # 1e400 などの非有限値は有効期間不明として扱う
    if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)) or not math.isfinite(expires_in):
        expires_in = None
    return ExchangeResult(
        access_token=access_token,
        refresh_token=str(refresh_token) if refresh_token else None,
        expires_in=int(expires_in) if expires_in is not None else None,
    )


def _backend_code(response: httpx.Response) -> Optional[str]:
    payload = _json_or_none(response)
    if isinstance(payload, dict):
        code = payload.get("code")
        if isinstance(code, str):
            return code
    return None
