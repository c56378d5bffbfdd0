"""プロバイダからのリダイレクトを一度だけ処理するコールバック処理。"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlsplit

from weddy.api.client import BackendClient
from weddy.auth.navigation import Navigator, RouteTable, strip_callback_params
from weddy.auth.profile import ProfileCache
from weddy.auth.state import StateCodec
from weddy.auth.storage import SessionStore
from weddy.auth.tokens import resolve_expires_at
from weddy.errors import ErrorCode, WeddyException
from weddy.models import CallbackPhase, CallbackResult, Role, Session, SocialProvider

logger = logging.getLogger(__name__)

# ログイン画面に渡すエラーフラグ
ERROR_FLAGS = {
    ErrorCode.AUTH_MISSING_CODE: "missing_code",
    ErrorCode.AUTH_EXCHANGE_REJECTED: "auth",
    ErrorCode.AUTH_TRANSPORT_FAILURE: "network",
}


class CallbackProcessor:
    """リダイレクト1回分のコールバックを処理する状態機械。

    IDLE → PROCESSING → {SUCCEEDED | FAILED} と遷移し、IDLEからの遷移は
    インスタンスごとに一度だけ起こる。再描画などで run() が再度呼ばれても
    認可コードを二重に送信しない。
    """

    def __init__(
        self,
        provider: SocialProvider,
        client: BackendClient,
        session_store: SessionStore,
        profile_cache: ProfileCache,
        navigator: Navigator,
        routes: Optional[RouteTable] = None,
    ) -> None:
        """CallbackProcessorを初期化する。

        Args:
            provider: リダイレクト元のソーシャルプロバイダ。
            client: 認可コード交換に使うバックエンドクライアント。
            session_store: セッションの保存先。
            profile_cache: 成功時に更新するプロフィールキャッシュ。
            navigator: 処理完了時の遷移先。
            routes: 遷移先の定義。
        """

        self._provider = provider
        self._client = client
        self._session_store = session_store
        self._profile_cache = profile_cache
        self._navigator = navigator
        self._routes = routes or RouteTable()
        self._phase = CallbackPhase.IDLE
        self._result: Optional[CallbackResult] = None

    @property
    def phase(self) -> CallbackPhase:
        return self._phase

    @property
    def result(self) -> Optional[CallbackResult]:
        return self._result

    async def run(self, url: str) -> Optional[CallbackResult]:
        """コールバックURLを処理する。

        Args:
            url: 現在のURL（クエリ文字列に code/state を含む）。

        Returns:
            CallbackResult: 処理結果。二度目以降の呼び出しでは既存の結果
            （処理中ならNone）をそのまま返す。
        """

        # 最初の await より前に判定と遷移を済ませる
        if self._phase is not CallbackPhase.IDLE:
            logger.debug("auth.callback.skipped", extra={"phase": self._phase.value})
            return self._result
        self._phase = CallbackPhase.PROCESSING
        logger.info("auth.callback.start", extra={"provider": self._provider.value})

        params = _query_params(url)
        code = params.get("code")
        raw_state = params.get("state")

        if not code:
            return self._fail(
                ErrorCode.AUTH_MISSING_CODE,
                role=None,
                details={"provider_error": params.get("error")},
            )

        role = StateCodec.decode(raw_state)

        try:
            exchange = await self._client.exchange_code(code, self._provider, role, state=raw_state)
        except WeddyException as exc:
            if exc.is_code(ErrorCode.AUTH_TRANSPORT_FAILURE):
                return self._fail(ErrorCode.AUTH_TRANSPORT_FAILURE, role=role, details=exc.error.details)
            return self._fail(ErrorCode.AUTH_EXCHANGE_REJECTED, role=role, details=exc.error.details)

        session = Session(
            access_token=exchange.access_token,
            role=role,
            is_authenticated=True,
            refresh_token=exchange.refresh_token,
            expires_at=resolve_expires_at(exchange),
        )
        self._session_store.save(session)
        self._navigator.replace_url(strip_callback_params(url))

        destination = self._routes.home[role]
        profile_error: Optional[str] = None
        try:
            profile = await self._profile_cache.refresh(role)
        except WeddyException as exc:
            if exc.is_code(ErrorCode.AUTH_NOT_AUTHENTICATED):
                # 発行直後のトークンが拒否された
                return self._fail(ErrorCode.AUTH_EXCHANGE_REJECTED, role=role, details=exc.error.details)
            profile_error = exc.error.code
            if exc.is_code(ErrorCode.API_REQUEST_REJECTED):
                # プロフィール未作成は初回ログイン
                destination = self._routes.signup[role]
            else:
                logger.warning(
                    "auth.callback.profile_unavailable",
                    extra={"provider": self._provider.value, "error_code": exc.error.code},
                )
        else:
            if profile is not None and profile.needs_signup:
                destination = self._routes.signup[role]

        return self._finish(
            CallbackResult(
                phase=CallbackPhase.SUCCEEDED,
                provider=self._provider,
                destination=destination,
                role=role,
                profile_error=profile_error,
            )
        )

    def _fail(
        self,
        code: ErrorCode,
        role: Optional[Role],
        details: Optional[Dict[str, Any]] = None,
    ) -> CallbackResult:
        logger.warning(
            "auth.callback.failed",
            extra={
                "provider": self._provider.value,
                "error_code": code.value,
                "details": details or {},
            },
        )
        return self._finish(
            CallbackResult(
                phase=CallbackPhase.FAILED,
                provider=self._provider,
                destination=self._routes.login_with_error(ERROR_FLAGS[code]),
                role=role,
                error_code=code.value,
            )
        )

    def _finish(self, result: CallbackResult) -> CallbackResult:
        self._phase = result.phase
        self._result = result
        if result.succeeded:
            logger.info(
                "auth.callback.succeeded",
                extra={"provider": self._provider.value, "role": result.role.value if result.role else None},
            )
        self._navigator.navigate(result.destination, replace=True)
        return result


def _query_params(url: str) -> Dict[str, str]:
    query = urlsplit(url).query
    parsed = parse_qs(query, keep_blank_values=True)
    return {key: values[0] for key, values in parsed.items() if values}
