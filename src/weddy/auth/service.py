"""認証とセッションのライフサイクルをまとめるサービス。"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from weddy.api.client import BackendClient
from weddy.auth.authorize import AuthorizationRequestBuilder
from weddy.auth.callback import CallbackProcessor
from weddy.auth.navigation import HistoryNavigator, Navigator, RouteTable
from weddy.auth.profile import AnyProfile, ProfileCache
from weddy.auth.storage import SessionStore, get_session_store
from weddy.config.provider import ProviderConfig, ProviderConfigLoader
from weddy.config.settings import WeddySettings
from weddy.errors import ErrorCode, WeddyException, not_authenticated
from weddy.models import Role, Session, SocialProvider

logger = logging.getLogger(__name__)


class AuthService:
    """画面側から利用する認証の窓口。

    ライフサイクル:
        restore(): 起動時に一度呼び、保存済みセッションを読み込む。
        logout(): セッションとプロフィールを破棄して公開エリアへ戻す。
    """

    def __init__(
        self,
        settings: Optional[WeddySettings] = None,
        *,
        session_store: Optional[SessionStore] = None,
        client: Optional[BackendClient] = None,
        navigator: Optional[Navigator] = None,
        provider_loader: Optional[ProviderConfigLoader] = None,
    ) -> None:
        self.settings = settings or WeddySettings()
        self.session_store = session_store or get_session_store()
        self.client = client or BackendClient(
            self.settings.api_base_url,
            self.session_store,
            timeout=self.settings.timeout,
        )
        self.navigator = navigator or HistoryNavigator()
        self.routes = RouteTable.from_settings(self.settings)
        self.profile_cache = ProfileCache(self.client, self.session_store)
        self._provider_loader = provider_loader or ProviderConfigLoader(self.settings)
        self._builder = AuthorizationRequestBuilder()

    @property
    def is_authenticated(self) -> bool:
        return self.session_store.is_authenticated()

    @property
    def role(self) -> Optional[Role]:
        return self.session_store.role()

    @property
    def profile(self) -> Optional[AnyProfile]:
        return self.profile_cache.get()

    def restore(self) -> Optional[Session]:
        """保存済みセッションを読み込む。"""

        session = self.session_store.load()
        if session is None:
            logger.debug("auth.session.restore", extra={"restored": False})
        else:
            logger.info("auth.session.restore", extra={"restored": True, "role": session.role.value})
        return session

    def authorization_url(self, provider: SocialProvider, role: Role) -> str:
        """ログインボタンから遷移する認可URLを返す。"""

        config = self.provider_config(provider)
        return self._builder.build_authorization_url(provider, role, config)

    def provider_config(self, provider: SocialProvider) -> ProviderConfig:
        """必須項目が揃ったプロバイダ設定を返す。

        Raises:
            ConfigurationException: 設定が不足している場合。
        """

        return self._provider_loader.get(provider)

    def provider_configs(self) -> Dict[SocialProvider, ProviderConfig]:
        """全プロバイダの設定を検証せずに返す。"""

        return self._provider_loader.load()

    def new_callback_processor(self, provider: SocialProvider) -> CallbackProcessor:
        """リダイレクト1回分のコールバック処理を生成する。"""

        return CallbackProcessor(
            provider,
            self.client,
            self.session_store,
            self.profile_cache,
            self.navigator,
            self.routes,
        )

    async def update_profile(self, changes: Dict[str, Any]) -> Optional[AnyProfile]:
        """プロフィールを更新し、キャッシュを再取得する。

        Raises:
            AuthenticationException: セッションが無い場合。
            WeddyException: 更新または再取得に失敗した場合。
        """

        role = self.session_store.role()
        if role is None or not self.session_store.is_authenticated():
            raise not_authenticated()

        try:
            await self.client.update_profile(role, changes)
        except WeddyException as exc:
            if exc.is_code(ErrorCode.AUTH_NOT_AUTHENTICATED):
                logger.info("auth.profile.invalidated", extra={"role": role.value})
                self.session_store.clear()
                self.profile_cache.clear()
            raise
        return await self.profile_cache.refresh(role)

    async def logout(self) -> None:
        """ログアウトする。バックエンドへの通知が失敗してもローカルの状態は必ず破棄する。"""

        try:
            if self.session_store.access_token():
                await self.client.logout()
        except WeddyException as exc:
            logger.warning("auth.logout.server_failed", extra={"error_code": exc.error.code})
        finally:
            self.session_store.clear()
            self.profile_cache.clear()
            logger.info("auth.logout")
        self.navigator.navigate(self.routes.public, replace=True)
