"""プロバイダの認可URLを組み立てる。"""

from __future__ import annotations

import httpx

from weddy.auth.state import StateCodec
from weddy.config.provider import ProviderConfig
from weddy.errors import ConfigurationException, create_config_error
from weddy.models import Role, SocialProvider


class AuthorizationRequestBuilder:
    """Kakao/Naverの認可URLを構築する。

    ネットワーク通信は行わない。生成したURLへのブラウザ遷移は呼び出し側の責務。
    """

    def build_authorization_url(
        self,
        provider: SocialProvider,
        role: Role,
        config: ProviderConfig,
    ) -> str:
        """認可URLを返す。

        Args:
            provider: ソーシャルプロバイダ。
            role: stateに載せる役割。
            config: プロバイダ設定。

        Returns:
            str: クエリ文字列を含む認可URL。

        Raises:
            ConfigurationException: 設定が対象プロバイダと一致しない、または不足している場合。
        """

        if config.provider != provider:
            raise ConfigurationException(
                create_config_error(
                    f"{provider.value} の認可URLに {config.provider.value} の設定は使えません。",
                    details={"provider": provider.value, "config_provider": config.provider.value},
                )
            )
        config.require_complete()

        params = {
            "response_type": "code",
            "client_id": config.client_id,
            "redirect_uri": config.redirect_uri,
            "state": StateCodec.encode(role, config.state_style),
        }
        for key, value in config.extra_params.items():
            params.setdefault(key, value)

        query = httpx.QueryParams(params)
        return f"{config.auth_url}?{query}"


def build_authorization_url(provider: SocialProvider, role: Role, config: ProviderConfig) -> str:
    """AuthorizationRequestBuilder のショートカット"""
    return AuthorizationRequestBuilder().build_authorization_url(provider, role, config)
