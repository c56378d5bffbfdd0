"""
ソーシャルプロバイダ設定の読み込みと管理
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml

from weddy.config.settings import WeddySettings, mask_secret
from weddy.errors import ConfigurationException, ErrorCode, create_config_error
from weddy.models import SocialProvider

KAKAO_AUTH_URL = "https://kauth.kakao.com/oauth/authorize"
NAVER_AUTH_URL = "https://nid.naver.com/oauth2.0/authorize"

DEFAULT_AUTH_URLS = {
    SocialProvider.KAKAO: KAKAO_AUTH_URL,
    SocialProvider.NAVER: NAVER_AUTH_URL,
}
# Kakaoは従来JSON形式、Naverは役割の平文をstateに載せていた
DEFAULT_STATE_STYLES = {
    SocialProvider.KAKAO: "json",
    SocialProvider.NAVER: "plain",
}
VALID_STATE_STYLES = ("json", "plain")

StateStyle = Literal["json", "plain"]

logger = logging.getLogger(__name__)


@dataclass
class ProviderConfig:
    """ソーシャルプロバイダ個別設定"""

    provider: SocialProvider
    auth_url: str
    client_id: str = ""
    redirect_uri: str = ""
    state_style: StateStyle = "json"
    extra_params: Dict[str, str] = field(default_factory=dict)

    @property
    def masked_client_id(self) -> str:
        """マスク済みクライアントID"""
        return mask_secret(self.client_id)

    def masked_dict(self) -> Dict[str, Any]:
        """クライアントIDをマスクした安全な辞書"""
        return {
            "provider": self.provider.value,
            "auth_url": self.auth_url,
            "client_id": self.masked_client_id,
            "redirect_uri": self.redirect_uri,
            "state_style": self.state_style,
            "extra_params": dict(self.extra_params),
        }

    def missing_fields(self) -> list[str]:
        """未設定の必須フィールド"""
        return [
            name
            for name in ("auth_url", "client_id", "redirect_uri")
            if not str(getattr(self, name) or "").strip()
        ]

    def require_complete(self) -> None:
        """必須フィールドが揃っていることを検証する

        Raises:
            ConfigurationException: 必須フィールドが不足している場合
        """
        missing = self.missing_fields()
        if missing:
            raise ConfigurationException(
                create_config_error(
                    f"{self.provider.value} のログイン設定が不足しています: {', '.join(missing)}",
                    details={"provider": self.provider.value, "missing_fields": missing},
                )
            )

    def __repr__(self) -> str:
        return (
            f"ProviderConfig(provider={self.provider.value}, auth_url={self.auth_url}, "
            f"client_id={self.masked_client_id}, redirect_uri={self.redirect_uri}, "
            f"state_style={self.state_style})"
        )


class ProviderConfigLoader:
    """プロバイダ設定ローダー(settings/yaml + キャッシュ)

    設定ファイルの値を土台に、WeddySettings(環境変数)の値で上書きする。
    """

    def __init__(self, settings: Optional[WeddySettings] = None) -> None:
        self._settings = settings
        self._cache: Optional[Dict[SocialProvider, ProviderConfig]] = None

    def load(
        self,
        config_path: Optional[Path] = None,
        force_reload: bool = False,
    ) -> Dict[SocialProvider, ProviderConfig]:
        """全プロバイダの設定を読み込む"""
        if self._cache is not None and not force_reload:
            return self._cache

        settings = self._settings or WeddySettings()
        file_configs = self._load_from_file(config_path)
        merged: Dict[SocialProvider, ProviderConfig] = {}
        for provider in SocialProvider:
            base = file_configs.get(provider) or ProviderConfig(
                provider=provider,
                auth_url=DEFAULT_AUTH_URLS[provider],
                state_style=DEFAULT_STATE_STYLES[provider],  # type: ignore[arg-type]
            )
            merged[provider] = self._apply_settings(base, settings)

        self._cache = merged
        return merged

    def get(self, provider: SocialProvider, config_path: Optional[Path] = None) -> ProviderConfig:
        """単一プロバイダの設定を取得し、必須項目を検証する"""
        config = self.load(config_path)[provider]
        config.require_complete()
        return config

    def _apply_settings(self, base: ProviderConfig, settings: WeddySettings) -> ProviderConfig:
        """環境変数由来の設定で上書きする"""
        prefix = base.provider.value.lower()
        client_id = getattr(settings, f"{prefix}_client_id", "") or base.client_id
        redirect_uri = getattr(settings, f"{prefix}_redirect_uri", "") or base.redirect_uri
        extra_params = dict(base.extra_params)
        if base.provider == SocialProvider.KAKAO and settings.kakao_force_login:
            # 既存のKakaoセッションを無視してログイン画面を表示させる
            extra_params.setdefault("prompt", "login")
        return ProviderConfig(
            provider=base.provider,
            auth_url=base.auth_url,
            client_id=client_id,
            redirect_uri=redirect_uri,
            state_style=base.state_style,
            extra_params=extra_params,
        )

    def _load_from_file(self, config_path: Optional[Path]) -> Dict[SocialProvider, ProviderConfig]:
        """設定ファイルからプロバイダ設定を読み込む"""
        resolved_path = config_path or self._find_default_config()
        if resolved_path is None or not resolved_path.exists():
            return {}

        try:
            with resolved_path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (yaml.YAMLError, OSError) as e:
            logger.error(
                "Failed to load provider config file: path=%s error=%s",
                resolved_path,
                e,
                exc_info=True,
            )
            return {}

        if not isinstance(data, dict):
            logger.error(
                "Invalid provider config structure: expected mapping but got %s at %s",
                type(data).__name__,
                resolved_path,
            )
            return {}

        providers: Dict[SocialProvider, ProviderConfig] = {}
        raw_providers = data.get("providers")
        if not isinstance(raw_providers, dict):
            return providers

        for key, cfg in raw_providers.items():
            if not isinstance(cfg, dict):
                continue
            try:
                provider = SocialProvider.parse(str(key))
            except ValueError:
                logger.warning("Unknown provider in config file: provider=%s path=%s", key, resolved_path)
                continue
            providers[provider] = self._build_provider_config(provider, cfg)

        return providers

    def _build_provider_config(self, provider: SocialProvider, cfg: Dict[str, Any]) -> ProviderConfig:
        """辞書から ProviderConfig を構築"""
        state_style = str(cfg.get("state_style") or DEFAULT_STATE_STYLES[provider]).lower()
        if state_style not in VALID_STATE_STYLES:
            raise ConfigurationException(
                create_config_error(
                    f"state_style は {', '.join(VALID_STATE_STYLES)} のいずれかである必要があります: {state_style}",
                    details={"provider": provider.value, "state_style": state_style},
                    code=ErrorCode.CONFIG_INVALID_VALUE,
                )
            )
        extra = cfg.get("extra_params")
        extra_params = {str(k): str(v) for k, v in extra.items()} if isinstance(extra, dict) else {}
        return ProviderConfig(
            provider=provider,
            auth_url=str(cfg.get("auth_url") or DEFAULT_AUTH_URLS[provider]),
            client_id=str(cfg.get("client_id") or ""),
            redirect_uri=str(cfg.get("redirect_uri") or ""),
            state_style=state_style,  # type: ignore[arg-type]
            extra_params=extra_params,
        )

    def _find_default_config(self) -> Optional[Path]:
        """デフォルトの設定ファイルパスを探索"""
        paths = [
            Path.cwd() / "weddy.yaml",
            Path.cwd() / "weddy.yml",
            Path.home() / ".config" / "weddy" / "config.yaml",
        ]
        for path in paths:
            if path.exists():
                return path
        return None
