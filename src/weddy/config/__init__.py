"""設定管理 - 設定の読み込みと管理"""

from weddy.config.provider import (
    DEFAULT_AUTH_URLS,
    KAKAO_AUTH_URL,
    NAVER_AUTH_URL,
    ProviderConfig,
    ProviderConfigLoader,
)
from weddy.config.settings import WeddySettings, mask_secret

__all__ = [
    "DEFAULT_AUTH_URLS",
    "KAKAO_AUTH_URL",
    "NAVER_AUTH_URL",
    "ProviderConfig",
    "ProviderConfigLoader",
    "WeddySettings",
    "mask_secret",
]
