"""Pydantic V2 ベースの統合設定モデル"""

import logging
from pathlib import Path
from typing import Any, Optional, Tuple
from urllib.parse import urlparse

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "http://localhost:8080"


def mask_secret(value: str) -> str:
    """鍵やトークンをマスクしてログ出力を避ける"""
    if not value:
        return "***"
    if len(value) <= 4:
        return "*" * len(value)
    return f"***{value[-4:]}"


class WeddySettings(BaseSettings):
    """weddy の統合設定"""

    model_config = SettingsConfigDict(
        env_prefix="WEDDY_",
        env_file=".env",
        extra="ignore",
    )

    # バックエンド設定
    api_base_url: str = Field(default=DEFAULT_API_BASE_URL)
    timeout: float = Field(default=10.0, gt=0)

    # ソーシャルログイン設定
    kakao_client_id: str = ""
    kakao_redirect_uri: str = ""
    naver_client_id: str = ""
    naver_redirect_uri: str = ""
    kakao_force_login: bool = True

    # セッション保存設定
    keyring_service: str = Field(default="weddy")
    use_keyring: bool = True
    session_file: Optional[Path] = None

    # 画面遷移設定
    login_path: str = "/log-in/client"
    public_path: str = "/"
    customer_home_path: str = "/"
    owner_home_path: str = "/owner"
    customer_signup_path: str = "/sign-up/client/step1"
    owner_signup_path: str = "/sign-up/owner/step1"

    # コールバック待機設定
    callback_timeout: float = Field(default=180.0, gt=0)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ) -> Tuple[Any, ...]:
        """設定ソースの優先順位をカスタマイズ（init > env > dotenv）"""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """末尾のスラッシュを取り除く"""
        value = value.strip()
        if not value:
            raise ValueError("api_base_url を空にすることはできません")
        return value.rstrip("/")

    @field_validator("kakao_redirect_uri", "naver_redirect_uri")
    @classmethod
    def validate_redirect_uri(cls, value: str) -> str:
        """リダイレクトURIは絶対URL(http/https)のみ許可"""
        value = value.strip()
        if not value:
            return value
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"リダイレクトURIは http(s) の絶対URLである必要があります: {value}")
        return value

    @field_validator(
        "login_path",
        "public_path",
        "customer_home_path",
        "owner_home_path",
        "customer_signup_path",
        "owner_signup_path",
    )
    @classmethod
    def validate_route_path(cls, value: str) -> str:
        """画面パスは / で始まる必要がある"""
        if not value.startswith("/"):
            raise ValueError(f"画面パスは '/' で始まる必要があります: {value}")
        return value

    def resolved_session_file(self) -> Path:
        """keyringが使えない場合のセッション保存先"""
        return self.session_file or Path.home() / ".weddy" / "session.json"

    def dump_masked(self) -> dict:
        """機微情報をマスクした設定を返却する"""
        data = self.model_dump(mode="json")
        for key in ("kakao_client_id", "naver_client_id"):
            if data.get(key):
                data[key] = mask_secret(data[key])
        return data
