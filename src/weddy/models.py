"""
共通データモデル

認証・セッション管理全体で使用されるデータ構造を定義
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(str, Enum):
    """利用者の役割"""
    CUSTOMER = "CUSTOMER"
    OWNER = "OWNER"


class SocialProvider(str, Enum):
    """ソーシャルログインのプロバイダ"""
    KAKAO = "KAKAO"
    NAVER = "NAVER"

    @classmethod
    def parse(cls, value: str) -> "SocialProvider":
        """大文字小文字を問わずプロバイダを解決する

        Raises:
            ValueError: 未対応のプロバイダが指定された場合
        """
        normalized = value.strip().upper()
        for provider in cls:
            if provider.value == normalized:
                return provider
        raise ValueError(f"未対応のプロバイダです: {value}")


class CallbackPhase(str, Enum):
    """コールバック処理のフェーズ"""
    IDLE = "IDLE"
    PROCESSING = "PROCESSING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass
class Session:
    """認証済みセッション

    Attributes:
        access_token: アクセストークン
        role: 役割
        is_authenticated: 認証済みフラグ
        refresh_token: リフレッシュトークン（サーバーが返した場合のみ）
        expires_at: アクセストークンの有効期限（epoch秒）
    """
    access_token: str
    role: Role
    is_authenticated: bool = True
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None

    def __repr__(self) -> str:
        return (
            f"Session(role={self.role.value}, is_authenticated={self.is_authenticated}, "
            f"access_token=<redacted>, refresh_token={'<redacted>' if self.refresh_token else None}, "
            f"expires_at={self.expires_at})"
        )


@dataclass
class ExchangeResult:
    """認可コード交換の結果

    Attributes:
        access_token: アクセストークン
        refresh_token: リフレッシュトークン
        expires_in: 有効期間（秒）
    """
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None

    def __repr__(self) -> str:
        return f"ExchangeResult(access_token=<redacted>, expires_in={self.expires_in})"


@dataclass
class CallbackResult:
    """コールバック処理の結果

    Attributes:
        phase: 最終フェーズ（SUCCEEDED または FAILED）
        provider: ソーシャルプロバイダ
        role: stateから復元した役割（コードが無い場合はNone）
        destination: 遷移先パス
        error_code: 失敗時のエラーコード
        profile_error: プロフィール取得で発生した非致命的なエラーコード
    """
    phase: CallbackPhase
    provider: SocialProvider
    destination: str
    role: Optional[Role] = None
    error_code: Optional[str] = None
    profile_error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.phase == CallbackPhase.SUCCEEDED
