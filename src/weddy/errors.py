"""
エラー定義

weddyで使用されるエラーコードと例外クラス
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """エラーコード

    カテゴリ別にエラーコードを定義:
    - CONFIG_xxx: 設定エラー
    - AUTH_xxx: 認証・セッションエラー
    - API_xxx: バックエンドAPIエラー
    """
    # 設定エラー
    CONFIG_MISSING_VALUE = "CONFIG_001"
    CONFIG_INVALID_VALUE = "CONFIG_002"

    # 認証エラー
    AUTH_MISSING_CODE = "AUTH_001"
    AUTH_STATE_DECODE_FALLBACK = "AUTH_002"
    AUTH_EXCHANGE_REJECTED = "AUTH_003"
    AUTH_TRANSPORT_FAILURE = "AUTH_004"
    AUTH_NOT_AUTHENTICATED = "AUTH_005"

    # APIエラー
    API_REQUEST_REJECTED = "API_001"
    API_INVALID_RESPONSE = "API_002"


@dataclass
class WeddyError:
    """weddyエラー情報

    Attributes:
        code: エラーコード文字列
        message: エラーメッセージ
        details: 追加のエラー詳細情報
        recoverable: 復旧可能かどうか
    """
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    recoverable: bool = False
    log_level: int = logging.ERROR


class WeddyException(Exception):
    """weddy例外クラス

    WeddyErrorをラップする例外クラス
    """

    def __init__(self, error: WeddyError):
        """WeddyExceptionを初期化

        Args:
            error: WeddyErrorインスタンス
        """
        self.error = error
        self.log_level = error.log_level
        super().__init__(f"[{error.code}] {error.message}")

    @property
    def code(self) -> str:
        return self.error.code

    def is_code(self, code: ErrorCode) -> bool:
        """指定したエラーコードかどうか"""
        return self.error.code == code.value


class ConfigurationException(WeddyException):
    """設定例外（クライアントID/リダイレクトURI関連）"""


class AuthenticationException(WeddyException):
    """認証例外（コード交換・セッション関連）"""


class TransportException(WeddyException):
    """ネットワーク到達不能・バックエンド障害の例外"""


ERROR_CODE_LOG_LEVEL: Dict[ErrorCode, int] = {
    ErrorCode.AUTH_STATE_DECODE_FALLBACK: logging.WARNING,
    ErrorCode.AUTH_MISSING_CODE: logging.WARNING,
    ErrorCode.AUTH_NOT_AUTHENTICATED: logging.INFO,
    ErrorCode.AUTH_EXCHANGE_REJECTED: logging.WARNING,
    ErrorCode.AUTH_TRANSPORT_FAILURE: logging.ERROR,
    ErrorCode.API_INVALID_RESPONSE: logging.ERROR,
}

# 利用者が再ログインや再試行で回復できるエラー
RECOVERABLE_CODES = frozenset(
    {
        ErrorCode.AUTH_MISSING_CODE,
        ErrorCode.AUTH_EXCHANGE_REJECTED,
        ErrorCode.AUTH_TRANSPORT_FAILURE,
        ErrorCode.AUTH_NOT_AUTHENTICATED,
    }
)


# よく使用されるエラーのファクトリ関数
def create_config_error(
    message: str,
    details: Optional[Dict[str, Any]] = None,
    code: ErrorCode = ErrorCode.CONFIG_MISSING_VALUE,
) -> WeddyError:
    """設定エラーを作成

    Args:
        message: エラーメッセージ
        details: 追加詳細
        code: エラーコード（デフォルト: CONFIG_MISSING_VALUE）

    Returns:
        WeddyError: 設定エラー
    """
    return WeddyError(
        code=code.value,
        message=message,
        details=details,
        recoverable=False,
        log_level=logging.ERROR,
    )


def create_auth_error(
    code: ErrorCode,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    log_level: Optional[int] = None,
) -> WeddyError:
    """認証エラーを作成

    Args:
        code: エラーコード
        message: エラーメッセージ
        details: 追加詳細

    Returns:
        WeddyError: 認証エラー
    """
    return WeddyError(
        code=code.value,
        message=message,
        details=details,
        recoverable=code in RECOVERABLE_CODES,
        log_level=log_level or ERROR_CODE_LOG_LEVEL.get(code, logging.ERROR),
    )


def create_api_error(
    code: ErrorCode,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    recoverable: bool = True,
    log_level: Optional[int] = None,
) -> WeddyError:
    """APIエラーを作成

    Args:
        code: エラーコード
        message: エラーメッセージ
        details: 追加詳細
        recoverable: 復旧可能かどうか

    Returns:
        WeddyError: APIエラー
    """
    return WeddyError(
        code=code.value,
        message=message,
        details=details,
        recoverable=recoverable,
        log_level=log_level or ERROR_CODE_LOG_LEVEL.get(code, logging.ERROR),
    )


def not_authenticated(message: str = "ログインが必要です。") -> AuthenticationException:
    """未認証例外を生成する"""
    return AuthenticationException(
        create_auth_error(ErrorCode.AUTH_NOT_AUTHENTICATED, message)
    )
