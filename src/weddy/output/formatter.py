"""
出力フォーマッタ

セッション状態とプロフィールを指定形式（JSON/Markdown）に変換するフォーマッタ
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

from weddy.models import CallbackResult, Session
from weddy.profiles import CustomerProfile, OwnerProfile


class OutputFormat(Enum):
    """出力形式"""
    JSON = "json"
    MARKDOWN = "markdown"


class OutputFormatter:
    """セッション関連の情報を指定形式にフォーマットするクラス"""

    def format_status(self, session: Optional[Session], format_type: OutputFormat) -> str:
        """セッション状態をフォーマット

        Args:
            session: 保存済みセッション（未ログインならNone）
            format_type: 出力形式

        Returns:
            フォーマットされた文字列
        """
        data = self._status_dict(session)
        if format_type == OutputFormat.JSON:
            return json.dumps(data, ensure_ascii=False, indent=2)
        elif format_type == OutputFormat.MARKDOWN:
            lines = ["# セッション状態", ""]
            lines.extend(self._markdown_items(data))
            return "\n".join(lines)
        else:
            raise ValueError(f"Unsupported format type: {format_type}")

    def format_profile(
        self,
        profile: Union[CustomerProfile, OwnerProfile],
        format_type: OutputFormat,
    ) -> str:
        """プロフィールをフォーマット"""
        data = profile.model_dump(mode="json", exclude_none=True)
        if format_type == OutputFormat.JSON:
            return json.dumps(data, ensure_ascii=False, indent=2)
        elif format_type == OutputFormat.MARKDOWN:
            title = "顧客" if isinstance(profile, CustomerProfile) else "事業者"
            lines = [f"# {title}プロフィール", ""]
            lines.extend(self._markdown_items(data))
            if profile.needs_signup:
                lines.append("")
                lines.append("> 会員登録が完了していません。")
            return "\n".join(lines)
        else:
            raise ValueError(f"Unsupported format type: {format_type}")

    def format_callback_result(self, result: CallbackResult, format_type: OutputFormat) -> str:
        """コールバック処理結果をフォーマット"""
        data: Dict[str, Any] = {
            "phase": result.phase.value,
            "provider": result.provider.value,
            "role": result.role.value if result.role else None,
            "destination": result.destination,
            "error_code": result.error_code,
            "profile_error": result.profile_error,
        }
        if format_type == OutputFormat.JSON:
            return json.dumps(data, ensure_ascii=False, indent=2)
        lines = ["# ログイン結果", ""]
        lines.extend(self._markdown_items({k: v for k, v in data.items() if v is not None}))
        return "\n".join(lines)

    def _status_dict(self, session: Optional[Session]) -> Dict[str, Any]:
        if session is None:
            return {"is_authenticated": False, "role": None}
        expires_at = None
        if session.expires_at is not None:
            expires_at = datetime.fromtimestamp(session.expires_at, tz=timezone.utc).isoformat()
        return {
            "is_authenticated": session.is_authenticated,
            "role": session.role.value,
            "has_refresh_token": bool(session.refresh_token),
            "expires_at": expires_at,
        }

    def _markdown_items(self, data: Dict[str, Any]) -> list:
        return [f"- **{key}**: {'-' if value is None else value}" for key, value in data.items()]
