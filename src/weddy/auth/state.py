"""OAuthのstateパラメータに役割を載せて往復させるコーデック。"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote, unquote

from weddy.errors import ErrorCode
from weddy.models import Role

logger = logging.getLogger(__name__)

DEFAULT_ROLE = Role.CUSTOMER

_ROLE_LITERALS = {role.value: role for role in Role}


class StateCodec:
    """役割とstate文字列を相互変換する。

    プロバイダや中継地点がstateを再エンコードするかどうかは環境次第のため、
    デコードは平文・JSON、パーセントエンコード0回・1回のいずれも受け付ける。
    """

    @staticmethod
    def encode(role: Role, style: str = "json") -> str:
        """役割をURLセーフなstate文字列に変換する。

        Args:
            role: 往復させる役割。
            style: "json" ならパーセントエンコード済みのJSON、"plain" なら役割の平文。

        Returns:
            str: state文字列。同じ入力には常に同じ値を返す。
        """

        if style == "plain":
            return role.value
        if style != "json":
            raise ValueError(f"未対応のstate形式です: {style}")
        payload = json.dumps({"role": role.value}, separators=(",", ":"))
        return quote(payload, safe="")

    @staticmethod
    def decode(raw: Any) -> Role:
        """state文字列から役割を復元する。

        解釈できない入力に対しては例外を送出せず、DEFAULT_ROLEを返す。
        """

        if raw is not None and not isinstance(raw, str):
            return _fallback("not_a_string")

        if not raw:
            logger.info(
                "auth.state.fallback",
                extra={"error_code": ErrorCode.AUTH_STATE_DECODE_FALLBACK.value, "reason": "missing"},
            )
            return DEFAULT_ROLE

        if raw in _ROLE_LITERALS:
            return _ROLE_LITERALS[raw]

        decoded = unquote(raw)
        if decoded in _ROLE_LITERALS:
            return _ROLE_LITERALS[decoded]

        try:
            parsed = json.loads(decoded)
        except (ValueError, RecursionError):
            return _fallback("unparseable")

        if isinstance(parsed, dict):
            role = parsed.get("role")
            if isinstance(role, str) and role in _ROLE_LITERALS:
                return _ROLE_LITERALS[role]
        return _fallback("unknown_role")


def _fallback(reason: str) -> Role:
    logger.warning(
        "auth.state.fallback",
        extra={"error_code": ErrorCode.AUTH_STATE_DECODE_FALLBACK.value, "reason": reason},
    )
    return DEFAULT_ROLE
