"""アクセストークンの有効期限の解決。"""

from __future__ import annotations

import math
import time
from typing import Any, Optional

import jwt

from weddy.models import ExchangeResult


def decode_claims(token: str) -> dict[str, Any]:
    """署名を検証せずにJWTのクレームを読み出す。JWTでなければ空の辞書。"""

    try:
        decoded = jwt.decode(
            token,
            options={"verify_signature": False, "verify_aud": False, "verify_exp": False},
        )
    except jwt.PyJWTError:
        return {}

    if not isinstance(decoded, dict):
        return {}
    return decoded


def resolve_expires_at(result: ExchangeResult, now: Optional[float] = None) -> Optional[int]:
    """有効期限(epoch秒)を expiresIn、無ければトークンの exp から求める。"""

    if result.expires_in is not None:
        current = time.time() if now is None else now
        return int(current + result.expires_in)

    exp = decode_claims(result.access_token).get("exp")
    if isinstance(exp, (int, float)) and not isinstance(exp, bool) and math.isfinite(exp):
        return int(exp)
    return None
