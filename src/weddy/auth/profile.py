"""役割ごとのプロフィールキャッシュ。"""

from __future__ import annotations

import logging
from typing import Optional, Union

from pydantic import ValidationError

from weddy.api.client import BackendClient
from weddy.auth.storage import SessionStore
from weddy.errors import ErrorCode, WeddyException, create_api_error, not_authenticated
from weddy.models import Role
from weddy.profiles import CustomerProfile, OwnerProfile, parse_profile

logger = logging.getLogger(__name__)

AnyProfile = Union[CustomerProfile, OwnerProfile]


class ProfileCache:
    """最後に取得したプロフィールを保持する。

    セッションが無い間は取得を行わない。バックエンドがトークンを拒否した場合は
    セッションごと破棄する。
    """

    def __init__(self, client: BackendClient, session_store: SessionStore) -> None:
        self._client = client
        self._session_store = session_store
        self._profile: Optional[AnyProfile] = None

    async def refresh(self, role: Optional[Role] = None) -> Optional[AnyProfile]:
        """役割に対応するプロフィールを再取得してキャッシュを置き換える。

        Args:
            role: 取得する役割。省略時は保存済みの役割。

        Returns:
            取得したプロフィール。未認証の場合はNone。

        Raises:
            WeddyException: 取得に失敗した場合。
        """

        if not self._session_store.is_authenticated():
            logger.debug("auth.profile.refresh.skipped", extra={"reason": "not_authenticated"})
            return None

        target = role or self._session_store.role()
        if target is None:
            return None

        try:
            payload = await self._client.fetch_profile(target)
        except WeddyException as exc:
            if exc.is_code(ErrorCode.AUTH_NOT_AUTHENTICATED):
                logger.info("auth.profile.invalidated", extra={"role": target.value})
                self._session_store.clear()
                self._profile = None
            raise

        try:
            profile = parse_profile(target, payload)
        except ValidationError as exc:
            raise WeddyException(
                create_api_error(
                    ErrorCode.API_INVALID_RESPONSE,
                    "プロフィールの形式が不正です。",
                    details={"role": target.value, "errors": exc.error_count()},
                    recoverable=False,
                )
            ) from exc

        self._profile = profile
        logger.debug("auth.profile.refreshed", extra={"role": target.value})
        return profile

    def get(self) -> Optional[AnyProfile]:
        """最後に取得したプロフィールを返す（通信しない）。"""

        return self._profile

    def require(self) -> AnyProfile:
        """プロフィールを返す。セッションかプロフィールが無ければ未認証例外。"""

        if self._profile is None or not self._session_store.is_authenticated():
            raise not_authenticated()
        return self._profile

    def clear(self) -> None:
        self._profile = None
