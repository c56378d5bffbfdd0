"""セッション情報の永続化を提供する。"""

from __future__ import annotations

import functools
import json
import logging
import os
from pathlib import Path
from typing import Optional
import warnings

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from weddy.auth.tokens import resolve_expires_at
from weddy.models import ExchangeResult, Role, Session

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"
IS_LOGGED_IN_KEY = "isLoggedIn"
USER_ROLE_KEY = "userRole"
EXPIRES_AT_KEY = "expiresAt"

SESSION_KEYS = (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    IS_LOGGED_IN_KEY,
    USER_ROLE_KEY,
    EXPIRES_AT_KEY,
)

# keyringから削除できなかったキーの一覧（フォールバックファイルに保存）
PENDING_KEYRING_DELETES_KEY = "__pendingKeyringDeletes__"


class KeyValueStorage:
    """文字列キー/値の永続ストレージ。

    OSのkeyringを優先し、利用できない場合はローカルのJSONファイルに切り替える。
    keyringから削除できなかったキーはファイル側に記録し、次にkeyringが
    使えたときに削除する。
    """

    def __init__(
        self,
        keyring_service: str = "weddy",
        fallback_path: Path | None = None,
        use_keyring: bool = True,
    ) -> None:
        """KeyValueStorageを初期化する。

        Args:
            keyring_service: keyringに保存する際のサービス名。
            fallback_path: keyringが使えない場合の保存先。
            use_keyring: Falseの場合は最初からファイルに保存する。
        """

        self._keyring_service = keyring_service
        self._fallback_path = fallback_path or Path.home() / ".weddy" / "session.json"
        self._keyring_configured = use_keyring
        self._use_keyring = use_keyring

    @property
    def uses_keyring(self) -> bool:
        return self._use_keyring

    def set(self, key: str, value: str) -> None:
        """値を保存する。"""

        if self._use_keyring:
            try:
                keyring.set_password(self._keyring_service, key, value)
                self._discard_pending_delete(key)
                return
            except KeyringError as exc:
                self._switch_to_fallback(exc)

        values = self._read_fallback_values()
        values[key] = value
        self._write_fallback_values(values)

    def get(self, key: str) -> str | None:
        """値を取得する。存在しない場合はNone。"""

        if self._use_keyring:
            pending = self._pending_deletes()
            if pending:
                self._retry_pending_deletes(pending)
                if key in pending:
                    return None
            try:
                return keyring.get_password(self._keyring_service, key)
            except KeyringError as exc:
                self._switch_to_fallback(exc)

        return self._read_fallback_values().get(key)

    def delete(self, key: str) -> None:
        """値を削除する。存在しないキーの削除は何もしない。

        keyringからの削除に失敗した場合も、以降そのキーは存在しないものとして扱う。
        """

        if self._keyring_configured:
            try:
                keyring.delete_password(self._keyring_service, key)
            except PasswordDeleteError:
                self._discard_pending_delete(key)
            except KeyringError as exc:
                self._switch_to_fallback(exc)
                self._add_pending_delete(key)
            else:
                self._discard_pending_delete(key)
            if self._use_keyring:
                return

        values = self._read_fallback_values()
        if key in values:
            values.pop(key)
            self._write_fallback_values(values)

    def _switch_to_fallback(self, exc: Exception) -> None:
        if self._use_keyring:
            logger.debug("keyring unavailable: %s", exc)
            warnings.warn(
                "keyringが利用できないため、ローカルファイルに保存します。",
                RuntimeWarning,
                stacklevel=3,
            )
            self._use_keyring = False

    def _pending_deletes(self) -> list[str]:
        raw = self._read_fallback_values().get(PENDING_KEYRING_DELETES_KEY)
        if not raw:
            return []
        try:
            keys = json.loads(raw)
        except json.JSONDecodeError:
            return []
        if not isinstance(keys, list):
            return []
        return [str(key) for key in keys]

    def _add_pending_delete(self, key: str) -> None:
        values = self._read_fallback_values()
        pending = self._pending_deletes()
        if key not in pending:
            pending.append(key)
        values[PENDING_KEYRING_DELETES_KEY] = json.dumps(pending)
        self._write_fallback_values(values)

    def _discard_pending_delete(self, key: str) -> None:
        pending = self._pending_deletes()
        if key not in pending:
            return
        pending.remove(key)
        values = self._read_fallback_values()
        if pending:
            values[PENDING_KEYRING_DELETES_KEY] = json.dumps(pending)
        else:
            values.pop(PENDING_KEYRING_DELETES_KEY, None)
        self._write_fallback_values(values)

    def _retry_pending_deletes(self, pending: list[str]) -> None:
        remaining = list(pending)
        for key in pending:
            try:
                keyring.delete_password(self._keyring_service, key)
            except PasswordDeleteError:
                pass
            except KeyringError as exc:
                logger.debug("pending keyring delete failed: key=%s error=%s", key, exc)
                break
            remaining.remove(key)

        values = self._read_fallback_values()
        if remaining:
            values[PENDING_KEYRING_DELETES_KEY] = json.dumps(remaining)
        else:
            values.pop(PENDING_KEYRING_DELETES_KEY, None)
        self._write_fallback_values(values)

    def _read_fallback_values(self) -> dict[str, str]:
        if not self._fallback_path.exists():
            return {}

        self._ensure_fallback_permissions(self._fallback_path)
        try:
            with self._fallback_path.open("r", encoding="utf-8") as file:
                data = json.load(file)
        except json.JSONDecodeError:
            warnings.warn(
                "セッション保存ファイルの形式が不正です。空として扱います。",
                RuntimeWarning,
                stacklevel=3,
            )
            return {}

        if not isinstance(data, dict):
            return {}

        return {str(key): str(value) for key, value in data.items()}

    def _write_fallback_values(self, values: dict[str, str]) -> None:
        self._fallback_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        with self._fallback_path.open("w", encoding="utf-8") as file:
            json.dump(values, file, ensure_ascii=False, indent=2)
        self._ensure_fallback_permissions(self._fallback_path)

    def _ensure_fallback_permissions(self, path: Path) -> None:
        if path.exists():
            os.chmod(path, 0o600)


class SessionStore:
    """セッションの保存・復元・破棄を行う唯一の情報源。

    各フィールドは個別のキーに保存されるため、役割だけが必要なコードは
    セッション全体を復元せずに読み出せる。
    """

    def __init__(self, storage: KeyValueStorage | None = None) -> None:
        self._storage = storage or KeyValueStorage()

    def save(self, session: Session) -> None:
        """セッションを保存する。"""

        self._storage.set(ACCESS_TOKEN_KEY, session.access_token)
        if session.refresh_token:
            self._storage.set(REFRESH_TOKEN_KEY, session.refresh_token)
        else:
            self._storage.delete(REFRESH_TOKEN_KEY)
        if session.expires_at is not None:
            self._storage.set(EXPIRES_AT_KEY, str(int(session.expires_at)))
        else:
            self._storage.delete(EXPIRES_AT_KEY)
        self._storage.set(USER_ROLE_KEY, session.role.value)
        self._storage.set(IS_LOGGED_IN_KEY, "true" if session.is_authenticated else "false")
        logger.debug("auth.session.saved", extra={"role": session.role.value})

    def load(self) -> Optional[Session]:
        """保存済みのセッションを復元する。揃っていない場合はNone。"""

        access_token = self._storage.get(ACCESS_TOKEN_KEY)
        if not access_token:
            return None

        role = self.role()
        if role is None:
            return None

        return Session(
            access_token=access_token,
            role=role,
            is_authenticated=self._storage.get(IS_LOGGED_IN_KEY) == "true",
            refresh_token=self._storage.get(REFRESH_TOKEN_KEY) or None,
            expires_at=self._read_expires_at(),
        )

    def clear(self) -> None:
        """全てのセッションキーを削除する。セッションが無くても安全に呼べる。"""

        for key in SESSION_KEYS:
            self._storage.delete(key)
        logger.debug("auth.session.cleared")

    def role(self) -> Optional[Role]:
        """保存済みの役割のみを読み出す。"""

        raw = self._storage.get(USER_ROLE_KEY)
        if raw is None:
            return None
        try:
            return Role(raw)
        except ValueError:
            logger.warning("Stored role is invalid: role=%s", raw)
            return None

    def access_token(self) -> Optional[str]:
        """保存済みのアクセストークンのみを読み出す。"""

        return self._storage.get(ACCESS_TOKEN_KEY) or None

    def refresh_token(self) -> Optional[str]:
        """保存済みのリフレッシュトークンのみを読み出す。"""

        return self._storage.get(REFRESH_TOKEN_KEY) or None

    def update_tokens(self, result: ExchangeResult) -> None:
        """トークン更新の結果を保存する。役割とログイン状態はそのまま残す。

        新しいリフレッシュトークンが無い場合は既存のものを使い続ける。
        """

        self._storage.set(ACCESS_TOKEN_KEY, result.access_token)
        if result.refresh_token:
            self._storage.set(REFRESH_TOKEN_KEY, result.refresh_token)
        expires_at = resolve_expires_at(result)
        if expires_at is not None:
            self._storage.set(EXPIRES_AT_KEY, str(expires_at))
        else:
            self._storage.delete(EXPIRES_AT_KEY)
        self._storage.set(IS_LOGGED_IN_KEY, "true")
        logger.debug("auth.session.tokens_updated")

    def is_authenticated(self) -> bool:
        """認証済みフラグとトークンが揃っているかどうか。"""

        return self._storage.get(IS_LOGGED_IN_KEY) == "true" and bool(self.access_token())

    def _read_expires_at(self) -> Optional[int]:
        raw = self._storage.get(EXPIRES_AT_KEY)
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError:
            return None


@functools.lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    """プロセス全体で共有するSessionStoreを返す。

    初回呼び出し時に WeddySettings からストレージ設定を読み込む。
    """

    from weddy.config.settings import WeddySettings

    settings = WeddySettings()
    storage = KeyValueStorage(
        keyring_service=settings.keyring_service,
        fallback_path=settings.resolved_session_file(),
        use_keyring=settings.use_keyring,
    )
    return SessionStore(storage)
