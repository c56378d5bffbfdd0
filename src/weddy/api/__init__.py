"""バックエンドAPIクライアントの公開API。"""

from weddy.api.client import AUTH_PATHS, PROFILE_PATHS, BackendClient, is_auth_path

__all__ = ["AUTH_PATHS", "PROFILE_PATHS", "BackendClient", "is_auth_path"]
