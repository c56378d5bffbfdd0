"""画面遷移の抽象化と遷移先の定義。"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from weddy.config.settings import WeddySettings
from weddy.models import Role

logger = logging.getLogger(__name__)

CALLBACK_QUERY_KEYS = ("code", "state", "error", "error_description")


class Navigator(ABC):
    """現在位置の書き換えと画面遷移を担う。"""

    @abstractmethod
    def replace_url(self, url: str) -> None:
        """履歴を増やさずに現在のURLを置き換える。"""

    @abstractmethod
    def navigate(self, path: str, *, replace: bool = True) -> None:
        """指定パスに遷移する。"""


class HistoryNavigator(Navigator):
    """現在位置と遷移履歴をメモリ上に保持するNavigator。

    ブラウザを持たないクライアント(CLIなど)での遷移先の記録に使う。
    """

    def __init__(self, initial_url: str = "/") -> None:
        self.current_url = initial_url
        self.history: list[str] = [initial_url]
        self.navigations: list[str] = []

    def replace_url(self, url: str) -> None:
        self.current_url = url
        self.history[-1] = url

    def navigate(self, path: str, *, replace: bool = True) -> None:
        logger.debug("navigation.navigate", extra={"path": path, "replace": replace})
        self.navigations.append(path)
        self.current_url = path
        if replace:
            self.history[-1] = path
        else:
            self.history.append(path)


@dataclass
class RouteTable:
    """役割ごとの遷移先"""

    login: str = "/log-in/client"
    public: str = "/"
    home: dict[Role, str] = field(
        default_factory=lambda: {Role.CUSTOMER: "/", Role.OWNER: "/owner"}
    )
    signup: dict[Role, str] = field(
        default_factory=lambda: {
            Role.CUSTOMER: "/sign-up/client/step1",
            Role.OWNER: "/sign-up/owner/step1",
        }
    )

    @classmethod
    def from_settings(cls, settings: WeddySettings) -> "RouteTable":
        return cls(
            login=settings.login_path,
            public=settings.public_path,
            home={Role.CUSTOMER: settings.customer_home_path, Role.OWNER: settings.owner_home_path},
            signup={
                Role.CUSTOMER: settings.customer_signup_path,
                Role.OWNER: settings.owner_signup_path,
            },
        )

    def login_with_error(self, flag: str) -> str:
        """エラーフラグ付きのログイン画面パス"""
        return f"{self.login}?{urlencode({'error': flag})}"


def strip_callback_params(url: str) -> str:
    """URLからコールバック用のクエリパラメータを取り除く。"""

    parts = urlsplit(url)
    kept = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in CALLBACK_QUERY_KEYS
    ]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(kept), parts.fragment))
