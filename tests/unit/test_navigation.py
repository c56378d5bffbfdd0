"""
画面遷移のユニットテスト
"""

import unittest

from weddy.auth.navigation import HistoryNavigator, RouteTable, strip_callback_params
from weddy.config.settings import WeddySettings
from weddy.models import Role


class TestHistoryNavigator(unittest.TestCase):
    def test_replace_does_not_grow_history(self):
        navigator = HistoryNavigator("/callback?code=c")
        navigator.replace_url("/callback")
        navigator.navigate("/owner")
        self.assertEqual(navigator.history, ["/owner"])
        self.assertEqual(navigator.navigations, ["/owner"])

    def test_push_navigation(self):
        navigator = HistoryNavigator()
        navigator.navigate("/owner", replace=False)
        self.assertEqual(navigator.history, ["/", "/owner"])
        self.assertEqual(navigator.current_url, "/owner")


class TestRouteTable(unittest.TestCase):
    def test_defaults(self):
        routes = RouteTable()
        self.assertEqual(routes.home[Role.OWNER], "/owner")
        self.assertEqual(routes.signup[Role.CUSTOMER], "/sign-up/client/step1")

    def test_from_settings(self):
        settings = WeddySettings(_env_file=None, owner_home_path="/partner", login_path="/login")
        routes = RouteTable.from_settings(settings)
        self.assertEqual(routes.home[Role.OWNER], "/partner")
        self.assertEqual(routes.login_with_error("auth"), "/login?error=auth")


class TestStripCallbackParams(unittest.TestCase):
    def test_strips_only_callback_keys(self):
        self.assertEqual(
            strip_callback_params("http://h/cb?code=c&state=s&error=e&error_description=d&x=1#frag"),
            "http://h/cb?x=1#frag",
        )

    def test_no_query(self):
        self.assertEqual(strip_callback_params("http://h/cb?code=c"), "http://h/cb")


if __name__ == "__main__":
    unittest.main()
