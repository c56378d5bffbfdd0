"""
WeddySettings のユニットテスト
"""

import os
import unittest
from pathlib import Path
from unittest.mock import patch

from pydantic import ValidationError

from weddy.config.settings import WeddySettings, mask_secret


class TestWeddySettings(unittest.TestCase):
    """WeddySettings の基本動作を検証する"""

    @patch.dict(os.environ, {}, clear=True)
    def test_default_values(self):
        """デフォルト値が適用される"""
        settings = WeddySettings(_env_file=None)

        self.assertEqual(settings.api_base_url, "http://localhost:8080")
        self.assertEqual(settings.timeout, 10.0)
        self.assertEqual(settings.kakao_client_id, "")
        self.assertTrue(settings.kakao_force_login)
        self.assertEqual(settings.keyring_service, "weddy")
        self.assertTrue(settings.use_keyring)
        self.assertEqual(settings.login_path, "/log-in/client")
        self.assertEqual(settings.owner_home_path, "/owner")
        self.assertEqual(settings.customer_signup_path, "/sign-up/client/step1")
        self.assertEqual(settings.owner_signup_path, "/sign-up/owner/step1")
        self.assertEqual(settings.resolved_session_file(), Path.home() / ".weddy" / "session.json")

    @patch.dict(
        os.environ,
        {
            "WEDDY_API_BASE_URL": "https://api.weddy.test/",
            "WEDDY_KAKAO_CLIENT_ID": "env-kakao",
            "WEDDY_USE_KEYRING": "false",
            "WEDDY_TIMEOUT": "3.5",
        },
        clear=True,
    )
    def test_env_values(self):
        """WEDDY_ 接頭辞の環境変数を読み込む"""
        settings = WeddySettings(_env_file=None)

        self.assertEqual(settings.api_base_url, "https://api.weddy.test")
        self.assertEqual(settings.kakao_client_id, "env-kakao")
        self.assertFalse(settings.use_keyring)
        self.assertEqual(settings.timeout, 3.5)

    @patch.dict(os.environ, {"WEDDY_KAKAO_CLIENT_ID": "env-kakao"}, clear=True)
    def test_init_overrides_env(self):
        """初期化引数が環境変数より優先される"""
        settings = WeddySettings(_env_file=None, kakao_client_id="init-kakao")
        self.assertEqual(settings.kakao_client_id, "init-kakao")

    def test_invalid_redirect_uri(self):
        """相対URLのリダイレクトURIは拒否される"""
        with self.assertRaises(ValidationError):
            WeddySettings(_env_file=None, naver_redirect_uri="/auth/naver/callback")

    def test_invalid_route_path(self):
        with self.assertRaises(ValidationError):
            WeddySettings(_env_file=None, owner_home_path="owner")

    def test_empty_base_url(self):
        with self.assertRaises(ValidationError):
            WeddySettings(_env_file=None, api_base_url="  ")

    def test_non_positive_timeout(self):
        with self.assertRaises(ValidationError):
            WeddySettings(_env_file=None, timeout=0)

    def test_dump_masked(self):
        settings = WeddySettings(_env_file=None, kakao_client_id="abcdef123456")
        dumped = settings.dump_masked()
        self.assertEqual(dumped["kakao_client_id"], "***3456")
        self.assertEqual(dumped["naver_client_id"], "")

    def test_mask_secret(self):
        self.assertEqual(mask_secret(""), "***")
        self.assertEqual(mask_secret("abc"), "***")
        self.assertEqual(mask_secret("abcdefgh"), "***efgh")


if __name__ == "__main__":
    unittest.main()
