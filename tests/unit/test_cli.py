"""
CLIレイヤーのユニットテスト

ArgumentParserとWeddyCLIのテストを提供
"""

import json
import os
import sys
import tempfile
import unittest
from io import StringIO
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from weddy.__main__ import main
from weddy.auth.navigation import HistoryNavigator
from weddy.auth.service import AuthService
from weddy.auth.storage import KeyValueStorage, SessionStore
from weddy.cli.main import WeddyCLI
from weddy.cli.parser import ArgumentParser
from weddy.config.provider import ProviderConfigLoader
from weddy.config.settings import WeddySettings
from weddy.models import ExchangeResult, Role, Session
from weddy.output.formatter import OutputFormat


class TestArgumentParser(unittest.TestCase):
    """ArgumentParserのユニットテスト"""

    def setUp(self):
        self.parser = ArgumentParser()

    def test_parse_help(self):
        self.assertTrue(self.parser.parse(["-h"]).options.get("help"))
        self.assertTrue(self.parser.parse(["--help"]).options.get("help"))

    def test_parse_version(self):
        self.assertTrue(self.parser.parse(["-v"]).options.get("version"))

    def test_parse_login_with_options(self):
        result = self.parser.parse(["login", "kakao", "--role", "OWNER", "--no-browser", "--verbose"])
        self.assertEqual(result.command, "login")
        self.assertEqual(result.args, ["kakao"])
        self.assertEqual(result.options["role"], "OWNER")
        self.assertTrue(result.options["no_browser"])
        self.assertTrue(result.options["verbose"])

    def test_parse_callback_url(self):
        result = self.parser.parse(["login", "naver", "--callback-url", "http://localhost/cb?code=c"])
        self.assertEqual(result.options["callback_url"], "http://localhost/cb?code=c")

    def test_parse_format(self):
        self.assertEqual(self.parser.parse(["--format", "json", "status"]).output_format, OutputFormat.JSON)
        self.assertEqual(self.parser.parse(["status"]).output_format, OutputFormat.MARKDOWN)

    def test_validate_valid_commands(self):
        for argv in (["status"], ["logout"], ["whoami"], ["config"], ["login", "kakao"], ["url", "NAVER", "--role", "owner"]):
            with self.subTest(argv=argv):
                self.assertTrue(self.parser.validate(self.parser.parse(argv)).is_valid)

    def test_validate_missing_command(self):
        validation = self.parser.validate(self.parser.parse([]))
        self.assertFalse(validation.is_valid)

    def test_validate_unknown_command(self):
        validation = self.parser.validate(self.parser.parse(["signup"]))
        self.assertFalse(validation.is_valid)
        self.assertIn("Unknown command", validation.errors[0])

    def test_validate_provider_required(self):
        self.assertFalse(self.parser.validate(self.parser.parse(["login"])).is_valid)

    def test_validate_unknown_provider(self):
        validation = self.parser.validate(self.parser.parse(["login", "google"]))
        self.assertIn("Unknown provider", validation.errors[0])

    def test_validate_invalid_role(self):
        validation = self.parser.validate(self.parser.parse(["login", "kakao", "--role", "ADMIN"]))
        self.assertFalse(validation.is_valid)

    def test_validate_missing_option_value(self):
        validation = self.parser.validate(self.parser.parse(["login", "kakao", "--callback-url"]))
        self.assertFalse(validation.is_valid)


class TestWeddyCLI(unittest.TestCase):
    """WeddyCLIのテスト"""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        with patch.dict(os.environ, {}, clear=True):
            self.settings = WeddySettings(
                _env_file=None,
                naver_client_id="naver-id",
                naver_redirect_uri="http://localhost:3000/auth/naver/callback",
            )
        self.store = SessionStore(
            KeyValueStorage(fallback_path=Path(self._tmp.name) / "s.json", use_keyring=False)
        )
        self.client = MagicMock()
        self.client.exchange_code = AsyncMock(return_value=ExchangeResult(access_token="A"))
        self.client.fetch_profile = AsyncMock(return_value={"name": "Lee", "bzNumber": "1"})
        self.client.logout = AsyncMock()
        self.service = AuthService(
            self.settings, session_store=self.store, client=self.client, navigator=HistoryNavigator()
        )

    def tearDown(self):
        self._tmp.cleanup()

    def _run(self, command, args=None, options=None, fmt=OutputFormat.MARKDOWN):
        cli = WeddyCLI(self.service, output_format=fmt)
        with patch("sys.stdout", new_callable=StringIO) as out, patch("sys.stderr", new_callable=StringIO) as err:
            code = cli.run(command, args or [], options or {})
        return code, out.getvalue(), err.getvalue()

    def test_url(self):
        code, out, _ = self._run("url", ["naver"], {"role": "OWNER"})
        self.assertEqual(code, 0)
        self.assertIn("state=OWNER", out)

    def test_url_without_config(self):
        code, _, err = self._run("url", ["kakao"])
        self.assertEqual(code, 1)
        self.assertIn("設定エラー", err)

    def test_login_with_callback_url(self):
        code, out, _ = self._run(
            "login",
            ["naver"],
            {"callback_url": "http://localhost:3000/auth/naver/callback?code=c&state=OWNER"},
            fmt=OutputFormat.JSON,
        )
        self.assertEqual(code, 0)
        result = json.loads(out)
        self.assertEqual(result["phase"], "SUCCEEDED")
        self.assertEqual(result["destination"], "/owner")
        self.assertEqual(self.store.load().role, Role.OWNER)

    def test_login_with_failed_callback(self):
        code, out, _ = self._run(
            "login", ["naver"], {"callback_url": "http://localhost:3000/auth/naver/callback?error=access_denied"}
        )
        self.assertEqual(code, 1)
        self.assertIn("FAILED", out)

    def test_login_with_callback_url_needs_no_provider_config(self):
        code, _, err = self._run(
            "login",
            ["kakao"],
            {"callback_url": "http://localhost:3000/auth/kakao/callback?code=c&state=OWNER"},
        )
        self.assertEqual(code, 0)
        self.assertNotIn("設定エラー", err)
        self.client.exchange_code.assert_awaited_once()

    def test_browser_login_uses_redirect_uri_from_file(self):
        config_path = Path(self._tmp.name) / "weddy.yaml"
        config_path.write_text(
            "providers:\n"
            "  kakao:\n"
            "    client_id: kakao-client\n"
            "    redirect_uri: http://localhost:4000/auth/kakao/callback\n",
            encoding="utf-8",
        )
        loader = ProviderConfigLoader(self.settings)
        loader.load(config_path)
        self.service = AuthService(
            self.settings,
            session_store=self.store,
            client=self.client,
            navigator=HistoryNavigator(),
            provider_loader=loader,
        )
        listener = MagicMock()
        listener.wait = AsyncMock(
            return_value="http://localhost:4000/auth/kakao/callback?code=c&state=OWNER"
        )

        with patch("weddy.cli.main.CallbackListener") as listener_cls:
            listener_cls.return_value.__enter__.return_value = listener
            listener_cls.return_value.__exit__.return_value = False
            code, _, err = self._run("login", ["kakao"], {"no_browser": True})

        self.assertEqual(code, 0)
        listener_cls.assert_called_once_with("http://localhost:4000/auth/kakao/callback")
        self.assertIn("https://kauth.kakao.com/oauth/authorize", err)
        self.assertEqual(self.store.load().role, Role.OWNER)

    def test_config_masks_client_id(self):
        code, out, _ = self._run("config")
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertNotIn("naver-id", out)
        self.assertEqual(data["settings"]["naver_client_id"], "***r-id")
        self.assertEqual(data["providers"]["NAVER"]["client_id"], "***r-id")
        self.assertEqual(
            data["providers"]["NAVER"]["redirect_uri"], "http://localhost:3000/auth/naver/callback"
        )
        self.assertEqual(data["providers"]["KAKAO"]["client_id"], "***")

    def test_status(self):
        self.store.save(Session(access_token="secret-access-value", role=Role.CUSTOMER))
        code, out, _ = self._run("status", fmt=OutputFormat.JSON)
        self.assertEqual(code, 0)
        status = json.loads(out)
        self.assertTrue(status["is_authenticated"])
        self.assertEqual(status["role"], "CUSTOMER")
        self.assertNotIn("secret-access-value", out)

    def test_whoami_without_session(self):
        code, _, err = self._run("whoami")
        self.assertEqual(code, 1)
        self.assertIn("ログインしていません", err)

    def test_whoami(self):
        self.store.save(Session(access_token="tok", role=Role.OWNER))
        code, out, _ = self._run("whoami", fmt=OutputFormat.JSON)
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["bz_number"], "1")

    def test_logout(self):
        self.store.save(Session(access_token="tok", role=Role.OWNER))
        code, _, _ = self._run("logout")
        self.assertEqual(code, 0)
        self.assertIsNone(self.store.load())

    def test_help_and_version(self):
        code, out, _ = self._run("help")
        self.assertEqual(code, 0)
        self.assertIn("Usage:", out)
        code, out, _ = self._run("version")
        self.assertIn("weddy", out)


class TestMain(unittest.TestCase):
    """main()のテスト"""

    def test_version(self):
        with patch("sys.stdout", new_callable=StringIO) as out:
            self.assertEqual(main(["--version"]), 0)
        self.assertIn("weddy", out.getvalue())

    def test_help_without_args(self):
        with patch("sys.stdout", new_callable=StringIO) as out:
            self.assertEqual(main([]), 0)
        self.assertIn("Commands:", out.getvalue())

    def test_invalid_command(self):
        with patch("sys.stderr", new_callable=StringIO) as err:
            self.assertEqual(main(["signup"]), 1)
        self.assertIn("Unknown command", err.getvalue())


if __name__ == "__main__":
    unittest.main()
