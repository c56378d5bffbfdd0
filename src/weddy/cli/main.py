"""
weddy CLIメインモジュール

ソーシャルログイン・ログアウト・セッション確認のコマンドハンドラー
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional, cast
import webbrowser

from weddy import __version__
from weddy.auth.server import CallbackListener
from weddy.auth.service import AuthService
from weddy.cli.parser import VALID_COMMANDS
from weddy.errors import WeddyException
from weddy.models import CallbackResult, Role, SocialProvider
from weddy.output.formatter import OutputFormat, OutputFormatter


HELP_TEXT = f"""weddy v{__version__} - ソーシャルログインとセッション管理のCLI

Usage:
    weddy <command> [args] [options]

Commands:
    login <provider>   Kakao/Naverでログインする
    logout             ログアウトしてセッションを破棄する
    status             保存済みセッションの状態を表示
    whoami             ログイン中のプロフィールを取得して表示
    url <provider>     認可URLを表示する
    config             マスク済みの現在の設定を表示
    help               このヘルプメッセージを表示
    version            バージョン情報を表示

Options:
    -h, --help             ヘルプメッセージを表示
    -v, --version          バージョン情報を表示
    --role <role>          ログインする役割（CUSTOMER, OWNER）
    --no-browser           ブラウザを自動で開かずURLを表示
    --callback-url <url>   受け取ったコールバックURLを直接処理
    --config <path>        プロバイダ設定ファイル（weddy.yaml）
    --format <format>      出力形式を指定（json, markdown）
    --verbose              デバッグログを出力

Examples:
    weddy login kakao --role OWNER
    weddy --format json whoami
"""


class WeddyCLI:
    """weddy CLIのエントリーポイント"""

    def __init__(
        self,
        service: AuthService,
        output_format: OutputFormat = OutputFormat.MARKDOWN,
    ):
        """初期化

        Args:
            service: 認証サービス
            output_format: 出力形式（デフォルト: MARKDOWN）
        """
        self.service = service
        self.output_format = output_format
        self.formatter = OutputFormatter()
        self.audit_logger = logging.getLogger("weddy.audit.cli")

    def run(self, command: str, args: List[str], options: Dict[str, Any] | None = None) -> int:
        """コマンドを実行し、Exit Codeを返す

        Args:
            command: コマンド名
            args: コマンド引数
            options: 解析済みオプション辞書

        Returns:
            int: 終了コード（0: 成功、非0: エラー）
        """
        if options is None:
            options = {}

        if command == "help":
            self.show_help()
            return 0

        if command == "version":
            self.show_version()
            return 0

        if command not in VALID_COMMANDS:
            print(
                f"Unknown command: '{command}'. "
                f"Available commands: {', '.join(sorted(VALID_COMMANDS))}",
                file=sys.stderr,
            )
            return 1

        self.service.restore()

        if command == "url":
            return self._run_url_command(args, options)
        if command == "login":
            return self._run_login_command(args, options)
        if command == "logout":
            return self._run_logout_command()
        if command == "status":
            return self._run_status_command()
        if command == "whoami":
            return self._run_whoami_command()
        if command == "config":
            return self._run_config_command()

        print(f"Command '{command}' is not yet implemented.", file=sys.stderr)
        return 1

    def _run_url_command(self, args: List[str], options: Dict[str, Any]) -> int:
        """認可URLを表示する"""
        provider, role = self._provider_and_role(args, options)
        try:
            url = self.service.authorization_url(provider, role)
        except WeddyException as exc:
            print(f"設定エラー: {exc.error.message}", file=sys.stderr)
            return 1
        print(url)
        return 0

    def _run_login_command(self, args: List[str], options: Dict[str, Any]) -> int:
        """ソーシャルログインを実行する"""
        provider, role = self._provider_and_role(args, options)
        callback_url = options.get("callback_url")

        if callback_url:
            # 受け取り済みのコールバックには認可URLもプロバイダ設定も不要
            self.audit_logger.info("auth.login.callback", extra={"provider": provider.value})
            result = asyncio.run(self._process_callback(provider, callback_url))
        else:
            try:
                url = self.service.authorization_url(provider, role)
                redirect_uri = self.service.provider_config(provider).redirect_uri
            except WeddyException as exc:
                print(f"設定エラー: {exc.error.message}", file=sys.stderr)
                return 1

            self.audit_logger.info(
                "auth.login.start",
                extra={"provider": provider.value, "role": role.value},
            )
            try:
                result = asyncio.run(
                    self._login_with_browser(
                        provider,
                        url,
                        redirect_uri,
                        open_browser=not options.get("no_browser"),
                    )
                )
            except (TimeoutError, ValueError, OSError) as exc:
                print(f"ログインに失敗しました: {exc}", file=sys.stderr)
                return 1

        print(self.formatter.format_callback_result(result, self.output_format))
        return 0 if result.succeeded else 1

    async def _login_with_browser(
        self,
        provider: SocialProvider,
        url: str,
        redirect_uri: str,
        open_browser: bool,
    ) -> CallbackResult:
        with CallbackListener(redirect_uri) as listener:
            if open_browser:
                await asyncio.to_thread(webbrowser.open, url)
            else:
                print(f"次のURLをブラウザで開いてください:\n{url}", file=sys.stderr)
            callback_url = await listener.wait(self.service.settings.callback_timeout)
        return await self._process_callback(provider, callback_url)

    async def _process_callback(self, provider: SocialProvider, callback_url: str) -> CallbackResult:
        processor = self.service.new_callback_processor(provider)
        # 新しいプロセッサの初回実行は必ず結果を返す
        return cast(CallbackResult, await processor.run(callback_url))

    def _run_config_command(self) -> int:
        """クライアントIDをマスクした現在の設定を表示する"""
        data = {
            "settings": self.service.settings.dump_masked(),
            "providers": {
                provider.value: config.masked_dict()
                for provider, config in self.service.provider_configs().items()
            },
        }
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return 0

    def _run_logout_command(self) -> int:
        """ログアウトする"""
        asyncio.run(self.service.logout())
        print("ログアウトしました。", file=sys.stderr)
        return 0

    def _run_status_command(self) -> int:
        """保存済みセッションの状態を表示する"""
        session = self.service.session_store.load()
        print(self.formatter.format_status(session, self.output_format))
        return 0

    def _run_whoami_command(self) -> int:
        """プロフィールを取得して表示する"""
        if not self.service.is_authenticated:
            print("ログインしていません。weddy login <kakao|naver> を実行してください。", file=sys.stderr)
            return 1
        try:
            profile = asyncio.run(self.service.profile_cache.refresh())
        except WeddyException as exc:
            print(f"プロフィールの取得に失敗しました: {exc.error.message}", file=sys.stderr)
            return 1
        if profile is None:
            print("ログインしていません。", file=sys.stderr)
            return 1
        print(self.formatter.format_profile(profile, self.output_format))
        return 0

    def _provider_and_role(self, args: List[str], options: Dict[str, Any]) -> tuple[SocialProvider, Role]:
        provider = SocialProvider.parse(args[0])
        raw_role: Optional[str] = options.get("role")
        role = Role(raw_role.upper()) if raw_role else Role.CUSTOMER
        return provider, role

    def show_help(self) -> None:
        """ヘルプメッセージを表示"""
        print(HELP_TEXT)

    def show_version(self) -> None:
        """バージョン情報を表示"""
        print(f"weddy {__version__}")
