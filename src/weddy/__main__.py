"""weddyのCLIエントリーポイント"""

import logging
import sys
from pathlib import Path
from typing import List

from pydantic import ValidationError

from weddy import __version__
from weddy.auth.service import AuthService
from weddy.cli.main import HELP_TEXT, WeddyCLI
from weddy.cli.parser import ArgumentParser
from weddy.config.provider import ProviderConfigLoader
from weddy.config.settings import WeddySettings
from weddy.errors import WeddyException


def main(args: List[str] | None = None) -> int:
    """
    weddyのメインエントリーポイント

    Args:
        args: コマンドライン引数（Noneの場合はsys.argvを使用）

    Returns:
        終了コード（0: 成功、非0: エラー）
    """
    if args is None:
        args = sys.argv[1:]

    # 引数解析
    parser = ArgumentParser()
    parsed = parser.parse(args)

    # バージョン表示
    if parsed.options.get("version"):
        print(f"weddy {__version__}")
        return 0

    # ヘルプ表示
    if parsed.options.get("help") or (not parsed.command and not args):
        _print_help()
        return 0

    # バリデーション
    validation = parser.validate(parsed)
    if not validation.is_valid:
        for error in validation.errors:
            print(error, file=sys.stderr)
        return 1

    if parsed.options.get("verbose"):
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )

    # 設定読み込み
    try:
        settings = WeddySettings()
        provider_loader = ProviderConfigLoader(settings)
        config_path = parsed.options.get("config")
        provider_loader.load(Path(config_path) if config_path else None)
    except ValidationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    except WeddyException as exc:
        print(f"Configuration error: {exc.error.message}", file=sys.stderr)
        return 1

    cli = WeddyCLI(
        AuthService(settings, provider_loader=provider_loader),
        output_format=parsed.output_format,
    )
    return cli.run(parsed.command, parsed.args, options=parsed.options)


def _print_help() -> None:
    """ヘルプメッセージを表示"""
    print(HELP_TEXT)


if __name__ == "__main__":
    sys.exit(main())
