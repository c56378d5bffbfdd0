"""
コマンドライン引数の解析

コマンド解析とバリデーション機能を提供
"""

from dataclasses import dataclass
from typing import Any, Dict, List

from weddy.models import Role, SocialProvider
from weddy.output.formatter import OutputFormat


# 有効なコマンド一覧
VALID_COMMANDS = {"login", "logout", "status", "whoami", "url", "config", "help", "version"}

# プロバイダ指定が必須のコマンド
PROVIDER_COMMANDS = {"login", "url"}


@dataclass
class ParsedCommand:
    """解析済みコマンド

    Attributes:
        command: コマンド名
        args: コマンド引数
        options: オプション辞書
        output_format: 出力形式
    """

    command: str
    args: List[str]
    options: Dict[str, Any]
    output_format: OutputFormat


@dataclass
class ValidationResult:
    """バリデーション結果

    Attributes:
        is_valid: 有効かどうか
        errors: エラーメッセージのリスト
    """

    is_valid: bool
    errors: List[str]


class ArgumentParser:
    """コマンドライン引数の解析"""

    def parse(self, argv: List[str]) -> ParsedCommand:
        """引数を解析してParsedCommandを返す

        Args:
            argv: コマンドライン引数リスト

        Returns:
            ParsedCommand: 解析結果
        """
        options: Dict[str, Any] = {}
        args: List[str] = []
        command: str = ""
        output_format: OutputFormat = OutputFormat.MARKDOWN

        i = 0
        while i < len(argv):
            arg = argv[i]

            # ヘルプオプション
            if arg in ("-h", "--help"):
                options["help"] = True
                i += 1
                continue

            # バージョンオプション
            if arg in ("-v", "--version"):
                options["version"] = True
                i += 1
                continue

            if arg == "--verbose":
                options["verbose"] = True
                i += 1
                continue

            if arg == "--no-browser":
                options["no_browser"] = True
                i += 1
                continue

            # フォーマットオプション
            if arg == "--format":
                if i + 1 < len(argv):
                    format_value = argv[i + 1].lower()
                    if format_value == "json":
                        output_format = OutputFormat.JSON
                    elif format_value == "markdown":
                        output_format = OutputFormat.MARKDOWN
                    i += 2
                    continue
                else:
                    i += 1
                    continue

            # 値を取るオプション
            if arg in ("--role", "--callback-url", "--config"):
                key = arg[2:].replace("-", "_")
                if i + 1 < len(argv) and not argv[i + 1].startswith("-"):
                    options[key] = argv[i + 1]
                    i += 2
                    continue
                options[key] = None
                i += 1
                continue

            # コマンドまたは引数
            if not command and not arg.startswith("-"):
                command = arg
            else:
                if not arg.startswith("-"):
                    args.append(arg)

            i += 1

        return ParsedCommand(
            command=command,
            args=args,
            options=options,
            output_format=output_format,
        )

    def validate(self, parsed: ParsedCommand) -> ValidationResult:
        """解析結果の妥当性を検証

        Args:
            parsed: 解析済みコマンド

        Returns:
            ValidationResult: バリデーション結果
        """
        errors: List[str] = []

        # ヘルプ・バージョンオプションは常に有効
        if parsed.options.get("help") or parsed.options.get("version"):
            return ValidationResult(is_valid=True, errors=[])

        # コマンドが空の場合
        if not parsed.command:
            errors.append("Command is required. Use --help for usage information.")
            return ValidationResult(is_valid=False, errors=errors)

        # 不明なコマンドの場合
        if parsed.command not in VALID_COMMANDS:
            errors.append(
                f"Unknown command: '{parsed.command}'. "
                f"Available commands: {', '.join(sorted(VALID_COMMANDS))}"
            )
            return ValidationResult(is_valid=False, errors=errors)

        if parsed.command in PROVIDER_COMMANDS:
            if not parsed.args:
                errors.append(f"Usage: weddy {parsed.command} <kakao|naver> [--role CUSTOMER|OWNER]")
            else:
                try:
                    SocialProvider.parse(parsed.args[0])
                except ValueError:
                    errors.append(f"Unknown provider: '{parsed.args[0]}'. Available providers: kakao, naver")

        if "role" in parsed.options:
            role = parsed.options.get("role")
            valid_roles = [r.value for r in Role]
            if not role or role.upper() not in valid_roles:
                errors.append(f"--role must be one of: {', '.join(valid_roles)}")

        for key in ("callback_url", "config"):
            if key in parsed.options and not parsed.options.get(key):
                errors.append(f"--{key.replace('_', '-')} requires a value")

        return ValidationResult(is_valid=not errors, errors=errors)
