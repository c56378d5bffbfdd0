"""コマンドラインインターフェース"""

from weddy.cli.main import WeddyCLI
from weddy.cli.parser import ArgumentParser, ParsedCommand, ValidationResult

__all__ = ["ArgumentParser", "ParsedCommand", "ValidationResult", "WeddyCLI"]
