"""出力フォーマット"""

from weddy.output.formatter import OutputFormat, OutputFormatter

__all__ = ["OutputFormat", "OutputFormatter"]
