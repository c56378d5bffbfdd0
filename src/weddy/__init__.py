"""weddy - ソーシャルログインとセッションライフサイクルのクライアント"""

__version__ = "0.1.0"
