"""
シェルの例外定義
"""

from __future__ import annotations

from typing import Optional


class InvocationError(Exception):
    """自動化関数の呼び出し失敗を短縮メッセージで表す例外。

    元の例外のトレースは ShellState.last_error_trace に保存され、
    `.trace` コマンドで確認できる。

    Attributes:
        original: 元の例外
    """

    def __init__(self, message: str, original: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.original = original
