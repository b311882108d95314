"""
OutputFormatter — 評価結果の表示整形

各行の評価結果を表示用文字列に変換する。

  - 例外: メッセージのみ
  - {"description": ...} を持つ結果: 成功記号付きの引用符なし文字列
  - それ以外: ホストの既定レンダラへ委譲

色付けの設定は FormattingContext が保持し、override() のスコープ内でのみ変更される。
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping, Optional

from rich.console import Console
from rich.text import Text

logger = logging.getLogger(__name__)

PASS_SYMBOL = "✔ "
FAIL_SYMBOL = "✘ "


@dataclass
class FormattingContext:
    """表示整形に使用するコンソールと文字列スタイル。

    Attributes:
        console: 出力先の rich Console
        string_style: 文字列のレンダリングスタイル
    """

    console: Console
    string_style: str = "green"

    @contextlib.contextmanager
    def override(self, string_style: str) -> Iterator[FormattingContext]:
        """スコープ内だけ文字列スタイルを差し替える。

        スコープを抜ける際は例外の有無に関わらず元のスタイルに戻す。
        """
        previous = self.string_style
        self.string_style = string_style
        try:
            yield self
        finally:
            self.string_style = previous

    def render_string(self, value: str, style: Optional[str] = None) -> str:
        """文字列を引用符なしで現在のスタイルでレンダリングする。

        Args:
            value: レンダリング対象の文字列
            style: スタイル（省略時は string_style）

        Returns:
            端末向けにレンダリングされた文字列（色無効時はプレーン文字列）
        """
        with self.console.capture() as capture:
            self.console.print(
                Text(value, style=style or self.string_style),
                end="",
                soft_wrap=True,
            )
        return capture.get()


class OutputFormatter:
    """ホストの出力ライターを置き換える整形関数。

    使用例::

        host.writer = OutputFormatter(formatting, host.writer)
    """

    def __init__(
        self,
        formatting: FormattingContext,
        default_writer: Callable[[Any], Optional[str]],
    ) -> None:
        self._formatting = formatting
        self._default_writer = default_writer

    def __call__(self, output: Any) -> Optional[str]:
        if isinstance(output, BaseException):
            return str(output)

        if isinstance(output, Mapping) and isinstance(output.get("description"), str):
            return self._formatting.render_string(PASS_SYMBOL + output["description"])

        return self._default_writer(output)
