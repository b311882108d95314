"""
ElementSelector — 要素セレクタと Playwright Locator への変換

text() / button() / link() 等の同期関数が返すセレクタオブジェクトと、
種別ごとの Playwright Locator への変換を提供する。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:
    from .session import BrowserSession

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ElementSelector
# ---------------------------------------------------------------------------

# セレクタ関数名 → Playwright Locator の構築
_KIND_TO_LOCATOR: dict[str, Callable[[Any, str], Any]] = {
    "text": lambda page, value: page.get_by_text(value),
    "button": lambda page, value: page.get_by_role("button", name=value),
    "link": lambda page, value: page.get_by_role("link", name=value),
    "text_box": lambda page, value: page.get_by_role("textbox", name=value),
    "css": lambda page, value: page.locator(value),
}


@dataclass
class ElementSelector:
    """ページ上の要素を指すセレクタ。

    生成時点ではページを参照せず、操作時に Locator へ解決する。

    Attributes:
        kind: セレクタ種別（text, button, link, text_box, css）
        value: 検索値
    """

    kind: str
    value: str
    _session: Optional[BrowserSession] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.kind not in _KIND_TO_LOCATOR:
            raise ValueError(f"未対応のセレクタ種別です: {self.kind}")

    def __repr__(self) -> str:
        return f'{self.kind}("{self.value}")'

    def locator(self, page: object) -> object:
        """Page 上の Locator に解決する。"""
        return _KIND_TO_LOCATOR[self.kind](page, self.value)

    async def exists(self) -> bool:
        """要素がページ上に 1 件以上存在するかを返す。

        Raises:
            RuntimeError: セッションが紐付いていない、またはブラウザ未起動の場合
        """
        if self._session is None:
            raise RuntimeError("セレクタにブラウザセッションが紐付いていません")
        page = self._session.require_page()
        count = await self.locator(page).count()
        logger.debug("%r の一致件数: %d", self, count)
        return count > 0
