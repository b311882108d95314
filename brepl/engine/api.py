"""
自動化 API — シェルから呼び出す Playwright 操作関数

各関数は EXPORTS テーブルに同期 / 非同期の種別付きで登録される。
生成スクリプトは ``from brepl.engine import goto, ...`` の形でこれらを直接使用する。

主な機能:
  - ブラウザ操作: open_browser, close_browser, goto, reload, go_back, go_forward
  - ページ操作: click, write, press, wait_for, screenshot, evaluate
  - ページ情報: title, current_url
  - セレクタ: text, button, link, text_box, css
  - プラグイン: load_plugin
"""

from __future__ import annotations

import contextlib
import logging
import re
import time
from typing import Any, Iterator, Optional, Union

from .exports import ExportTable, FunctionKind
from .selectors import ElementSelector
from .session import BrowserSession, ClientHandler

logger = logging.getLogger(__name__)

EXPORTS = ExportTable()

_session = BrowserSession()

# close_browser を無効化するフラグ（--load によるセッション再生時に使用）
_keep_open = False

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")

Target = Union[str, ElementSelector]


def get_session() -> BrowserSession:
    """エンジンが保持するブラウザセッションを返す。"""
    return _session


def is_browser_open() -> bool:
    """ブラウザセッションが開いているかどうかを返す。"""
    return _session.is_active


@contextlib.contextmanager
def keep_browser_open() -> Iterator[None]:
    """ブロック内の close_browser() 呼び出しを無効化する。"""
    global _keep_open
    previous = _keep_open
    _keep_open = True
    try:
        yield
    finally:
        _keep_open = previous


def _to_selector(target: Target) -> ElementSelector:
    """文字列または ElementSelector を ElementSelector に正規化する。"""
    if isinstance(target, ElementSelector):
        return target
    return ElementSelector("text", str(target), _session)


def _first(target: Target) -> Any:
    """操作対象の先頭要素の Locator を返す。"""
    page = _session.require_page()
    return _to_selector(target).locator(page).first


# ---------------------------------------------------------------------------
# ブラウザ操作
# ---------------------------------------------------------------------------

@EXPORTS.register(FunctionKind.ASYNC, category="Browser actions")
async def open_browser(options: Optional[dict] = None) -> dict:
    """ブラウザを起動する。

    Args:
        options: headless, viewport（{"width", "height"}）, channel, slow_mo
    """
    options = dict(options or {})
    viewport = options.get("viewport") or {}
    await _session.launch(
        headless=bool(options.get("headless", True)),
        viewport_width=int(viewport.get("width", 1280)),
        viewport_height=int(viewport.get("height", 720)),
        channel=options.get("channel"),
        slow_mo=int(options.get("slow_mo", 0)),
    )
    return {"description": "Browser opened"}


@EXPORTS.register(FunctionKind.ASYNC, category="Browser actions")
async def close_browser() -> dict:
    """ブラウザを終了する。"""
    if _keep_open:
        logger.info("close_browser() をスキップしました（セッション保持中）")
        return {"description": "Browser kept open"}
    await _session.close()
    return {"description": "Browser closed"}


@EXPORTS.register(FunctionKind.ASYNC, category="Browser actions")
async def goto(url: str, options: Optional[dict] = None) -> dict:
    """URL に遷移する。スキームが無い場合は http:// を補う。"""
    if not _SCHEME_RE.match(url):
        url = f"http://{url}"
    page = _session.require_page()
    await page.goto(url, **(options or {}))
    return {"description": f"Navigated to URL {url}"}


@EXPORTS.register(FunctionKind.ASYNC, category="Browser actions")
async def reload() -> dict:
    """現在のページを再読み込みする。"""
    page = _session.require_page()
    await page.reload()
    return {"description": f"{page.url} reloaded"}


@EXPORTS.register(FunctionKind.ASYNC, category="Browser actions")
async def go_back() -> dict:
    """前のページに戻る。"""
    page = _session.require_page()
    await page.go_back()
    return {"description": "Performed clicking on browser back button"}


@EXPORTS.register(FunctionKind.ASYNC, category="Browser actions")
async def go_forward() -> dict:
    """次のページに進む。"""
    page = _session.require_page()
    await page.go_forward()
    return {"description": "Performed clicking on browser forward button"}


# ---------------------------------------------------------------------------
# ページ操作
# ---------------------------------------------------------------------------

@EXPORTS.register(FunctionKind.ASYNC, category="Page actions")
async def click(target: Target) -> dict:
    """要素をクリックする。文字列はテキストセレクタとして扱う。"""
    await _first(target).click()
    return {"description": f"Clicked element matching {_to_selector(target)!r}"}


@EXPORTS.register(FunctionKind.ASYNC, category="Page actions")
async def write(text: str, into: Optional[Target] = None) -> dict:
    """テキストを入力する。into 省略時はフォーカス中の要素に入力する。"""
    if into is None:
        page = _session.require_page()
        await page.keyboard.type(text)
        return {"description": f"Wrote {text} into the focused element."}
    await _first(into).fill(text)
    return {"description": f"Wrote {text} into {_to_selector(into)!r}"}


@EXPORTS.register(FunctionKind.ASYNC, category="Page actions")
async def press(key: str) -> dict:
    """キーを押下する（例: "Enter", "Control+A"）。"""
    page = _session.require_page()
    await page.keyboard.press(key)
    return {"description": f"Pressed the {key} key"}


@EXPORTS.register(FunctionKind.ASYNC, category="Page actions")
async def wait_for(target: Union[int, float, Target]) -> dict:
    """ミリ秒数だけ待機する、または要素の出現を待機する。"""
    page = _session.require_page()
    if isinstance(target, (int, float)):
        await page.wait_for_timeout(target)
        return {"description": f"Waited for {target}ms"}
    await _first(target).wait_for()
    return {"description": f"Waited for {_to_selector(target)!r}"}


@EXPORTS.register(FunctionKind.ASYNC, category="Page actions")
async def screenshot(path: Optional[str] = None) -> dict:
    """スクリーンショットを保存する。"""
    page = _session.require_page()
    if path is None:
        path = f"Screenshot-{int(time.time() * 1000)}.png"
    await page.screenshot(path=path)
    return {"description": f"Screenshot is created at {path}"}


@EXPORTS.register(FunctionKind.ASYNC, category="Page actions")
async def evaluate(expression: str) -> Any:
    """ページ上で JavaScript 式を評価し、結果を返す。"""
    page = _session.require_page()
    return await page.evaluate(expression)


# ---------------------------------------------------------------------------
# ページ情報
# ---------------------------------------------------------------------------

@EXPORTS.register(FunctionKind.ASYNC, category="Page info")
async def title() -> str:
    """ページタイトルを返す。"""
    page = _session.require_page()
    return await page.title()


@EXPORTS.register(FunctionKind.ASYNC, category="Page info")
async def current_url() -> str:
    """現在の URL を返す。"""
    page = _session.require_page()
    return page.url


# ---------------------------------------------------------------------------
# セレクタ
# ---------------------------------------------------------------------------

@EXPORTS.register(FunctionKind.SYNC, category="Selectors")
def text(value: str) -> ElementSelector:
    """テキスト内容で要素を指定する。"""
    return ElementSelector("text", value, _session)


@EXPORTS.register(FunctionKind.SYNC, category="Selectors")
def button(label: str) -> ElementSelector:
    """ボタンをアクセシブルネームで指定する。"""
    return ElementSelector("button", label, _session)


@EXPORTS.register(FunctionKind.SYNC, category="Selectors")
def link(label: str) -> ElementSelector:
    """リンクをアクセシブルネームで指定する。"""
    return ElementSelector("link", label, _session)


@EXPORTS.register(FunctionKind.SYNC, category="Selectors")
def text_box(label: str) -> ElementSelector:
    """テキストボックスをアクセシブルネームで指定する。"""
    return ElementSelector("text_box", label, _session)


@EXPORTS.register(FunctionKind.SYNC, category="Selectors")
def css(selector: str) -> ElementSelector:
    """CSS セレクタで要素を指定する。"""
    return ElementSelector("css", selector, _session)


# ---------------------------------------------------------------------------
# プラグイン
# ---------------------------------------------------------------------------

@EXPORTS.register(FunctionKind.SYNC, category="Plugins")
def load_plugin(plugin_id: str, client_handler: ClientHandler) -> None:
    """プラグインのクライアントハンドラをセッションに登録する。"""
    _session.register_client_handler(plugin_id, client_handler)
