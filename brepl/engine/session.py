"""
Session — ブラウザセッション管理

Playwright ブラウザの起動・終了・状態管理を担当する。
シェルの生存期間中、単一のブラウザインスタンスを保持する。

主な機能:
  - ブラウザの起動（headed/headless 切り替え）
  - Context / Page の生成と管理
  - プラグインのクライアントハンドラ通知
  - リソースの安全なクリーンアップ
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page

logger = logging.getLogger(__name__)

ClientHandler = Callable[["BrowserSession"], Any]


# ---------------------------------------------------------------------------
# セッション状態
# ---------------------------------------------------------------------------

class SessionState(enum.Enum):
    """ブラウザセッションの状態。"""

    IDLE = "idle"
    LAUNCHING = "launching"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


# ---------------------------------------------------------------------------
# BrowserSession 本体
# ---------------------------------------------------------------------------

class BrowserSession:
    """Playwright ブラウザセッションの管理クラス。

    ブラウザの起動から終了までのライフサイクルを管理し、
    Page オブジェクトへのアクセスを提供する。
    """

    def __init__(self) -> None:
        """BrowserSession を初期化する。"""
        self._state: SessionState = SessionState.IDLE
        self._pw_instance: Optional[object] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._client_handlers: dict[str, ClientHandler] = {}

    @property
    def state(self) -> SessionState:
        """現在のセッション状態を返す。"""
        return self._state

    @property
    def is_active(self) -> bool:
        """セッションがアクティブかどうかを返す。"""
        return self._state == SessionState.ACTIVE

    @property
    def page(self) -> Optional[Page]:
        """現在の Page オブジェクトを返す。非アクティブ時は None。"""
        if not self.is_active:
            return None
        return self._page

    def require_page(self) -> Page:
        """現在の Page を返す。ブラウザ未起動ならエラーとする。

        Raises:
            RuntimeError: セッションがアクティブでない場合
        """
        page = self.page
        if page is None:
            raise RuntimeError(
                "ブラウザが起動していません。"
                "先に open_browser() を呼んでください。"
            )
        return page

    def register_client_handler(self, plugin_id: str, handler: ClientHandler) -> None:
        """プラグインのクライアントハンドラを登録する。

        ブラウザ起動済みの場合は即座に呼び出す。

        Args:
            plugin_id: プラグイン ID
            handler: セッションを受け取る呼び出し可能オブジェクト
        """
        self._client_handlers[plugin_id] = handler
        logger.debug("クライアントハンドラを登録しました: %s", plugin_id)
        if self.is_active:
            handler(self)

    async def launch(
        self,
        headless: bool = True,
        viewport_width: int = 1280,
        viewport_height: int = 720,
        channel: Optional[str] = None,
        slow_mo: int = 0,
    ) -> None:
        """ブラウザを起動し、Page を生成する。

        Args:
            headless: True でウィンドウを表示しない
            viewport_width: ビューポート幅
            viewport_height: ビューポート高さ
            channel: ブラウザチャンネル（chrome / msedge 等、None で chromium）
            slow_mo: 各操作間の遅延（ミリ秒）

        Raises:
            RuntimeError: 既にアクティブなセッションがある場合
        """
        if self._state == SessionState.ACTIVE:
            raise RuntimeError(
                "既にアクティブなセッションがあります。"
                "先に close_browser() を呼んでください。"
            )

        self._state = SessionState.LAUNCHING
        logger.info("ブラウザを起動しています... (headless=%s)", headless)

        try:
            from playwright.async_api import async_playwright

            pw = await async_playwright().start()
            self._pw_instance = pw

            launch_kwargs: dict = {"headless": headless, "slow_mo": slow_mo}
            if channel is not None:
                launch_kwargs["channel"] = channel
            self._browser = await pw.chromium.launch(**launch_kwargs)

            self._context = await self._browser.new_context(
                viewport={"width": viewport_width, "height": viewport_height},
            )
            self._page = await self._context.new_page()
            self._state = SessionState.ACTIVE
            logger.info("ブラウザを起動しました")

        except Exception:
            logger.exception("ブラウザの起動に失敗しました")
            await self._stop_playwright()
            self._state = SessionState.IDLE
            raise

        for plugin_id, handler in self._client_handlers.items():
            logger.debug("クライアントハンドラを呼び出します: %s", plugin_id)
            handler(self)

    async def close(self) -> None:
        """ブラウザを終了し、リソースをクリーンアップする。"""
        if self._state in (SessionState.CLOSED, SessionState.CLOSING):
            return

        self._state = SessionState.CLOSING
        logger.info("ブラウザを終了しています...")
        try:
            await self._stop_playwright()
        finally:
            self._state = SessionState.CLOSED
            logger.info("ブラウザを終了しました")

    async def _stop_playwright(self) -> None:
        """ブラウザと Playwright ドライバを停止し、参照を破棄する。"""
        try:
            if self._browser is not None:
                await self._browser.close()
            if self._pw_instance is not None and hasattr(self._pw_instance, "stop"):
                await self._pw_instance.stop()
        except Exception:
            logger.exception("ブラウザの終了中にエラーが発生しました")
        finally:
            self._browser = None
            self._context = None
            self._page = None
            self._pw_instance = None
