"""
自動化 API テスト — エンジン関数の単体テスト

エンジンが保持するブラウザセッションの Page をモックに差し替え、
各関数が呼び出す Playwright API と返す説明付き結果を検証する。
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from brepl.engine import api
from brepl.engine.selectors import ElementSelector
from brepl.engine.session import SessionState


@pytest.fixture
def page():
    """アクティブなセッションに紐付けた Page のモック。"""
    mock_page = MagicMock()
    mock_page.goto = AsyncMock()
    mock_page.reload = AsyncMock()
    mock_page.go_back = AsyncMock()
    mock_page.go_forward = AsyncMock()
    mock_page.title = AsyncMock(return_value="Example Domain")
    mock_page.evaluate = AsyncMock(return_value=2)
    mock_page.screenshot = AsyncMock()
    mock_page.wait_for_timeout = AsyncMock()
    mock_page.keyboard.type = AsyncMock()
    mock_page.keyboard.press = AsyncMock()
    mock_page.url = "http://example.com/"

    session = api.get_session()
    previous = (session._state, session._page)
    session._state = SessionState.ACTIVE
    session._page = mock_page
    yield mock_page
    session._state, session._page = previous


# ---------------------------------------------------------------------------
# ブラウザ操作
# ---------------------------------------------------------------------------

class TestBrowserActions:
    """ブラウザ操作関数のテスト。"""

    @pytest.mark.asyncio
    async def test_goto_adds_scheme(self, page):
        """スキームが無い URL には http:// が補われること。"""
        result = await api.goto("example.com")
        page.goto.assert_awaited_once_with("http://example.com")
        assert result == {"description": "Navigated to URL http://example.com"}

    @pytest.mark.asyncio
    async def test_goto_keeps_scheme_and_options(self, page):
        """スキーム付きの URL とオプションはそのまま渡されること。"""
        await api.goto("https://example.com", {"timeout": 5000})
        page.goto.assert_awaited_once_with("https://example.com", timeout=5000)

    @pytest.mark.asyncio
    async def test_goto_without_browser(self):
        """ブラウザ未起動の場合は RuntimeError になること。"""
        with pytest.raises(RuntimeError):
            await api.goto("example.com")

    @pytest.mark.asyncio
    async def test_history_navigation(self, page):
        """reload / go_back / go_forward が Page に委譲されること。"""
        assert await api.reload() == {"description": "http://example.com/ reloaded"}
        await api.go_back()
        await api.go_forward()
        page.reload.assert_awaited_once()
        page.go_back.assert_awaited_once()
        page.go_forward.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_open_browser_options(self):
        """open_browser のオプションが launch() に変換されること。"""
        session = api.get_session()
        with patch.object(session, "launch", new=AsyncMock()) as launch:
            result = await api.open_browser({
                "headless": False,
                "viewport": {"width": 1920, "height": 1080},
                "slow_mo": 50,
            })
        launch.assert_awaited_once_with(
            headless=False,
            viewport_width=1920,
            viewport_height=1080,
            channel=None,
            slow_mo=50,
        )
        assert result == {"description": "Browser opened"}

    @pytest.mark.asyncio
    async def test_open_browser_defaults_to_headless(self):
        """生成スクリプトからの open_browser() は headless で起動すること。"""
        session = api.get_session()
        with patch.object(session, "launch", new=AsyncMock()) as launch:
            await api.open_browser()
        assert launch.await_args.kwargs["headless"] is True

    @pytest.mark.asyncio
    async def test_close_browser_is_skipped_while_kept_open(self):
        """keep_browser_open() の中では close_browser() が何もしないこと。"""
        session = api.get_session()
        with patch.object(session, "close", new=AsyncMock()) as close:
            with api.keep_browser_open():
                assert await api.close_browser() == {"description": "Browser kept open"}
            close.assert_not_awaited()
            assert await api.close_browser() == {"description": "Browser closed"}
            close.assert_awaited_once()


# ---------------------------------------------------------------------------
# ページ操作・ページ情報
# ---------------------------------------------------------------------------

class TestPageActions:
    """ページ操作関数のテスト。"""

    @pytest.mark.asyncio
    async def test_click_text(self, page):
        """文字列はテキストセレクタとしてクリックされること。"""
        page.get_by_text.return_value.first.click = AsyncMock()
        result = await api.click("Sign in")
        page.get_by_text.assert_called_once_with("Sign in")
        assert result == {"description": 'Clicked element matching text("Sign in")'}

    @pytest.mark.asyncio
    async def test_click_selector(self, page):
        """セレクタ指定ではその Locator がクリックされること。"""
        page.get_by_role.return_value.first.click = AsyncMock()
        await api.click(api.button("Submit"))
        page.get_by_role.assert_called_once_with("button", name="Submit")
        page.get_by_role.return_value.first.click.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_write_into_focused_element(self, page):
        """into 省略時はキーボード入力になること。"""
        await api.write("admin")
        page.keyboard.type.assert_awaited_once_with("admin")

    @pytest.mark.asyncio
    async def test_write_into_text_box(self, page):
        """into 指定時はその要素に fill されること。"""
        page.get_by_role.return_value.first.fill = AsyncMock()
        result = await api.write("admin", into=api.text_box("Username"))
        page.get_by_role.return_value.first.fill.assert_awaited_once_with("admin")
        assert result == {"description": 'Wrote admin into text_box("Username")'}

    @pytest.mark.asyncio
    async def test_press(self, page):
        """キー押下が Page に委譲されること。"""
        assert await api.press("Enter") == {"description": "Pressed the Enter key"}
        page.keyboard.press.assert_awaited_once_with("Enter")

    @pytest.mark.asyncio
    async def test_wait_for_milliseconds(self, page):
        """数値はミリ秒の待機になること。"""
        await api.wait_for(500)
        page.wait_for_timeout.assert_awaited_once_with(500)

    @pytest.mark.asyncio
    async def test_screenshot_path(self, page):
        """指定パスにスクリーンショットが保存されること。"""
        result = await api.screenshot("shots/home.png")
        page.screenshot.assert_awaited_once_with(path="shots/home.png")
        assert result == {"description": "Screenshot is created at shots/home.png"}

    @pytest.mark.asyncio
    async def test_page_info(self, page):
        """title / current_url / evaluate が値を返すこと。"""
        assert await api.title() == "Example Domain"
        assert await api.current_url() == "http://example.com/"
        assert await api.evaluate("1 + 1") == 2


# ---------------------------------------------------------------------------
# セレクタ・プラグイン
# ---------------------------------------------------------------------------

class TestSelectorsAndPlugins:
    """セレクタ関数と load_plugin のテスト。"""

    def test_selector_functions(self):
        """セレクタ関数がエンジンのセッション付き ElementSelector を返すこと。"""
        selector = api.link("Docs")
        assert isinstance(selector, ElementSelector)
        assert (selector.kind, selector.value) == ("link", "Docs")
        assert selector._session is api.get_session()
        assert repr(api.css("#submit")) == 'css("#submit")'

    def test_load_plugin_registers_handler(self):
        """load_plugin がクライアントハンドラをセッションに登録すること。"""
        session = api.get_session()
        handler = MagicMock()
        with patch.object(session, "register_client_handler") as register:
            api.load_plugin("screencast", handler)
        register.assert_called_once_with("screencast", handler)

    def test_is_browser_open(self, page):
        """セッションがアクティブなら True を返すこと。"""
        assert api.is_browser_open() is True
