"""
テスト共通フィクスチャ・Hypothesis ストラテジー定義

全テストモジュールで共有するフィクスチャとデータ生成器を提供する。
実際のブラウザは起動せず、エンジンとプラグインは ExportTable ベースの
フェイク実装で代替する。
"""

from __future__ import annotations

import contextlib
import io
from dataclasses import dataclass
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from hypothesis import strategies as st
from rich.console import Console

from brepl.config import ShellConfig
from brepl.engine.exports import ExportTable, FunctionKind
from brepl.plugins import PluginDescriptor
from brepl.shell.formatter import FormattingContext
from brepl.shell.state import ShellState


# ---------------------------------------------------------------------------
# フェイクのエンジン / プラグイン
# ---------------------------------------------------------------------------

@dataclass
class FakeSelector:
    """exists() を持つセレクタのフェイク。"""

    kind: str
    value: str
    present: bool = True

    def __repr__(self) -> str:
        return f'{self.kind}("{self.value}")'

    async def exists(self) -> bool:
        return self.present


def make_fake_engine() -> SimpleNamespace:
    """エンジンと同じ構造（EXPORTS / load_plugin / is_browser_open 等）のフェイク。

    goto("unreachable") は ConnectionError を送出する。
    text("missing") は存在しない要素のセレクタを返す。
    """
    exports = ExportTable()
    engine = SimpleNamespace(
        EXPORTS=exports,
        opened_with=[],
        handlers={},
        browser_open=False,
        keep_open=False,
        close_calls=0,
    )

    @exports.register(FunctionKind.ASYNC, category="Browser actions")
    async def open_browser(options=None):
        engine.opened_with.append(dict(options or {}))
        engine.browser_open = True
        return {"description": "Browser opened"}

    @exports.register(FunctionKind.ASYNC, category="Browser actions")
    async def close_browser():
        engine.close_calls += 1
        if engine.keep_open:
            return {"description": "Browser kept open"}
        engine.browser_open = False
        return {"description": "Browser closed"}

    @exports.register(FunctionKind.ASYNC, category="Browser actions")
    async def goto(url, options=None):
        if url == "unreachable":
            raise ConnectionError("net::ERR_NAME_NOT_RESOLVED")
        return {"description": f"Navigated to URL {url}"}

    @exports.register(FunctionKind.ASYNC, category="Page actions")
    async def click(target):
        return {"description": f"Clicked element matching {target!r}"}

    @exports.register(FunctionKind.ASYNC, category="Page actions")
    async def write(text, into=None):
        return {"description": f"Wrote {text} into {into!r}"}

    @exports.register(FunctionKind.ASYNC, category="Page info")
    async def title():
        return "Example Domain"

    @exports.register(FunctionKind.SYNC, category="Selectors")
    def text(value):
        return FakeSelector("text", value, present=value != "missing")

    @exports.register(FunctionKind.SYNC, category="Plugins")
    def load_plugin(plugin_id, client_handler):
        engine.handlers[plugin_id] = client_handler

    @contextlib.contextmanager
    def keep_browser_open():
        engine.keep_open = True
        try:
            yield
        finally:
            engine.keep_open = False

    engine.load_plugin = load_plugin
    engine.close_browser = close_browser
    engine.is_browser_open = lambda: engine.browser_open
    engine.keep_browser_open = keep_browser_open
    return engine


def make_fake_plugin() -> PluginDescriptor:
    """画面録画プラグインを模したフェイク。"""
    exports = ExportTable()

    @exports.register(FunctionKind.ASYNC, category="Screencast")
    async def start_screencast(path="video.webm"):
        return {"description": f"Screencast started: {path}"}

    @exports.register(FunctionKind.ASYNC, category="Screencast")
    async def stop_screencast():
        return {"description": "Screencast stopped"}

    @exports.register(FunctionKind.SYNC, category="Screencast")
    def frame_count():
        return 0

    return PluginDescriptor(
        id="screencast",
        module="brepl_screencast",
        exports=exports,
        client_handler=MagicMock(name="client_handler"),
    )


# ---------------------------------------------------------------------------
# pytest フィクスチャ
# ---------------------------------------------------------------------------

@pytest.fixture
def console() -> Console:
    """色なし・折り返しなしで StringIO に出力するコンソール。

    出力内容は console.file.getvalue() で取得する。
    """
    return Console(
        file=io.StringIO(),
        color_system=None,
        no_color=True,
        highlight=False,
        width=200,
    )


@pytest.fixture
def formatting(console: Console) -> FormattingContext:
    """テスト用コンソールを使う FormattingContext。"""
    return FormattingContext(console)


@pytest.fixture
def fake_engine() -> SimpleNamespace:
    """フェイクのエンジン。"""
    return make_fake_engine()


@pytest.fixture
def fake_plugin() -> PluginDescriptor:
    """フェイクのプラグイン。"""
    return make_fake_plugin()


@pytest.fixture
def state(fake_plugin: PluginDescriptor) -> ShellState:
    """フェイクプラグインを読み込み済みの ShellState。"""
    return ShellState(plugins=[fake_plugin])


@pytest.fixture
def shell_config() -> ShellConfig:
    """同梱の api.json を使うデフォルト設定。"""
    return ShellConfig()


@pytest.fixture
def shell(fake_engine, fake_plugin, console, shell_config):
    """フェイクエンジンで組み立てたシェル。テスト終了時にホストを閉じる。"""
    from brepl.shell.repl import initialize

    built = initialize(
        [fake_plugin],
        config=shell_config,
        engine=fake_engine,
        console=console,
    )
    yield built
    built.host.close()


# ---------------------------------------------------------------------------
# Hypothesis ストラテジー
# ---------------------------------------------------------------------------

def make_url_strategy():
    """goto() に渡す URL を生成する Hypothesis ストラテジー。

    "unreachable" は失敗する URL として別途扱うため生成しない。
    """
    return st.from_regex(r"https?://[a-z]{1,10}\.(com|org|dev)(/[a-z]{0,8})?", fullmatch=True)


def make_line_strategy():
    """シェルに入力する 1 行を生成する Hypothesis ストラテジー。

    成功する行と失敗する行（goto("unreachable") / 未定義名）を混在させる。
    """
    return st.one_of(
        make_url_strategy().map(lambda url: f'goto("{url}")'),
        st.sampled_from([
            'click("Sign in")',
            'title()',
            'text("Welcome")',
            'x = 1',
            'goto("unreachable")',
            'undefined_name',
        ]),
    )
