"""
シェルの組み立て — ホスト・インターセプタ・記録・整形・コマンドの接続

initialize() は以下の順で構成する:
  1. バージョン情報・API ドキュメントの読み込み（失敗しても継続）
  2. ReplHost の生成と出力ライターの差し替え
  3. 評価フック（CommandRecorder）の登録
  4. エンジン / プラグイン関数のラップと名前空間への配置
  5. セッションコマンド・reset / exit リスナーの登録
"""

from __future__ import annotations

import inspect
import logging
import runpy
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any, Iterable, Optional

from rich.console import Console

from ..config import ShellConfig
from ..plugins import PluginDescriptor
from .codegen import CodeGenerator
from .commands import SessionCommands
from .docs import VersionInfo, load_api_document, load_version_info
from .formatter import FormattingContext, OutputFormatter
from .host import ReplHost
from .interceptor import FunctionInterceptor
from .recorder import CommandRecorder
from .state import ShellState

logger = logging.getLogger(__name__)


@dataclass
class Shell:
    """組み立て済みのシェル。"""

    host: ReplHost
    state: ShellState
    commands: SessionCommands
    generator: CodeGenerator
    engine: Any
    versions: VersionInfo

    def banner(self) -> str:
        return (
            f"\nVersion: {self.versions.version} "
            f"(Playwright: {self.versions.browser_version})\n"
            "Type .api for help and .exit to quit\n"
        )

    def run(self) -> None:
        self.host.run(self.banner())


def _default_engine() -> ModuleType:
    from .. import engine

    return engine


def initialize(
    plugins: Iterable[PluginDescriptor] = (),
    previous_session_file: Optional[Path] = None,
    *,
    config: Optional[ShellConfig] = None,
    engine: Any = None,
    console: Optional[Console] = None,
) -> Shell:
    """対話シェルを組み立てる。

    Args:
        plugins: 読み込み済みプラグイン
        previous_session_file: 前回セッションのファイル（`.code` の案内表示に使用）
        config: シェル設定（None でデフォルト）
        engine: EXPORTS / load_plugin / is_browser_open / close_browser を持つエンジン
        console: 出力先コンソール

    Returns:
        組み立て済みの Shell
    """
    config = config or ShellConfig()
    engine = engine or _default_engine()
    console = console or Console(no_color=config.no_color, highlight=False)
    plugins = list(plugins)

    versions = load_version_info()
    doc = load_api_document(config.doc_path)

    formatting = FormattingContext(console)
    state = ShellState(plugins=plugins)

    host = ReplHost(prompt=config.prompt, console=console)
    host.writer = OutputFormatter(formatting, host.writer)
    host.add_eval_hook(CommandRecorder(state.transcript))

    interceptor = FunctionInterceptor(state, formatting)
    host.locals.update(interceptor.install(engine.EXPORTS, plugins))

    for plugin in plugins:
        if plugin.client_handler is not None:
            engine.load_plugin(plugin.id, plugin.client_handler)

    generator = CodeGenerator(state)
    commands = SessionCommands(
        state,
        formatting,
        engine.EXPORTS,
        versions=versions,
        doc=doc,
        previous_session_file=previous_session_file,
        generator=generator,
    )
    commands.register(host)

    def close_browser_on_exit() -> None:
        if not engine.is_browser_open():
            return
        try:
            host.loop.run_until_complete(engine.close_browser())
        except Exception:
            logger.exception("終了時のブラウザクローズに失敗しました")

    host.on("reset", state.reset)
    host.on("exit", close_browser_on_exit)

    logger.info("シェルを初期化しました（プラグイン: %d）", len(plugins))
    return Shell(
        host=host,
        state=state,
        commands=commands,
        generator=generator,
        engine=engine,
        versions=versions,
    )


def replay_session_file(shell: Shell, path: Path) -> None:
    """生成済みスクリプトの main() をシェルのイベントループで実行する。

    スクリプト内の close_browser() は無効化され、ブラウザは開いたまま残る。

    Raises:
        ValueError: スクリプトに async def main() が定義されていない場合
    """
    namespace = runpy.run_path(str(path), run_name="__brepl_load__")
    main = namespace.get("main")
    if main is None or not inspect.iscoroutinefunction(main):
        raise ValueError(f"{path} に async def main() が定義されていません")

    logger.info("前回セッションを再生します: %s", path)
    with shell.engine.keep_browser_open():
        shell.host.loop.run_until_complete(main())
