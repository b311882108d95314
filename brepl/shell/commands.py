"""
SessionCommands — `.trace` / `.code` / `.step` / `.version` / `.api` コマンド

記録状態とコード生成をユーザーに公開するシェルコマンドを提供する。
ファイル出力は既存ファイルなら追記、無ければ親ディレクトリごと作成して書き込む。
書き込み失敗はメッセージとトレースを表示し、シェルは継続する。
"""

from __future__ import annotations

import logging
import traceback
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Mapping, Optional

from rich.text import Text

from .codegen import CodeGenerator
from .docs import DocEntry, VersionInfo, find_entry, render_usage
from .formatter import FormattingContext
from .state import ShellState

if TYPE_CHECKING:
    from ..engine.exports import ExportedFunction
    from .host import ReplHost

logger = logging.getLogger(__name__)

API_HINT = (
    "Run `.api <name>` for more info on a specific function. "
    "For Example: `.api click`."
)


class SessionCommands:
    """記録セッションを操作するシェルコマンド群。

    Attributes:
        previous_session_file: 起動時に指定された前回セッションのファイル
    """

    def __init__(
        self,
        state: ShellState,
        formatting: FormattingContext,
        exports: Mapping[str, ExportedFunction],
        versions: Optional[VersionInfo] = None,
        doc: Optional[list[DocEntry]] = None,
        previous_session_file: Optional[Path] = None,
        generator: Optional[CodeGenerator] = None,
    ) -> None:
        self._state = state
        self._formatting = formatting
        self._exports = exports
        self._versions = versions or VersionInfo()
        self._doc = doc
        self.previous_session_file = previous_session_file
        self._generator = generator or CodeGenerator(state)

    def _print(self, text: str = "") -> None:
        self._formatting.console.print(Text.from_ansi(text), soft_wrap=True)

    def register(self, host: ReplHost) -> None:
        """ホストにコマンドを登録する。"""
        host.define_command("trace", "Show last error stack trace", self.trace)
        host.define_command(
            "code",
            "Prints or saves the code for all evaluated commands in this session",
            self.code,
        )
        host.define_command(
            "step",
            "Generate gauge steps from recorded script. "
            "(open_browser and close_browser are not recorded as part of step)",
            self.step,
        )
        host.define_command("version", "Prints version info", self.version)
        host.define_command("api", "Prints api info", self.api)

    # -------------------------------------------------------------------
    # .trace
    # -------------------------------------------------------------------

    def trace(self, _: str = "") -> None:
        """直近の失敗トレースを表示する。無ければ None を表示する。"""
        self._print(self._state.last_error_trace or repr(None))

    # -------------------------------------------------------------------
    # .code / .step
    # -------------------------------------------------------------------

    def code(self, file: str = "") -> None:
        """スクリプトを表示、またはファイルに出力する。"""
        if not file:
            self._print(self._generator.generate_script())
            return
        self.write_code(Path(file))

    def step(self, file: str = "") -> None:
        """ステップを表示、またはファイルに出力する。"""
        if not file:
            self._print(self._generator.generate_step())
            return
        self.write_step(Path(file))

    def write_code(self, path: Path) -> bool:
        """スクリプトをファイルに追記 / 新規作成する。

        Returns:
            書き込みに成功した場合 True
        """
        text = self._generator.generate_script()
        if not self._write(path, fresh=lambda: text, append=lambda: text):
            return False

        previous = self.previous_session_file
        if previous is not None:
            self._print(f"Recorded session to {path}.")
            if path.resolve() == Path(previous).resolve():
                self._print(f"Please update contents of {previous} before running it.")
            else:
                self._print(f"The previous session was recorded in {previous}.")
                self._print(
                    f"Please merge contents of {previous} and {path} before running it."
                )
        return True

    def write_step(self, path: Path) -> bool:
        """ステップをファイルに追記 / 新規作成する。新規作成時のみ import 行を付与する。

        Returns:
            書き込みに成功した場合 True
        """
        return self._write(
            path,
            fresh=lambda: self._generator.generate_step(with_imports=True),
            append=lambda: self._generator.generate_step(),
        )

    def _write(
        self,
        path: Path,
        fresh: Callable[[], str],
        append: Callable[[], str],
    ) -> bool:
        try:
            if path.exists():
                text = append()
                with open(path, "a", encoding="utf-8") as f:
                    f.write(text)
                logger.info("ファイルに追記しました: %s", path)
            else:
                text = fresh()
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(text, encoding="utf-8")
                logger.info("ファイルを作成しました: %s", path)
        except OSError as exc:
            logger.debug("ファイル出力に失敗しました: %s", path, exc_info=True)
            self._print(f"Failed to write to {path}.")
            self._print(
                "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            )
            return False
        return True

    # -------------------------------------------------------------------
    # .version / .api
    # -------------------------------------------------------------------

    def version(self, _: str = "") -> None:
        """パッケージとブラウザエンジンのバージョンを表示する。"""
        self._print(f"{self._versions.version} ({self._versions.browser_version})")

    def api(self, name: str = "") -> None:
        """関数一覧、または指定関数の説明と使用例を表示する。"""
        if not self._doc:
            self._print("API usage not available.")
        elif name:
            self._print_usage_for(name)
        else:
            self._print_usage()

    def _print_usage_for(self, name: str) -> None:
        entry = find_entry(self._doc or [], name)
        if entry is None:
            self._print(f"Function {name} doesn't exist.")
            return
        self._print(render_usage(entry))

    def _print_usage(self) -> None:
        grouped: dict[str, list[ExportedFunction]] = {}
        for export in self._exports.values():
            grouped.setdefault(export.category, []).append(export)

        for category, exports in grouped.items():
            self._print()
            self._print(self._formatting.render_string(category))
            for export in exports:
                self._print(f"    {export.name}{export.signature}")
        self._print()
        self._print(API_HINT)
        self._print()
