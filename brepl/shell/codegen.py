"""
CodeGenerator — トランスクリプトからの Python コード生成

記録済みの行と呼び出し済み関数レジストリから、構造化されたノード列
（import ノード・文ノード・ラッパーノード）を構築し、SourcePrinter で
ソースコードに変換する。

出力形式:
  - スクリプト: asyncio で実行できる単体の Python スクリプト
  - ステップ: getgauge 形式の @step("") 非同期関数スタブ

同じトランスクリプト・レジストリからは常にバイト単位で同一の出力を返す。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..engine.exports import FunctionKind
from .interceptor import CLOSE_BROWSER, LOAD_PLUGIN, OPEN_BROWSER
from .state import RecordedCommand, ShellState

logger = logging.getLogger(__name__)

ENGINE_MODULE = "brepl.engine"
STEP_MODULE = "getgauge.python"
INDENT = "    "


# ---------------------------------------------------------------------------
# 行の判定
# ---------------------------------------------------------------------------

def leading_identifier(line: str) -> str:
    """最初の "(" より前の部分（前後空白除去）を返す。"""
    return line.split("(", 1)[0].strip()


def _strip_await(line: str) -> str:
    if line.startswith("await "):
        return line[len("await "):].lstrip()
    return line


def is_call_to(line: str, name: str) -> bool:
    """行が指定関数の呼び出しかどうかを返す（先頭の await は無視）。"""
    return leading_identifier(_strip_await(line.strip())) == name


# ---------------------------------------------------------------------------
# ノード定義
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ImportNode:
    """``from <module> import <names>`` 文。"""

    module: str
    names: tuple[str, ...]


@dataclass(frozen=True)
class StatementNode:
    """トランスクリプトの 1 行に対応する文。

    Attributes:
        source: 文のソース（複数行を含む場合がある）
        awaited: 先頭に await を付けるかどうか
    """

    source: str
    awaited: bool = False

    def lines(self) -> list[str]:
        text = f"await {self.source}" if self.awaited else self.source
        return text.splitlines() or [""]


@dataclass(frozen=True)
class PluginRegistrationNode:
    """プラグインの import と load_plugin(ID, client_handler) 呼び出し。"""

    import_node: ImportNode
    has_client_handler: bool = True


@dataclass
class ScriptModule:
    """スクリプト出力の構造。"""

    engine_import: ImportNode
    plugins: list[PluginRegistrationNode] = field(default_factory=list)
    body: list[StatementNode] = field(default_factory=list)


@dataclass
class StepModule:
    """ステップ出力の構造。imports が None の場合は import 行を出力しない。"""

    body: list[StatementNode] = field(default_factory=list)
    imports: Optional[list[ImportNode]] = None


# ---------------------------------------------------------------------------
# SourcePrinter
# ---------------------------------------------------------------------------

class SourcePrinter:
    """ノード構造を Python ソースコードに変換するプリンタ。"""

    def print_import(self, node: ImportNode) -> str:
        return f"from {node.module} import {', '.join(node.names)}"

    def print_body(self, body: list[StatementNode], depth: int) -> list[str]:
        prefix = INDENT * depth
        if not body:
            return [f"{prefix}pass"]
        lines: list[str] = []
        for statement in body:
            lines.extend(f"{prefix}{line}" if line else "" for line in statement.lines())
        return lines

    def print_script(self, module: ScriptModule) -> str:
        lines = ["import asyncio", "", self.print_import(module.engine_import)]
        for plugin in module.plugins:
            lines.append(self.print_import(plugin.import_node))
            if plugin.has_client_handler:
                lines.append(f"{LOAD_PLUGIN}(ID, client_handler)")
        lines += ["", "", "async def main():", f"{INDENT}try:"]
        lines += self.print_body(module.body, depth=2)
        lines += [
            f"{INDENT}except Exception as exc:",
            f"{INDENT * 2}print(exc)",
            f"{INDENT}finally:",
            f"{INDENT * 2}await {CLOSE_BROWSER}()",
            "",
            "",
            'if __name__ == "__main__":',
            f"{INDENT}asyncio.run(main())",
        ]
        return "\n".join(lines) + "\n"

    def print_step(self, module: StepModule) -> str:
        header = ""
        if module.imports is not None:
            header = "".join(self.print_import(node) + "\n" for node in module.imports)
        if not module.body:
            return header
        lines = [
            "",
            "# Insert step text below as first parameter",
            '@step("")',
            "async def step_implementation():",
        ]
        lines += self.print_body(module.body, depth=1)
        return header + "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# CodeGenerator 本体
# ---------------------------------------------------------------------------

class CodeGenerator:
    """ShellState からスクリプト / ステップを生成する。

    使用例::

        generator = CodeGenerator(state)
        print(generator.generate_script())
        print(generator.generate_step(with_imports=True))
    """

    def __init__(self, state: ShellState, printer: Optional[SourcePrinter] = None) -> None:
        self._state = state
        self._printer = printer or SourcePrinter()

    def to_statement(self, command: RecordedCommand) -> StatementNode:
        """記録済みの 1 行を文ノードに変換する。

        末尾の ";" は除去する。既知の自動化関数の呼び出しで、非同期関数
        またはホストが結果を待機した行には await を付与する。
        """
        source = command.source.rstrip()
        while source.endswith(";"):
            source = source[:-1].rstrip()

        kind = self._state.known_functions.get(leading_identifier(source))
        awaited = (
            kind is not None
            and not source.startswith("await ")
            and (kind is FunctionKind.ASYNC or command.awaited)
        )
        return StatementNode(source=source, awaited=awaited)

    def build_script(self) -> ScriptModule:
        """スクリプト出力のノード構造を構築する。"""
        commands = self._state.transcript.entries
        if commands and is_call_to(commands[-1].source, CLOSE_BROWSER):
            commands = commands[:-1]

        plugins: list[PluginRegistrationNode] = []
        for plugin in self._state.plugins:
            invoked = self._state.plugin_invoked.get(plugin.id)
            if not invoked:
                continue
            has_handler = plugin.client_handler is not None
            header = ("ID", "client_handler") if has_handler else ()
            plugins.append(PluginRegistrationNode(
                ImportNode(plugin.module, (*header, *invoked.names)),
                has_client_handler=has_handler,
            ))

        names = self._state.engine_invoked.names
        if CLOSE_BROWSER not in names:
            names.append(CLOSE_BROWSER)
        if any(plugin.has_client_handler for plugin in plugins) and LOAD_PLUGIN not in names:
            names.append(LOAD_PLUGIN)

        return ScriptModule(
            engine_import=ImportNode(ENGINE_MODULE, tuple(names)),
            plugins=plugins,
            body=[self.to_statement(command) for command in commands],
        )

    def build_step(self, with_imports: bool = False) -> StepModule:
        """ステップ出力のノード構造を構築する。"""
        commands = self._state.transcript.entries
        if commands and is_call_to(commands[0].source, OPEN_BROWSER):
            commands = commands[1:]
        if commands and is_call_to(commands[-1].source, CLOSE_BROWSER):
            commands = commands[:-1]

        imports: Optional[list[ImportNode]] = None
        if with_imports:
            imports = [ImportNode(STEP_MODULE, ("step",))]
            names = [
                name for name in self._state.engine_invoked
                if name not in (OPEN_BROWSER, CLOSE_BROWSER)
            ]
            if names:
                imports.append(ImportNode(ENGINE_MODULE, tuple(names)))

        return StepModule(
            body=[self.to_statement(command) for command in commands],
            imports=imports,
        )

    def generate_script(self) -> str:
        """単体実行可能な Python スクリプトを生成する。"""
        return self._printer.print_script(self.build_script())

    def generate_step(self, with_imports: bool = False) -> str:
        """テストハーネス用のステップスタブを生成する。

        Args:
            with_imports: True で import 行を先頭に付与する（新規ファイル作成時）
        """
        return self._printer.print_step(self.build_step(with_imports=with_imports))
