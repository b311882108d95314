"""
ReplHost — 対話入力ループと評価

標準ライブラリの code.InteractiveConsole を拡張し、以下を提供する:
  - トップレベル await と、式の結果が awaitable の場合の自動待機
  - "." で始まるシェルコマンドの登録と実行
  - 評価フック（各行の評価後に呼ばれる）
  - reset / exit のライフサイクル通知
  - 差し替え可能な出力ライター

全ての awaitable はホストが保持する単一のイベントループ上で実行する。
"""

from __future__ import annotations

import ast
import asyncio
import code
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from rich.console import Console
from rich.pretty import pretty_repr
from rich.text import Text

try:
    import readline  # noqa: F401  入力行の編集・履歴
except ImportError:  # pragma: no cover - Windows
    pass

logger = logging.getLogger(__name__)

_COMPILE_FLAGS = ast.PyCF_ALLOW_TOP_LEVEL_AWAIT


# ---------------------------------------------------------------------------
# 評価結果・コマンド定義
# ---------------------------------------------------------------------------

@dataclass
class Evaluation:
    """1 行の評価結果。

    Attributes:
        source: 評価したソース
        value: 式の値（文の場合は None）
        error: 評価中に発生した例外
        awaited: 式の値が awaitable で、ホストが待機したかどうか
    """

    source: str
    value: Any = None
    error: Optional[BaseException] = None
    awaited: bool = False

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class ReplCommand:
    """"." で始まるシェルコマンド。"""

    name: str
    help: str
    action: Callable[[str], None]


EvalHook = Callable[[Evaluation], None]


def default_writer(output: Any) -> Optional[str]:
    """既定の値レンダラ。"""
    return pretty_repr(output)


# ---------------------------------------------------------------------------
# ReplHost 本体
# ---------------------------------------------------------------------------

class ReplHost(code.InteractiveConsole):
    """自動化関数を評価する対話ホスト。

    使用例::

        host = ReplHost(prompt="> ")
        host.define_command("hello", "挨拶する", lambda arg: print("hi", arg))
        host.add_eval_hook(lambda evaluation: ...)
        host.on("exit", cleanup)
        host.run()
    """

    def __init__(
        self,
        namespace: Optional[dict[str, Any]] = None,
        prompt: str = "> ",
        console: Optional[Console] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        super().__init__(locals=namespace if namespace is not None else {})
        self.compile.compiler.flags |= _COMPILE_FLAGS
        self.prompt = prompt
        self.console = console or Console(highlight=False)
        self.loop = loop or asyncio.new_event_loop()
        self.writer: Callable[[Any], Optional[str]] = default_writer
        self._commands: dict[str, ReplCommand] = {}
        self._eval_hooks: list[EvalHook] = []
        self._listeners: dict[str, list[Callable[[], None]]] = {"reset": [], "exit": []}
        self._exit_requested = False
        self._closed = False

        self.define_command("help", "Print this help message", self._show_help)
        self.define_command("clear", "Reset the recorded session", lambda _: self.reset())
        self.define_command("exit", "Exit the shell", lambda _: self.request_exit())

    # -------------------------------------------------------------------
    # 登録 API
    # -------------------------------------------------------------------

    def define_command(self, name: str, help: str, action: Callable[[str], None]) -> None:
        """"." 付きで呼び出すコマンドを登録する。"""
        self._commands[name] = ReplCommand(name=name, help=help, action=action)

    def add_eval_hook(self, hook: EvalHook) -> None:
        """各行の評価後に呼ばれるフックを登録する。"""
        self._eval_hooks.append(hook)

    def on(self, event: str, listener: Callable[[], None]) -> None:
        """reset / exit イベントのリスナーを登録する。

        Raises:
            ValueError: 未知のイベント名の場合
        """
        if event not in self._listeners:
            raise ValueError(f"未知のイベントです: {event}")
        self._listeners[event].append(listener)

    def emit(self, event: str) -> None:
        for listener in self._listeners[event]:
            listener()

    def reset(self) -> None:
        """セッションリセットを通知する。"""
        self.console.print("Clearing context...")
        self.emit("reset")

    def request_exit(self) -> None:
        self._exit_requested = True

    def print(self, text: str) -> None:
        """ANSI エスケープを含む文字列をそのままの見た目で出力する。"""
        self.console.print(Text.from_ansi(text), soft_wrap=True)

    # -------------------------------------------------------------------
    # 入力処理
    # -------------------------------------------------------------------

    def push(self, line: str, *args: Any, **kwargs: Any) -> bool:
        if not self.buffer and line.strip().startswith("."):
            self.run_command(line.strip())
            return False
        return super().push(line, *args, **kwargs)

    def runsource(self, source: str, filename: str = "<input>", symbol: str = "single") -> bool:
        try:
            code_obj = self.compile(source, filename, symbol)
        except (OverflowError, SyntaxError, ValueError):
            self.showsyntaxerror(filename)
            return False

        if code_obj is None:
            return True

        self.evaluate(source)
        return False

    def run_command(self, line: str) -> None:
        """".name 引数" 形式のコマンドを実行する。"""
        name, _, argument = line[1:].partition(" ")
        command = self._commands.get(name)
        if command is None:
            self.console.print("Invalid REPL keyword", markup=False)
            return
        command.action(argument.strip())

    # -------------------------------------------------------------------
    # 評価
    # -------------------------------------------------------------------

    def evaluate(self, source: str) -> Evaluation:
        """1 行（または 1 ブロック）を評価し、表示と評価フックの呼び出しを行う。"""
        evaluation = Evaluation(source=source)
        try:
            evaluation.value, evaluation.awaited = self._execute(source)
        except (Exception, KeyboardInterrupt) as exc:
            evaluation.error = exc

        self._display(evaluation)
        for hook in self._eval_hooks:
            hook(evaluation)
        return evaluation

    def _execute(self, source: str) -> tuple[Any, bool]:
        try:
            code_obj = compile(source, "<brepl>", "eval", flags=_COMPILE_FLAGS)
            is_expression = True
        except SyntaxError:
            code_obj = compile(source, "<brepl>", "exec", flags=_COMPILE_FLAGS)
            is_expression = False

        result = eval(code_obj, self.locals)
        if code_obj.co_flags & inspect.CO_COROUTINE:
            result = self._run(result)

        if not is_expression:
            return None, False

        if inspect.isawaitable(result):
            return self._run(result), True
        return result, False

    def _run(self, awaitable: Any) -> Any:
        """awaitable をホストのループで完了まで実行する。

        KeyboardInterrupt で中断された場合はタスクをキャンセルし、
        次の評価でループが再開しても処理が続かないようにする。
        """
        task = asyncio.ensure_future(awaitable, loop=self.loop)
        try:
            return self.loop.run_until_complete(task)
        except KeyboardInterrupt:
            task.cancel()
            self.loop.run_until_complete(asyncio.gather(task, return_exceptions=True))
            raise

    def _display(self, evaluation: Evaluation) -> None:
        output = evaluation.error if evaluation.failed else evaluation.value
        if output is None:
            return
        if isinstance(output, KeyboardInterrupt):
            self.console.print("KeyboardInterrupt")
            return
        text = self.writer(output)
        if text:
            self.print(text)

    # -------------------------------------------------------------------
    # 入力ループ
    # -------------------------------------------------------------------

    def _show_help(self, _: str) -> None:
        for name in sorted(self._commands):
            self.console.print(f".{name:<10}{self._commands[name].help}", markup=False)

    def run(self, banner: Optional[str] = None) -> None:
        """EOF または .exit まで入力を読み続ける。終了時に exit を通知する。"""
        asyncio.set_event_loop(self.loop)
        if banner:
            self.console.print(banner, markup=False)

        more = False
        try:
            while not self._exit_requested:
                try:
                    line = self.raw_input("... " if more else self.prompt)
                except EOFError:
                    self.console.print()
                    break
                except KeyboardInterrupt:
                    self.console.print("\nKeyboardInterrupt")
                    self.resetbuffer()
                    more = False
                    continue
                more = self.push(line)
        finally:
            self.close()

    def close(self) -> None:
        """exit を通知し、イベントループを閉じる（2 回目以降は何もしない）。"""
        if self._closed:
            return
        self._closed = True
        try:
            self.emit("exit")
        finally:
            self.loop.run_until_complete(self.loop.shutdown_asyncgens())
            self.loop.close()
            logger.debug("イベントループを閉じました")
