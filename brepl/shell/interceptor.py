"""
FunctionInterceptor — 自動化関数の呼び出し監視ラッパ

エンジンおよびプラグインの公開関数をラップし、シェルの名前空間に配置する
新しい関数テーブルを構築する（元のテーブルは変更しない）。

主な機能:
  - 非同期関数: 引数の awaitable を解決して呼び出し、成功時のみレジストリに記録
  - 同期関数: 呼び出し前にレジストリに記録し、結果の exists() を説明付き結果に置換
  - 失敗時のトレース保存とメッセージの短縮（`.trace` への誘導）
  - open_browser の headless 既定値を False に正規化
"""

from __future__ import annotations

import asyncio
import dataclasses
import functools
import inspect
import logging
import traceback
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable, Mapping, Optional

from ..engine.exports import ExportedFunction
from .errors import InvocationError
from .formatter import FAIL_SYMBOL, FormattingContext
from .state import InvokedRegistry, ShellState

if TYPE_CHECKING:
    from ..plugins import PluginDescriptor

logger = logging.getLogger(__name__)

OPEN_BROWSER = "open_browser"
CLOSE_BROWSER = "close_browser"
LOAD_PLUGIN = "load_plugin"

TRACE_HINT = "run `.trace` for more info."


# ---------------------------------------------------------------------------
# 補助関数
# ---------------------------------------------------------------------------

async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def resolve_arguments(
    args: tuple[Any, ...], kwargs: Mapping[str, Any],
) -> tuple[tuple[Any, ...], dict[str, Any]]:
    """位置引数・キーワード引数に含まれる awaitable を並行して解決する。

    Args:
        args: 位置引数
        kwargs: キーワード引数

    Returns:
        解決済みの (位置引数, キーワード引数)
    """
    values = await asyncio.gather(
        *(_resolve(value) for value in (*args, *kwargs.values()))
    )
    resolved_args = tuple(values[: len(args)])
    resolved_kwargs = dict(zip(kwargs.keys(), values[len(args):]))
    return resolved_args, resolved_kwargs


def headed_by_default(
    open_browser: Callable[..., Awaitable[Any]],
) -> Callable[..., Awaitable[Any]]:
    """open_browser をラップし、headless の明示指定が無ければ False にする。

    ``open_browser({"headless": True})`` や ``open_browser(headless=True)`` の
    明示指定は維持する。
    """

    @functools.wraps(open_browser)
    async def wrapper(options: Optional[Mapping[str, Any]] = None, **overrides: Any) -> Any:
        merged = dict(options or {})
        merged.update(overrides)
        if not merged.get("headless"):
            merged["headless"] = False
        return await open_browser(merged)

    return wrapper


def describe_existence(check: Callable[[], Any]) -> Callable[[], Awaitable[dict]]:
    """exists() を真偽値ではなく説明付き結果を返す関数に置き換える。"""

    async def exists() -> dict:
        if await _resolve(check()):
            return {"description": "Exists"}
        return {"description": "Does not Exist"}

    return exists


# ---------------------------------------------------------------------------
# FunctionInterceptor 本体
# ---------------------------------------------------------------------------

class FunctionInterceptor:
    """公開関数をラップしてシェル用の関数テーブルを構築する。

    使用例::

        interceptor = FunctionInterceptor(state, formatting)
        namespace = interceptor.install(engine.EXPORTS, plugins)
        host.locals.update(namespace)
    """

    def __init__(self, state: ShellState, formatting: FormattingContext) -> None:
        self._state = state
        self._formatting = formatting

    def install(
        self,
        engine_exports: Mapping[str, ExportedFunction],
        plugins: Iterable[PluginDescriptor] = (),
    ) -> dict[str, Callable[..., Any]]:
        """エンジンとプラグインの全関数をラップした関数テーブルを返す。

        Args:
            engine_exports: エンジンの公開関数テーブル
            plugins: 読み込み済みプラグイン

        Returns:
            関数名 → ラップ済み関数 の新しい辞書
        """
        namespace: dict[str, Callable[..., Any]] = {}

        for export in engine_exports.values():
            if export.name == OPEN_BROWSER:
                export = dataclasses.replace(export, func=headed_by_default(export.func))
            namespace[export.name] = self.wrap(export)

        for plugin in plugins:
            self._state.plugin_invoked[plugin.id] = InvokedRegistry()
            for export in plugin.exports.values():
                namespace[export.name] = self.wrap(export, plugin_id=plugin.id)

        logger.debug("%d 関数をシェルに登録しました", len(namespace))
        return namespace

    def wrap(
        self, export: ExportedFunction, plugin_id: Optional[str] = None,
    ) -> Callable[..., Any]:
        """1 関数をラップし、既知関数セットに登録する。

        Args:
            export: 公開関数
            plugin_id: プラグインの関数であればその ID

        Returns:
            ラップ済み関数
        """
        self._state.known_functions.setdefault(export.name, export.kind)
        registry = self._state.registry_for(plugin_id)
        if export.is_async:
            return self._wrap_async(export, registry)
        return self._wrap_sync(export, registry)

    def _wrap_async(
        self, export: ExportedFunction, registry: InvokedRegistry,
    ) -> Callable[..., Awaitable[Any]]:
        func = export.func

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            self._state.last_error_trace = None
            try:
                args, kwargs = await resolve_arguments(args, kwargs)
                result = await func(*args, **kwargs)
            except Exception as exc:
                raise self._handle_error(exc) from None
            registry.add(export.name)
            return result

        return wrapper

    def _wrap_sync(
        self, export: ExportedFunction, registry: InvokedRegistry,
    ) -> Callable[..., Any]:
        func = export.func

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            # 同期関数は呼び出し前に記録する（非同期関数は成功後）
            registry.add(export.name)
            result = func(*args, **kwargs)
            exists = getattr(result, "exists", None)
            if callable(exists):
                result.exists = describe_existence(exists)
            return result

        return wrapper

    def _handle_error(self, exc: BaseException) -> InvocationError:
        """失敗のトレースを保存し、短縮メッセージの例外を返す。"""
        with self._formatting.override(string_style="red"):
            stack = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            ).rstrip()
            self._state.last_error_trace = self._formatting.render_string(stack)
            message = f"{FAIL_SYMBOL}Error: {exc}, {TRACE_HINT}"
            logger.debug("関数呼び出しに失敗しました: %s", exc)
            return InvocationError(self._formatting.render_string(message), original=exc)
