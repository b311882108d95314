"""
関数エクスポート定義 — 自動化関数テーブルの共通型

エンジンおよびプラグインが公開する関数を、同期 / 非同期の種別タグ付きで
保持する。種別は実行時に推測せず、公開側のモジュールが明示的に指定する。
"""

from __future__ import annotations

import enum
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Optional


class FunctionKind(enum.Enum):
    """公開関数の呼び出し種別。"""

    SYNC = "sync"
    ASYNC = "async"


@dataclass(frozen=True)
class ExportedFunction:
    """エンジン / プラグインが公開する 1 関数。

    Attributes:
        name: シェル上で使用する関数名
        func: 実体の呼び出し可能オブジェクト
        kind: 同期 / 非同期の種別
        category: `.api` 一覧表示用のカテゴリ名
    """

    name: str
    func: Callable[..., Any]
    kind: FunctionKind
    category: str = "Other"

    @property
    def is_async(self) -> bool:
        """非同期関数として公開されているかどうかを返す。"""
        return self.kind is FunctionKind.ASYNC

    @property
    def signature(self) -> str:
        """型注釈を除いた短いパラメータシグネチャを返す。

        例: ``(url, options=None)``
        """
        params: list[str] = []
        for param in inspect.signature(self.func).parameters.values():
            if param.kind is inspect.Parameter.VAR_POSITIONAL:
                params.append(f"*{param.name}")
            elif param.kind is inspect.Parameter.VAR_KEYWORD:
                params.append(f"**{param.name}")
            elif param.default is not inspect.Parameter.empty:
                params.append(f"{param.name}={param.default!r}")
            else:
                params.append(param.name)
        return f"({', '.join(params)})"


class ExportTable(dict):
    """関数名 → ExportedFunction の公開テーブル。

    デコレータで関数を登録する::

        EXPORTS = ExportTable()

        @EXPORTS.register(FunctionKind.ASYNC, category="Browser actions")
        async def goto(url): ...
    """

    def register(
        self,
        kind: FunctionKind,
        *,
        category: str = "Other",
        name: Optional[str] = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """関数を公開テーブルに登録するデコレータを返す。

        Args:
            kind: 同期 / 非同期の種別
            category: `.api` 一覧表示用のカテゴリ名
            name: 公開名（省略時は関数名）

        Returns:
            関数をそのまま返すデコレータ
        """

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            export_name = name or func.__name__
            self[export_name] = ExportedFunction(
                name=export_name,
                func=func,
                kind=kind,
                category=category,
            )
            return func

        return decorator
