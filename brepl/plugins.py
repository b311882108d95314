"""
プラグイン読み込み — 追加の自動化関数を提供するモジュールの記述子

プラグインは次の属性を持つ Python モジュールである:
  - ID: プラグイン識別子（文字列）
  - EXPORTS: 関数名 → ExportedFunction のテーブル（エンジンと同じ構造）
  - client_handler: ブラウザセッションを受け取る呼び出し可能オブジェクト（任意）

生成スクリプトでは ``from <module> import ID, client_handler, ...`` と
``load_plugin(ID, client_handler)`` によって実行時に接続される。
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional

from .engine.exports import ExportedFunction

logger = logging.getLogger(__name__)


class PluginLoadError(Exception):
    """プラグインモジュールを読み込めない場合に送出される例外。"""

    def __init__(self, module_name: str, reason: str) -> None:
        self.module_name = module_name
        self.reason = reason
        super().__init__(f"プラグイン '{module_name}' を読み込めません: {reason}")


@dataclass(frozen=True)
class PluginDescriptor:
    """読み込み済みプラグインの記述子。

    Attributes:
        id: プラグイン識別子
        module: import 可能なモジュール名（生成コードの import 元）
        exports: 公開関数テーブル
        client_handler: セッション接続用ハンドラ
    """

    id: str
    module: str
    exports: Mapping[str, ExportedFunction] = field(default_factory=dict)
    client_handler: Optional[Callable[..., Any]] = None


def load_plugin_module(module_name: str) -> PluginDescriptor:
    """モジュール名からプラグインを読み込む。

    Args:
        module_name: import 可能なモジュール名

    Returns:
        プラグイン記述子

    Raises:
        PluginLoadError: import 失敗、または必須属性が欠けている場合
    """
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise PluginLoadError(module_name, str(exc)) from exc

    plugin_id = getattr(module, "ID", None)
    if not isinstance(plugin_id, str) or not plugin_id:
        raise PluginLoadError(module_name, "ID（文字列）が定義されていません")

    exports = getattr(module, "EXPORTS", None)
    if not isinstance(exports, Mapping):
        raise PluginLoadError(module_name, "EXPORTS テーブルが定義されていません")

    descriptor = PluginDescriptor(
        id=plugin_id,
        module=module_name,
        exports=dict(exports),
        client_handler=getattr(module, "client_handler", None),
    )
    logger.info("プラグインを読み込みました: %s (%d 関数)", plugin_id, len(descriptor.exports))
    return descriptor


def load_plugins(module_names: Iterable[str]) -> list[PluginDescriptor]:
    """複数のプラグインを順に読み込む。"""
    return [load_plugin_module(name) for name in module_names]
