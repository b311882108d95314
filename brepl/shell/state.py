"""
ShellState — 対話セッションの記録状態

トランスクリプト・呼び出し済み関数レジストリ・既知関数セット・
直近エラーのトレースをまとめて保持する。シェルプロセスのみが更新する。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator, Optional

from ..engine.exports import FunctionKind

if TYPE_CHECKING:
    from ..plugins import PluginDescriptor

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# トランスクリプト
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RecordedCommand:
    """評価に成功した 1 行。

    Attributes:
        source: 入力された行（前後の空白を除去済み）
        awaited: ホストが評価結果の awaitable を待機したかどうか
    """

    source: str
    awaited: bool = False


class Transcript:
    """評価に成功した行を入力順に保持するトランスクリプト。"""

    def __init__(self) -> None:
        self._entries: list[RecordedCommand] = []

    def append(self, source: str, awaited: bool = False) -> None:
        """行を末尾に追加する。"""
        self._entries.append(RecordedCommand(source=source, awaited=awaited))

    @property
    def entries(self) -> list[RecordedCommand]:
        """記録済みコマンドのコピーを返す。"""
        return list(self._entries)

    @property
    def lines(self) -> list[str]:
        """記録済みの行文字列を入力順に返す。"""
        return [entry.source for entry in self._entries]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RecordedCommand]:
        return iter(list(self._entries))


# ---------------------------------------------------------------------------
# 呼び出し済み関数レジストリ
# ---------------------------------------------------------------------------

class InvokedRegistry:
    """呼び出し済み関数名の挿入順付き集合。

    生成コードの import 一覧を最小化するために使用する。
    反復順は初回呼び出しの順序で固定される。
    """

    def __init__(self) -> None:
        self._names: dict[str, None] = {}

    def add(self, name: str) -> None:
        self._names.setdefault(name, None)

    @property
    def names(self) -> list[str]:
        return list(self._names)

    def clear(self) -> None:
        self._names.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._names))

    def __len__(self) -> int:
        return len(self._names)


# ---------------------------------------------------------------------------
# ShellState 本体
# ---------------------------------------------------------------------------

@dataclass
class ShellState:
    """対話セッション全体の記録状態。

    Attributes:
        transcript: 評価に成功した行のトランスクリプト
        engine_invoked: エンジン関数の呼び出し済みレジストリ
        plugin_invoked: プラグイン ID ごとの呼び出し済みレジストリ
        known_functions: 公開関数名 → 種別（エンジン + プラグイン）
        last_error_trace: 直近の呼び出し失敗のトレース
        plugins: 読み込み済みプラグイン記述子
    """

    transcript: Transcript = field(default_factory=Transcript)
    engine_invoked: InvokedRegistry = field(default_factory=InvokedRegistry)
    plugin_invoked: dict[str, InvokedRegistry] = field(default_factory=dict)
    known_functions: dict[str, FunctionKind] = field(default_factory=dict)
    last_error_trace: Optional[str] = None
    plugins: list[PluginDescriptor] = field(default_factory=list)

    def registry_for(self, plugin_id: Optional[str] = None) -> InvokedRegistry:
        """エンジン（plugin_id=None）またはプラグインのレジストリを返す。"""
        if plugin_id is None:
            return self.engine_invoked
        return self.plugin_invoked.setdefault(plugin_id, InvokedRegistry())

    def reset(self) -> None:
        """セッションリセット時の状態クリア。

        トランスクリプト・エンジンのレジストリ・直近トレースをクリアする。
        プラグインのレジストリは保持する。
        """
        self.transcript.clear()
        self.engine_invoked.clear()
        self.last_error_trace = None
        logger.info("セッション記録をリセットしました")
