"""
shell パッケージ — 記録付き対話シェル

主な構成:
  - host: 入力ループ・評価・コマンド登録（ReplHost）
  - interceptor: 自動化関数のラップ（FunctionInterceptor）
  - recorder: 成功行の記録（CommandRecorder）
  - formatter: 評価結果の整形（OutputFormatter / FormattingContext）
  - codegen: スクリプト / ステップ生成（CodeGenerator）
  - commands: `.trace` / `.code` / `.step` / `.version` / `.api`（SessionCommands）
  - repl: 上記の組み立て（initialize）
"""

from __future__ import annotations

from .codegen import CodeGenerator
from .errors import InvocationError
from .repl import Shell, initialize, replay_session_file
from .state import ShellState

__all__ = [
    "CodeGenerator",
    "InvocationError",
    "Shell",
    "ShellState",
    "initialize",
    "replay_session_file",
]
