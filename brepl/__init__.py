"""
brepl — ブラウザ自動化 API の対話シェル

Playwright ベースの自動化関数を 1 行ずつ対話的に実行し、
成功した行を記録して再利用可能なスクリプト / ステップとして出力する。

主な構成:
  - engine: Playwright 自動化関数テーブル（同期 / 非同期タグ付き）
  - shell: REPL ホスト、関数インターセプタ、記録、コード生成、セッションコマンド
  - plugins: プラグインモジュールの読み込み
  - config: 設定の読み込み（brepl.yaml / 環境変数 / CLI 引数）
  - cli: Typer ベースのエントリポイント
"""

from __future__ import annotations

__version__ = "0.1.0"
