"""
CLI エントリポイント — Typer ベースのコマンドラインインターフェース

brepl コマンドで記録付き対話シェルを起動する。

使用例:
  brepl                              # 対話シェルを起動
  brepl --plugin brepl_screencast    # プラグインを読み込んで起動
  brepl --load flows/login.py        # 前回セッションを再生してから起動
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from .config import apply_cli_args, load_config
from .plugins import PluginLoadError, load_plugins

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Typer アプリ定義
# ---------------------------------------------------------------------------

app = typer.Typer(
    help=(
        "brepl — ブラウザ自動化の記録付き対話シェル\n\n"
        "基本の流れ:\n"
        "  1. brepl                 シェルを起動\n"
        "  2. open_browser() / goto(...) / click(...) を 1 行ずつ実行\n"
        "  3. .code flows/xxx.py    記録した操作をスクリプトとして保存"
    ),
    add_completion=False,
)


@app.command()
def main(
    plugin: Optional[List[str]] = typer.Option(
        None, "--plugin", "-p", help="読み込むプラグインモジュール（複数指定可）",
    ),
    load: Optional[Path] = typer.Option(
        None, "--load", "-l", help="前回セッションのスクリプトを再生してから起動する",
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="色付け出力を無効にする",
    ),
    prompt: Optional[str] = typer.Option(
        None, "--prompt", help="プロンプト文字列",
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="ログレベル (DEBUG / INFO / WARNING / ERROR)",
    ),
) -> None:
    """記録付き対話シェルを起動する。

    成功した行は記録され、.code / .step でスクリプトまたはステップとして出力できる。
    """
    from .shell import initialize, replay_session_file

    config = apply_cli_args(
        load_config(),
        plugins=plugin,
        no_color=no_color,
        prompt=prompt,
        log_level=log_level,
    )
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(name)s - %(levelname)s - %(message)s",
    )

    if load is not None and not load.exists():
        typer.echo(f"エラー: ファイルが見つかりません: {load}", err=True)
        raise typer.Exit(code=1)

    try:
        plugins = load_plugins(config.plugins)
    except PluginLoadError as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)

    shell = initialize(plugins, previous_session_file=load, config=config)

    if load is not None:
        try:
            replay_session_file(shell, load)
        except Exception as exc:
            logger.debug("セッションの再生に失敗しました", exc_info=True)
            typer.echo(f"エラー: {load} の再生に失敗しました: {exc}", err=True)
            shell.host.close()
            raise typer.Exit(code=1)

    shell.run()


if __name__ == "__main__":
    app()
