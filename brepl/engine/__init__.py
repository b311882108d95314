"""
engine パッケージ — Playwright ベースのブラウザ自動化関数

シェルおよび生成スクリプトが使用する自動化関数を提供する。
全関数は EXPORTS テーブルに同期 / 非同期の種別付きで登録されている。

主な構成:
  - api: 自動化関数本体と EXPORTS テーブル
  - exports: ExportedFunction / FunctionKind / ExportTable
  - session: ブラウザセッション管理
  - selectors: 要素セレクタと Locator 変換
"""

from __future__ import annotations

from .api import (
    EXPORTS,
    button,
    click,
    close_browser,
    css,
    current_url,
    evaluate,
    get_session,
    go_back,
    go_forward,
    goto,
    is_browser_open,
    keep_browser_open,
    link,
    load_plugin,
    open_browser,
    press,
    reload,
    screenshot,
    text,
    text_box,
    title,
    wait_for,
    write,
)
from .exports import ExportedFunction, ExportTable, FunctionKind
from .selectors import ElementSelector

__all__ = [
    "EXPORTS",
    "ElementSelector",
    "ExportTable",
    "ExportedFunction",
    "FunctionKind",
    "button",
    "click",
    "close_browser",
    "css",
    "current_url",
    "evaluate",
    "get_session",
    "go_back",
    "go_forward",
    "goto",
    "is_browser_open",
    "keep_browser_open",
    "link",
    "load_plugin",
    "open_browser",
    "press",
    "reload",
    "screenshot",
    "text",
    "text_box",
    "title",
    "wait_for",
    "write",
]
