"""
API ドキュメント・バージョン情報 — `.api` / `.version` コマンドのデータ源

同梱の api.json（関数ごとの説明リッチテキストツリーと使用例）を
Pydantic v2 モデルで読み込み、プレーンテキストにレンダリングする。
ファイルが存在しない・形式が不正な場合は None を返し、呼び出し側で縮退表示する。
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from importlib import metadata
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, TypeAdapter

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ドキュメントモデル
# ---------------------------------------------------------------------------

class DocNode(BaseModel):
    """説明文のリッチテキストツリーのノード。

    type は root / paragraph / text / link / list / listItem / inlineCode 等。
    """

    type: str = ""
    value: Optional[str] = None
    children: list[DocNode] = Field(default_factory=list)


DocNode.model_rebuild()


class DocExample(BaseModel):
    """使用例。description にコード片を保持する。"""

    description: str = ""


class DocEntry(BaseModel):
    """関数 1 つ分のドキュメント。"""

    name: str
    description: DocNode = Field(default_factory=DocNode)
    examples: list[DocExample] = Field(default_factory=list)


_DOC_ADAPTER = TypeAdapter(list[DocEntry])


def load_api_document(path: Path) -> Optional[list[DocEntry]]:
    """API ドキュメント JSON を読み込む。

    Args:
        path: api.json のパス

    Returns:
        ドキュメントエントリのリスト。読み込めない場合は None
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        entries = _DOC_ADAPTER.validate_python(raw)
    except (OSError, ValueError):
        logger.debug("API ドキュメントを読み込めませんでした: %s", path, exc_info=True)
        return None
    logger.debug("API ドキュメントを読み込みました: %s (%d 件)", path, len(entries))
    return entries


def find_entry(entries: list[DocEntry], name: str) -> Optional[DocEntry]:
    """名前でドキュメントエントリを検索する。"""
    return next((entry for entry in entries if entry.name == name), None)


# ---------------------------------------------------------------------------
# レンダリング
# ---------------------------------------------------------------------------

def _inline_text(node: DocNode) -> str:
    if node.type == "link":
        if not node.children:
            return ""
        return node.children[0].value or ""
    return node.value or ""


def _list_item_text(item: DocNode) -> str:
    if not item.children:
        return ""
    return "".join(child.value or "" for child in item.children[0].children)


def render_description(description: DocNode) -> str:
    """説明ツリーをプレーンテキストに変換する。

    段落内のテキスト・リンクはスペース区切りで連結し、
    リスト項目は "* " 付きの行として出力する。
    """
    blocks: list[str] = []
    for block in description.children:
        parts: list[str] = []
        for index, child in enumerate(block.children):
            if child.type == "listItem":
                prefix = "\n\n* " if index == 0 else "\n* "
                parts.append(prefix + _list_item_text(child))
            else:
                parts.append(_inline_text(child).strip())
        blocks.append(" ".join(parts))
    return " ".join(blocks)


def render_examples(examples: list[DocExample]) -> str:
    """使用例をコードブロックとしてインデントして返す（使用例が無ければ空文字列）。"""
    if not examples:
        return ""
    heading = "Examples:" if len(examples) > 1 else "Example:"
    code = "\n".join(
        "\n".join(f"    {line}" for line in example.description.split("\n"))
        for example in examples
    )
    return f"{heading}\n{code}"


def render_usage(entry: DocEntry) -> str:
    """`.api <name>` 用の説明と使用例をまとめて返す。"""
    text = "\n" + render_description(entry.description) + "\n"
    examples = render_examples(entry.examples)
    if examples:
        text += "\n" + examples + "\n"
    return text


# ---------------------------------------------------------------------------
# バージョン情報
# ---------------------------------------------------------------------------

@dataclass
class VersionInfo:
    """パッケージとブラウザエンジンのバージョン。取得できない項目は空文字列。"""

    version: str = ""
    browser_version: str = ""


def _distribution_version(name: str) -> str:
    try:
        return metadata.version(name)
    except metadata.PackageNotFoundError:
        logger.debug("ディストリビューションが見つかりません: %s", name)
        return ""


def load_version_info() -> VersionInfo:
    """brepl と Playwright のバージョンを取得する。"""
    return VersionInfo(
        version=_distribution_version("brepl"),
        browser_version=_distribution_version("playwright"),
    )
