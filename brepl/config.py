"""
シェル設定 — brepl.yaml・環境変数・CLI 引数からの設定読み込み

CLI 引数 > 環境変数 > brepl.yaml > デフォルト値 の優先順位で適用される。

環境変数一覧:
  BREPL_PROMPT    : プロンプト文字列（デフォルト: "> "）
  BREPL_PLUGINS   : 読み込むプラグインモジュール（カンマ区切り）
  BREPL_NO_COLOR  : 色付け出力の無効化（true/false, デフォルト: false）
  BREPL_LOG_LEVEL : ログレベル（DEBUG/INFO/WARNING/ERROR, デフォルト: WARNING）
  BREPL_DOC_PATH  : API ドキュメント JSON のパス（デフォルト: 同梱の api.json）
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# 環境変数キー定数
# ---------------------------------------------------------------------------

_ENV_PROMPT = "BREPL_PROMPT"
_ENV_PLUGINS = "BREPL_PLUGINS"
_ENV_NO_COLOR = "BREPL_NO_COLOR"
_ENV_LOG_LEVEL = "BREPL_LOG_LEVEL"
_ENV_DOC_PATH = "BREPL_DOC_PATH"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_CONFIG_FILE = Path("brepl.yaml")
DEFAULT_DOC_PATH = Path(__file__).parent / "data" / "api.json"


# ---------------------------------------------------------------------------
# 設定データクラス
# ---------------------------------------------------------------------------

@dataclass
class ShellConfig:
    """対話シェルの実行時設定。

    Attributes:
        prompt: プロンプト文字列
        plugins: 読み込むプラグインモジュール名のリスト
        no_color: True で色付け出力を無効化
        log_level: ログレベル名
        doc_path: API ドキュメント JSON のパス
    """

    prompt: str = "> "
    plugins: list[str] = field(default_factory=list)
    no_color: bool = False
    log_level: str = "WARNING"
    doc_path: Path = DEFAULT_DOC_PATH


def _parse_bool(value: str) -> bool:
    """文字列を bool に変換する。

    Args:
        value: "true", "1", "yes" → True、それ以外 → False

    Returns:
        変換結果
    """
    return value.lower() in ("true", "1", "yes")


def _parse_list(value: str) -> list[str]:
    """カンマ区切り文字列をリストに変換する（空要素は除外）。"""
    return [item.strip() for item in value.split(",") if item.strip()]


def _apply_log_level(config: ShellConfig, value: Any, source: str) -> None:
    level = str(value).upper()
    if level in _LOG_LEVELS:
        config.log_level = level
    else:
        logger.warning("%s のログレベルが不正です: %s", source, value)


# ---------------------------------------------------------------------------
# 設定ファイル（brepl.yaml）からの読み込み
# ---------------------------------------------------------------------------

def load_config_file(config: ShellConfig, path: Path = DEFAULT_CONFIG_FILE) -> ShellConfig:
    """brepl.yaml の内容を ShellConfig に適用する。

    ファイルが存在しない場合はそのまま返す。
    読み込みに失敗した場合は警告を出力して無視する。

    Args:
        config: ベースとなる設定
        path: 設定ファイルのパス

    Returns:
        設定ファイルが適用された設定
    """
    if not path.exists():
        return config

    yaml = YAML(typ="safe")
    try:
        data = yaml.load(path.read_text(encoding="utf-8")) or {}
    except (OSError, YAMLError):
        logger.warning("設定ファイルを読み込めませんでした: %s", path, exc_info=True)
        return config

    if not isinstance(data, dict):
        logger.warning("設定ファイルの形式が不正です（マッピングではありません）: %s", path)
        return config

    if "prompt" in data:
        config.prompt = str(data["prompt"])
    if "plugins" in data:
        plugins = data["plugins"]
        if isinstance(plugins, str):
            config.plugins = _parse_list(plugins)
        elif isinstance(plugins, list):
            config.plugins = [str(p) for p in plugins]
        else:
            logger.warning("plugins の形式が不正です: %s", plugins)
    if "no_color" in data:
        config.no_color = bool(data["no_color"])
    if "log_level" in data:
        _apply_log_level(config, data["log_level"], str(path))
    if "doc_path" in data:
        config.doc_path = Path(str(data["doc_path"]))

    logger.info("設定ファイルを読み込みました: %s", path)
    return config


# ---------------------------------------------------------------------------
# 環境変数からの読み込み
# ---------------------------------------------------------------------------

def load_config_from_env(config: Optional[ShellConfig] = None) -> ShellConfig:
    """環境変数を ShellConfig に適用する。

    設定されていない環境変数は既存の値（またはデフォルト値）を維持する。

    Args:
        config: ベースとなる設定（None でデフォルト値）

    Returns:
        環境変数から読み込んだ設定
    """
    if config is None:
        config = ShellConfig()

    if _ENV_PROMPT in os.environ:
        config.prompt = os.environ[_ENV_PROMPT]

    if _ENV_PLUGINS in os.environ:
        config.plugins = _parse_list(os.environ[_ENV_PLUGINS])

    if _ENV_NO_COLOR in os.environ:
        config.no_color = _parse_bool(os.environ[_ENV_NO_COLOR])

    if _ENV_LOG_LEVEL in os.environ:
        _apply_log_level(config, os.environ[_ENV_LOG_LEVEL], _ENV_LOG_LEVEL)

    if _ENV_DOC_PATH in os.environ:
        config.doc_path = Path(os.environ[_ENV_DOC_PATH])

    return config


def load_config(path: Path = DEFAULT_CONFIG_FILE) -> ShellConfig:
    """brepl.yaml → 環境変数の順で設定を構築する。"""
    config = load_config_file(ShellConfig(), path)
    config = load_config_from_env(config)
    logger.debug("設定を読み込みました: %s", config)
    return config


def apply_cli_args(
    config: ShellConfig,
    *,
    plugins: Optional[list[str]] = None,
    no_color: Optional[bool] = None,
    prompt: Optional[str] = None,
    log_level: Optional[str] = None,
) -> ShellConfig:
    """CLI 引数を ShellConfig に適用する。

    CLI 引数が指定されている場合のみ上書きする。プラグインは追加扱いとする。

    Args:
        config: ベースとなる設定
        plugins: 追加で読み込むプラグインモジュール
        no_color: 色付け出力の無効化
        prompt: プロンプト文字列
        log_level: ログレベル名

    Returns:
        CLI 引数が適用された設定
    """
    if plugins:
        for module_name in plugins:
            if module_name not in config.plugins:
                config.plugins.append(module_name)

    if no_color:
        config.no_color = True

    if prompt is not None:
        config.prompt = prompt

    if log_level is not None:
        _apply_log_level(config, log_level, "--log-level")

    return config
