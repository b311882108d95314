"""
プラグイン読み込みテスト — モジュールからの PluginDescriptor 構築の検証

テスト用のプラグインモジュールを tmp_path に作成し、sys.path 経由で import する。
"""

from __future__ import annotations

import sys
import textwrap
from pathlib import Path

import pytest

from brepl.engine.exports import FunctionKind
from brepl.plugins import PluginLoadError, load_plugin_module, load_plugins

PLUGIN_SOURCE = textwrap.dedent("""\
    from brepl.engine.exports import ExportTable, FunctionKind

    ID = "screencast"
    EXPORTS = ExportTable()


    def client_handler(session):
        pass


    @EXPORTS.register(FunctionKind.ASYNC, category="Screencast")
    async def start_screencast(path="video.webm"):
        return {"description": "Screencast started"}
""")


@pytest.fixture
def plugin_dir(tmp_path: Path, monkeypatch):
    """プラグインモジュールを置くディレクトリを sys.path に追加する。"""
    monkeypatch.syspath_prepend(str(tmp_path))
    yield tmp_path
    for name in [name for name in sys.modules if name.startswith("brepl_test_")]:
        del sys.modules[name]


class TestLoadPluginModule:
    """load_plugin_module のテスト。"""

    def test_valid_plugin(self, plugin_dir: Path):
        """ID / EXPORTS / client_handler を持つモジュールが読み込めること。"""
        (plugin_dir / "brepl_test_screencast.py").write_text(PLUGIN_SOURCE, encoding="utf-8")

        descriptor = load_plugin_module("brepl_test_screencast")

        assert descriptor.id == "screencast"
        assert descriptor.module == "brepl_test_screencast"
        assert descriptor.exports["start_screencast"].kind is FunctionKind.ASYNC
        assert callable(descriptor.client_handler)

    def test_missing_module(self):
        """存在しないモジュールは PluginLoadError になること。"""
        with pytest.raises(PluginLoadError) as exc_info:
            load_plugin_module("brepl_test_does_not_exist")
        assert exc_info.value.module_name == "brepl_test_does_not_exist"

    def test_missing_id(self, plugin_dir: Path):
        """ID が無いモジュールは PluginLoadError になること。"""
        (plugin_dir / "brepl_test_no_id.py").write_text("EXPORTS = {}\n", encoding="utf-8")
        with pytest.raises(PluginLoadError, match="ID"):
            load_plugin_module("brepl_test_no_id")

    def test_missing_exports(self, plugin_dir: Path):
        """EXPORTS が無いモジュールは PluginLoadError になること。"""
        (plugin_dir / "brepl_test_no_exports.py").write_text('ID = "x"\n', encoding="utf-8")
        with pytest.raises(PluginLoadError, match="EXPORTS"):
            load_plugin_module("brepl_test_no_exports")

    def test_client_handler_is_optional(self, plugin_dir: Path):
        """client_handler が無くても読み込めること。"""
        (plugin_dir / "brepl_test_minimal.py").write_text(
            'ID = "minimal"\nEXPORTS = {}\n', encoding="utf-8",
        )
        assert load_plugin_module("brepl_test_minimal").client_handler is None


class TestLoadPlugins:
    """load_plugins のテスト。"""

    def test_load_in_order(self, plugin_dir: Path):
        """指定順に読み込まれること。"""
        (plugin_dir / "brepl_test_first.py").write_text('ID = "first"\nEXPORTS = {}\n', encoding="utf-8")
        (plugin_dir / "brepl_test_second.py").write_text('ID = "second"\nEXPORTS = {}\n', encoding="utf-8")
        plugins = load_plugins(["brepl_test_first", "brepl_test_second"])
        assert [plugin.id for plugin in plugins] == ["first", "second"]

    def test_empty(self):
        """空のリストでは空のリストを返すこと。"""
        assert load_plugins([]) == []
