"""
ShellState テスト — トランスクリプト・レジストリ・リセットの単体テスト
"""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from brepl.engine.exports import FunctionKind
from brepl.shell.state import InvokedRegistry, RecordedCommand, ShellState, Transcript


# ---------------------------------------------------------------------------
# Transcript のテスト
# ---------------------------------------------------------------------------

class TestTranscript:
    """Transcript の追加・参照・クリアのテスト。"""

    def test_append_keeps_order(self):
        """追加順に行が保持されること。"""
        transcript = Transcript()
        transcript.append('await open_browser()')
        transcript.append('goto("example.com")')
        assert transcript.lines == ['await open_browser()', 'goto("example.com")']
        assert len(transcript) == 2

    def test_entries_keep_awaited_flag(self):
        """awaited フラグが記録されること。"""
        transcript = Transcript()
        transcript.append('text("Sign in").exists()', awaited=True)
        assert transcript.entries == [RecordedCommand('text("Sign in").exists()', awaited=True)]

    def test_entries_returns_copy(self):
        """entries の変更がトランスクリプトに影響しないこと。"""
        transcript = Transcript()
        transcript.append("x = 1")
        transcript.entries.pop()
        assert len(transcript) == 1

    def test_clear(self):
        """clear() で空になること。"""
        transcript = Transcript()
        transcript.append("x = 1")
        transcript.clear()
        assert transcript.lines == []

    @given(st.lists(st.text(min_size=1, max_size=30), max_size=20))
    def test_lines_equal_appended_sources(self, sources):
        """追加した行がそのままの順序で取得できること。"""
        transcript = Transcript()
        for source in sources:
            transcript.append(source)
        assert transcript.lines == sources
        assert [entry.source for entry in transcript] == sources


# ---------------------------------------------------------------------------
# InvokedRegistry のテスト
# ---------------------------------------------------------------------------

class TestInvokedRegistry:
    """InvokedRegistry の挿入順付き集合としての振る舞いのテスト。"""

    def test_duplicates_are_ignored(self):
        """同じ名前は 1 回だけ記録されること。"""
        registry = InvokedRegistry()
        registry.add("goto")
        registry.add("click")
        registry.add("goto")
        assert registry.names == ["goto", "click"]
        assert len(registry) == 2

    def test_contains(self):
        """in 演算子で判定できること。"""
        registry = InvokedRegistry()
        registry.add("goto")
        assert "goto" in registry
        assert "click" not in registry

    @given(st.lists(st.sampled_from(["goto", "click", "write", "press", "title"]), max_size=30))
    def test_order_is_first_insertion(self, names):
        """反復順が初回呼び出しの順序であること。"""
        registry = InvokedRegistry()
        for name in names:
            registry.add(name)
        assert list(registry) == list(dict.fromkeys(names))


# ---------------------------------------------------------------------------
# ShellState のテスト
# ---------------------------------------------------------------------------

class TestShellState:
    """ShellState のレジストリ取得とリセットのテスト。"""

    def test_registry_for_engine(self):
        """plugin_id 省略時はエンジンのレジストリを返すこと。"""
        state = ShellState()
        assert state.registry_for() is state.engine_invoked

    def test_registry_for_plugin_is_created_once(self):
        """プラグインのレジストリは ID ごとに 1 つであること。"""
        state = ShellState()
        registry = state.registry_for("screencast")
        assert state.registry_for("screencast") is registry
        assert state.plugin_invoked == {"screencast": registry}

    def test_reset_clears_session_but_keeps_plugin_registry(self):
        """リセットでトランスクリプト・エンジンレジストリ・トレースが消え、プラグインレジストリは残ること。"""
        state = ShellState()
        state.transcript.append('goto("example.com")')
        state.engine_invoked.add("goto")
        state.registry_for("screencast").add("start_screencast")
        state.known_functions["goto"] = FunctionKind.ASYNC
        state.last_error_trace = "Traceback ..."

        state.reset()

        assert len(state.transcript) == 0
        assert len(state.engine_invoked) == 0
        assert state.last_error_trace is None
        assert state.plugin_invoked["screencast"].names == ["start_screencast"]
        assert state.known_functions == {"goto": FunctionKind.ASYNC}
