"""Tests for prtriage-store implementations."""

from __future__ import annotations

import json
import logging

import pytest

from prtriage_store.json_file import JsonFileStore, ref_to_dirname
from prtriage_store.memory import MemoryStore
from prtriage_store.models import ReviewState, StatusEntry

REF = "octo/app#7"


def _make_state():
    state = ReviewState(pr=REF)
    state.mark("thread", "PRRT_1", "done", "Fixed in abc123")
    state.mark("thread", "PRRT_2", "later")
    state.mark("nitpick", "src/a.ts:42", "skip", "False positive")
    return state


# ---------------------------------------------------------------------------
# ReviewState
# ---------------------------------------------------------------------------


class TestReviewState:
    def test_mark_sets_entry(self):
        state = ReviewState()
        state.mark("nitpick", "a.py:1", "done", "note")
        assert state.nitpicks == {"a.py:1": StatusEntry(status="done", note="note")}

    def test_mark_twice_same_status_is_idempotent(self):
        once = ReviewState()
        once.mark("thread", "T", "done")
        twice = ReviewState()
        twice.mark("thread", "T", "done")
        twice.mark("thread", "T", "done")
        assert once.threads == twice.threads

    def test_second_status_wins(self):
        state = ReviewState()
        state.mark("thread", "T", "later")
        state.mark("thread", "T", "done")
        assert state.threads["T"].status == "done"

    def test_mark_leaves_other_entries_untouched(self):
        state = _make_state()
        state.mark("thread", "PRRT_3", "skip")
        assert state.threads["PRRT_1"] == StatusEntry(status="done", note="Fixed in abc123")
        assert state.nitpicks["src/a.ts:42"].status == "skip"

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            ReviewState().mark("issue", "1", "done")

    def test_status_of(self):
        state = _make_state()
        assert state.status_of("thread", "PRRT_2") == "later"
        assert state.status_of("nitpick", "missing") is None

    def test_dict_roundtrip(self):
        state = _make_state()
        restored = ReviewState.from_dict(state.to_dict())
        assert restored == state

    def test_to_dict_wire_format(self):
        d = _make_state().to_dict()
        assert set(d) == {"pr", "updatedAt", "threads", "nitpicks"}
        assert d["threads"]["PRRT_2"] == {"status": "later"}
        assert d["nitpicks"]["src/a.ts:42"] == {"status": "skip", "note": "False positive"}


# ---------------------------------------------------------------------------
# JsonFileStore
# ---------------------------------------------------------------------------


class TestJsonFileStore:
    def test_save_and_load_roundtrip(self, tmp_path):
        store = JsonFileStore(root=tmp_path)
        state = _make_state()
        store.save(REF, state)

        loaded = store.load(REF)
        assert loaded.threads == state.threads
        assert loaded.nitpicks == state.nitpicks
        assert loaded.pr == REF

    def test_save_refreshes_updated_at(self, tmp_path):
        store = JsonFileStore(root=tmp_path)
        state = _make_state()
        assert state.updated_at == ""
        store.save(REF, state)
        assert state.updated_at
        assert store.load(REF).updated_at == state.updated_at

    def test_load_never_saved_returns_empty_state(self, tmp_path):
        state = JsonFileStore(root=tmp_path).load("octo/other#1")
        assert state.threads == {}
        assert state.nitpicks == {}
        assert state.pr == ""

    def test_load_corrupt_file_returns_empty_state(self, tmp_path, caplog):
        store = JsonFileStore(root=tmp_path)
        path = store.path_for(REF)
        path.parent.mkdir(parents=True)
        path.write_text("{not json")

        with caplog.at_level(logging.WARNING):
            state = store.load(REF)

        assert state.threads == {}
        assert "unreadable" in caplog.text

    def test_load_wrong_shape_returns_empty_state(self, tmp_path):
        store = JsonFileStore(root=tmp_path)
        path = store.path_for(REF)
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps(["not", "an", "object"]))
        assert store.load(REF).nitpicks == {}

    def test_path_layout(self, tmp_path):
        store = JsonFileStore(root=tmp_path)
        assert store.path_for(REF) == tmp_path / "octo-app-7" / "pr-state.json"
        assert store.location(REF) == str(tmp_path / "octo-app-7" / "pr-state.json")

    def test_file_is_pretty_printed_json(self, tmp_path):
        store = JsonFileStore(root=tmp_path)
        store.save(REF, _make_state())
        raw = store.path_for(REF).read_text()
        assert raw.startswith("{\n  ")
        assert json.loads(raw)["threads"]["PRRT_1"]["note"] == "Fixed in abc123"

    def test_reads_state_written_by_older_tool(self, tmp_path):
        store = JsonFileStore(root=tmp_path)
        path = store.path_for(REF)
        path.parent.mkdir(parents=True)
        path.write_text(
            json.dumps(
                {
                    "pr": REF,
                    "updatedAt": "2024-05-01T10:00:00.000Z",
                    "threads": {"PRRT_9": {"status": "done", "note": ""}},
                    "nitpicks": {},
                }
            )
        )
        assert store.load(REF).threads["PRRT_9"] == StatusEntry(status="done", note="")

    def test_no_temp_files_left_behind(self, tmp_path):
        store = JsonFileStore(root=tmp_path)
        store.save(REF, _make_state())
        store.save(REF, _make_state())
        assert [p.name for p in store.path_for(REF).parent.iterdir()] == ["pr-state.json"]

    def test_save_merges_are_additive_across_runs(self, tmp_path):
        store = JsonFileStore(root=tmp_path)
        store.save(REF, _make_state())

        state = store.load(REF)
        state.mark("nitpick", "b.py:3", "later")
        store.save(REF, state)

        loaded = store.load(REF)
        assert set(loaded.threads) == {"PRRT_1", "PRRT_2"}
        assert set(loaded.nitpicks) == {"src/a.ts:42", "b.py:3"}

    def test_different_prs_isolated(self, tmp_path):
        store = JsonFileStore(root=tmp_path)
        store.save("octo/app#1", _make_state())
        assert store.load("octo/app#2").threads == {}

    def test_root_expands_user(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        store = JsonFileStore(root="~/reviews")
        assert store.path_for(REF).is_relative_to(tmp_path)


def test_ref_to_dirname():
    assert ref_to_dirname("octo/app#7") == "octo-app-7"
    assert ref_to_dirname("my.org/some_repo#12") == "my.org-some_repo-12"


# ---------------------------------------------------------------------------
# MemoryStore
# ---------------------------------------------------------------------------


class TestMemoryStore:
    def test_roundtrip(self):
        store = MemoryStore()
        state = _make_state()
        store.save(REF, state)
        assert store.load(REF).threads == state.threads

    def test_load_returns_fresh_copy(self):
        store = MemoryStore()
        store.save(REF, _make_state())
        loaded = store.load(REF)
        loaded.mark("thread", "NEW", "done")
        assert "NEW" not in store.load(REF).threads

    def test_empty_when_never_saved(self):
        assert MemoryStore().load(REF) == ReviewState()

    def test_location(self):
        assert MemoryStore().location(REF) == "memory://octo/app#7"
