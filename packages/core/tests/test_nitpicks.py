"""Tests for nitpick extraction and identity."""

import hashlib

from prtriage_core.extract.nitpicks import Nitpick, nitpick_id, parse_nitpicks, with_status
from prtriage_store.models import ReviewState


def _file_group(path: str, entries: list[str]) -> str:
    body = "\n\n".join(entries)
    return f"<details>\n<summary>{path} ({len(entries)})</summary><blockquote>\n\n{body}\n\n</blockquote></details>"


def _section(title: str, groups: list[str]) -> str:
    count = len(groups)
    return f"<details>\n<summary>{title} ({count})</summary><blockquote>\n\n" + "\n".join(groups) + "\n\n</blockquote></details>"


BOT_BODY = (
    "**Actionable comments posted: 0**\n\n"
    + _section(
        "🧹 Nitpick comments",
        [_file_group("src/a.ts", ["`42`: Prefer `const` here.", "`50-52`: Extract this into a helper."])],
    )
    + "\n\n<details>\n<summary>📜 Review details</summary>\nnot a nitpick\n</details>"
)


# ---------------------------------------------------------------------------
# nitpick_id
# ---------------------------------------------------------------------------


class TestNitpickId:
    def test_path_based_id(self):
        assert nitpick_id("src/a.ts", "42", "anything") == "src/a.ts:42"

    def test_deterministic(self):
        assert nitpick_id("src/a.ts", "42", "x") == nitpick_id("src/a.ts", "42", "x")
        assert nitpick_id("", "42", "x") == nitpick_id("", "42", "x")

    def test_content_change_keeps_path_based_id(self):
        assert nitpick_id("src/a.ts", "1-3", "old text") == nitpick_id("src/a.ts", "1-3", "new text")

    def test_unknown_path_falls_back_to_content_hash(self):
        expected = hashlib.sha1(b"some content").hexdigest()[:8]
        assert nitpick_id("unknown", "42", "some content") == expected

    def test_empty_path_falls_back_to_content_hash(self):
        result = nitpick_id("", "42", "some content")
        assert len(result) == 8
        assert result != nitpick_id("src/a.ts", "42", "some content")

    def test_empty_line_falls_back_to_content_hash(self):
        assert nitpick_id("src/a.ts", "", "text") == hashlib.sha1(b"text").hexdigest()[:8]

    def test_path_mentioning_comments_uses_hash(self):
        assert nitpick_id("Additional Comments", "3", "text") == hashlib.sha1(b"text").hexdigest()[:8]

    def test_hash_id_changes_with_content(self):
        assert nitpick_id("unknown", "1", "a") != nitpick_id("unknown", "1", "b")


# ---------------------------------------------------------------------------
# parse_nitpicks
# ---------------------------------------------------------------------------


class TestParseNitpicks:
    def test_end_to_end_single_file_group(self):
        nitpicks = parse_nitpicks(BOT_BODY)
        assert [n.id for n in nitpicks] == ["src/a.ts:42", "src/a.ts:50-52"]
        assert nitpicks[0].path == "src/a.ts"
        assert nitpicks[0].line == "42"
        assert nitpicks[0].content == "Prefer `const` here."
        assert nitpicks[1].line == "50-52"
        assert nitpicks[1].content == "Extract this into a helper."

    def test_additional_comments_section(self):
        body = _section("✅ Additional comments", [_file_group("lib/b.py", ["`7`: Good catch."])])
        (nitpick,) = parse_nitpicks(body)
        assert nitpick.id == "lib/b.py:7"

    def test_section_label_match_is_case_insensitive(self):
        body = _section("NITPICK COMMENTS", [_file_group("x.go", ["`1`: a"])])
        assert len(parse_nitpicks(body)) == 1

    def test_multiple_files_and_sections(self):
        body = (
            _section("Nitpick comments", [_file_group("a.py", ["`1`: one"]), _file_group("b.py", ["`2`: two"])])
            + "\n"
            + _section("Additional comments", [_file_group("c.py", ["`3`: three"])])
        )
        assert [n.id for n in parse_nitpicks(body)] == ["a.py:1", "b.py:2", "c.py:3"]

    def test_group_without_count_label_is_skipped(self):
        bad_group = "<details>\n<summary>Review details</summary>\n`5`: looks like an entry\n</details>"
        body = _section("Nitpick comments", [bad_group, _file_group("ok.py", ["`9`: fine"])])
        assert [n.id for n in parse_nitpicks(body)] == ["ok.py:9"]

    def test_non_nitpick_sections_ignored(self):
        body = "<details>\n<summary>Walkthrough</summary>\n" + _file_group("a.py", ["`1`: x"]) + "\n</details>"
        assert parse_nitpicks(body) == []

    def test_empty_and_none_body(self):
        assert parse_nitpicks("") == []
        assert parse_nitpicks(None) == []

    def test_unterminated_section_yields_nothing(self):
        body = "<details>\n<summary>Nitpick comments (1)</summary><blockquote>\n" + _file_group("a.py", ["`1`: x"])
        assert parse_nitpicks(body) == []

    def test_multiline_entry_content(self):
        entry = "`10-12`: First line.\n\n```diff\n- old\n+ new\n```"
        (nitpick,) = parse_nitpicks(_section("Nitpick comments", [_file_group("a.py", [entry])]))
        assert nitpick.line == "10-12"
        assert nitpick.content.startswith("First line.")
        assert "+ new" in nitpick.content

    def test_meta_group_label_takes_hash_id(self):
        body = _section("Nitpick comments", [_file_group("Outside diff range comments", ["`4`: meta"])])
        (nitpick,) = parse_nitpicks(body)
        assert nitpick.id == hashlib.sha1(b"meta").hexdigest()[:8]

    def test_ids_stable_across_runs(self):
        assert [n.id for n in parse_nitpicks(BOT_BODY)] == [n.id for n in parse_nitpicks(BOT_BODY)]


class TestWithStatus:
    def test_joins_status_by_id(self):
        state = ReviewState()
        state.mark("nitpick", "src/a.ts:42", "done")
        nitpicks = with_status(parse_nitpicks(BOT_BODY), state)
        assert nitpicks[0].status == "done"
        assert nitpicks[1].status is None

    def test_original_records_untouched(self):
        original = parse_nitpicks(BOT_BODY)
        state = ReviewState()
        state.mark("nitpick", "src/a.ts:42", "skip")
        with_status(original, state)
        assert original[0].status is None

    def test_to_dict_omits_missing_status(self):
        n = Nitpick(id="a:1", path="a", line="1", content="c")
        assert "status" not in n.to_dict()
        assert Nitpick(id="a:1", path="a", line="1", content="c", status="later").to_dict()["status"] == "later"
