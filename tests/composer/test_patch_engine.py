"""Tests for PatchEngine."""

import pytest

from core.composer.blocks import EditBlock
from core.composer.patch import MIN_FILE_SIZE_FOR_REPLACE, PatchEngine, PatchSuccess
from core.composer.results import ErrorKind, OperationError


def block_diff(search: str, replace: str) -> str:
    return f"------- SEARCH\n{search}\n=======\n{replace}\n+++++++ REPLACE\n"


@pytest.fixture
def engine():
    return PatchEngine(min_file_size=0)


class TestSizeGate:
    def test_default_threshold(self):
        assert PatchEngine().min_file_size == MIN_FILE_SIZE_FOR_REPLACE == 3000

    def test_small_document_rejected_before_parse(self):
        result = PatchEngine().apply_diff("tiny", "not even a diff")
        assert isinstance(result, OperationError)
        assert result.kind is ErrorKind.SIZE_GATE

    def test_document_at_threshold_allowed(self):
        original = "x" * 2999 + "y"
        result = PatchEngine().apply_diff(original, block_diff("y", "z"))
        assert isinstance(result, PatchSuccess)
        assert result.final_content.endswith("xz")


class TestApplyDiff:
    def test_no_blocks_is_invalid_instruction(self, engine):
        result = engine.apply_diff("hello world", "replace hello with bye")
        assert isinstance(result, OperationError)
        assert result.kind is ErrorKind.INVALID_INSTRUCTION
        assert "------- SEARCH" in result.detail

    def test_single_block(self, engine):
        result = engine.apply_diff("alpha\nbeta\ngamma\n", block_diff("beta", "BETA"))
        assert result == PatchSuccess(final_content="alpha\nBETA\ngamma\n", blocks_applied=1)

    def test_repeated_line_replaced_everywhere(self, engine):
        # replace_in_file would reject this document: it is under the 3000 character gate
        diff = "------- SEARCH\nfoo\n=======\nbar\n+++++++ REPLACE"
        result = engine.apply_diff("foo\nfoo\nbaz", diff)
        assert result == PatchSuccess(final_content="bar\nbar\nbaz", blocks_applied=1)

    def test_identity_edit_is_no_op(self, engine):
        result = engine.apply_diff("alpha\nbeta\n", block_diff("beta", "beta"))
        assert isinstance(result, OperationError)
        assert result.kind is ErrorKind.NO_OP


class TestApply:
    def test_blocks_apply_in_order_on_evolving_copy(self, engine):
        blocks = [EditBlock("one", "two"), EditBlock("two", "three")]
        result = engine.apply("one\n", blocks)
        assert isinstance(result, PatchSuccess)
        assert result.final_content == "three\n"
        assert result.blocks_applied == 2

    def test_no_match_aborts_whole_run(self, engine):
        original = "first\nsecond\n"
        blocks = [EditBlock("first", "FIRST"), EditBlock("missing", "x")]
        result = engine.apply(original, blocks)
        assert isinstance(result, OperationError)
        assert result.kind is ErrorKind.NO_MATCH
        assert result.detail == "missing"

    def test_empty_search_is_no_match(self, engine):
        result = engine.apply("content\n", [EditBlock("", "x")])
        assert isinstance(result, OperationError)
        assert result.kind is ErrorKind.NO_MATCH

    def test_replaces_every_occurrence(self, engine):
        result = engine.apply("foo bar foo\nfoo\n", [EditBlock("foo", "baz")])
        assert isinstance(result, PatchSuccess)
        assert result.final_content == "baz bar baz\nbaz\n"
        assert result.blocks_applied == 1

    def test_unchanged_block_not_counted(self, engine):
        blocks = [EditBlock("keep", "keep"), EditBlock("change", "changed")]
        result = engine.apply("keep\nchange\n", blocks)
        assert isinstance(result, PatchSuccess)
        assert result.blocks_applied == 1

    def test_trailing_whitespace_fallback(self, engine):
        result = engine.apply("intro\nlast line", [EditBlock("last line\n\n", "final line\n")])
        assert isinstance(result, PatchSuccess)
        assert result.final_content == "intro\nfinal line"

    def test_crlf_document_keeps_crlf(self, engine):
        original = "line one\r\nline two\r\nline three\r\n"
        result = engine.apply(original, [EditBlock("line one\nline two", "line 1\nline 2")])
        assert isinstance(result, PatchSuccess)
        assert result.final_content == "line 1\r\nline 2\r\nline three\r\n"

    def test_crlf_search_against_lf_document(self, engine):
        result = engine.apply("a\nb\nc\n", [EditBlock("a\r\nb", "x\r\ny")])
        assert isinstance(result, PatchSuccess)
        assert result.final_content == "x\ny\nc\n"
        assert "\r" not in result.final_content

    def test_style_comes_from_original_not_replacement(self, engine):
        original = "a\r\nb\r\nc\r\n"
        result = engine.apply(original, [EditBlock("b", "b1\nb2")])
        assert isinstance(result, PatchSuccess)
        assert result.final_content == "a\r\nb1\r\nb2\r\nc\r\n"

    def test_original_is_not_modified(self, engine):
        original = "keep me\n"
        engine.apply(original, [EditBlock("keep", "drop")])
        assert original == "keep me\n"
