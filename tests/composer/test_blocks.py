"""Tests for SEARCH/REPLACE block parsing."""

from core.composer.blocks import EditBlock, parse_search_replace_blocks


class TestParseBlocks:
    def test_single_block(self):
        diff = "------- SEARCH\nold line\n=======\nnew line\n+++++++ REPLACE"
        assert parse_search_replace_blocks(diff) == [EditBlock("old line", "new line")]

    def test_multiple_blocks_in_order(self):
        diff = (
            "------- SEARCH\nfirst\n=======\n1\n+++++++ REPLACE\n"
            "some chatter in between\n"
            "------- SEARCH\nsecond\n=======\n2\n+++++++ REPLACE\n"
        )
        blocks = parse_search_replace_blocks(diff)
        assert [b.search_text for b in blocks] == ["first", "second"]
        assert [b.replace_text for b in blocks] == ["1", "2"]

    def test_glued_markers(self):
        blocks = parse_search_replace_blocks("-------SEARCHold=======new+++++++REPLACE")
        assert blocks == [EditBlock("old", "new")]

    def test_crlf_around_markers(self):
        diff = "------- SEARCH\r\nold\r\n=======\r\nnew\r\n+++++++ REPLACE\r\n"
        assert parse_search_replace_blocks(diff) == [EditBlock("old", "new")]

    def test_longer_and_shorter_marker_runs(self):
        diff = "--- SEARCH\nold\n==========\nnew\n+++ REPLACE"
        assert parse_search_replace_blocks(diff) == [EditBlock("old", "new")]

    def test_sides_are_trimmed(self):
        diff = "------- SEARCH\n\n   padded   \n\n=======\n  new  \n+++++++ REPLACE"
        assert parse_search_replace_blocks(diff) == [EditBlock("padded", "new")]

    def test_empty_replacement(self):
        diff = "------- SEARCH\ndelete me\n=======\n+++++++ REPLACE"
        assert parse_search_replace_blocks(diff) == [EditBlock("delete me", "")]

    def test_multiline_content_preserved(self):
        diff = "------- SEARCH\nline 1\nline 2\n=======\nline A\nline B\n+++++++ REPLACE"
        (block,) = parse_search_replace_blocks(diff)
        assert block.search_text == "line 1\nline 2"
        assert block.replace_text == "line A\nline B"

    def test_no_blocks(self):
        assert parse_search_replace_blocks("just replace foo with bar please") == []

    def test_missing_replace_marker(self):
        assert parse_search_replace_blocks("------- SEARCH\nold\n=======\nnew\n") == []
