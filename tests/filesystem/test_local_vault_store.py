"""Tests for LocalVaultStore."""

import pytest

from core.filesystem.local_backend import TRASH_DIR, LocalVaultStore


class TestReadWrite:
    def test_read_missing(self, vault):
        with pytest.raises(FileNotFoundError):
            vault.read("missing.md")

    def test_crlf_round_trip(self, vault):
        vault.create("crlf.md", "a\r\nb\r\n")
        assert vault.read("crlf.md").content == "a\r\nb\r\n"
        vault.write("crlf.md", "c\r\nd\r\n")
        assert (vault.root / "crlf.md").read_bytes() == b"c\r\nd\r\n"

    def test_write_requires_existing_file(self, vault):
        result = vault.write("nope.md", "x")
        assert not result.success
        assert not vault.exists("nope.md")

    def test_create_makes_parents(self, vault):
        assert vault.create("deep/er/note.md", "hi").success
        assert vault.is_file("deep/er/note.md")

    def test_create_refuses_existing(self, vault):
        vault.create("a.md", "1")
        result = vault.create("a.md", "2")
        assert not result.success
        assert vault.read("a.md").content == "1"

    def test_folder_is_not_a_file(self, vault):
        vault.create("folder/a.md")
        assert vault.exists("folder")
        assert not vault.is_file("folder")

    def test_path_outside_vault(self, vault):
        with pytest.raises(ValueError):
            vault.read("../escape.md")
        assert not vault.exists("../escape.md")


class TestMove:
    def test_move_creates_destination_folder(self, vault):
        vault.create("a.md", "A")
        assert vault.move("a.md", "archive/2024/a.md").success
        assert not vault.exists("a.md")
        assert vault.read("archive/2024/a.md").content == "A"

    def test_move_refuses_existing_destination(self, vault):
        vault.create("a.md", "A")
        vault.create("b.md", "B")
        result = vault.move("a.md", "b.md")
        assert not result.success
        assert vault.read("b.md").content == "B"

    def test_move_rewrites_wikilinks(self, vault):
        vault.create("topic.md", "T")
        vault.create("index.md", "See [[topic]] and [[topic|the topic]] and [[topic#Intro]].\n")
        vault.move("topic.md", "subject.md")
        assert vault.read("index.md").content == (
            "See [[subject]] and [[subject|the topic]] and [[subject#Intro]].\n"
        )

    def test_move_rewrites_markdown_links(self, vault):
        vault.create("notes/a b.md", "A")
        vault.create("index.md", "[A](notes/a%20b.md#top) [other](elsewhere.md)\n")
        vault.move("notes/a b.md", "archive/a b.md")
        assert vault.read("index.md").content == "[A](archive/a%20b.md#top) [other](elsewhere.md)\n"

    def test_unrelated_notes_untouched(self, vault):
        vault.create("a.md", "A")
        vault.create("other.md", "[[b]]\n")
        vault.move("a.md", "c.md")
        assert vault.read("other.md").content == "[[b]]\n"


class TestTrash:
    def test_trash_moves_into_trash_folder(self, vault):
        vault.create("notes/a.md", "A")
        assert vault.trash("notes/a.md").success
        assert not vault.exists("notes/a.md")
        assert (vault.root / TRASH_DIR / "notes" / "a.md").read_text() == "A"

    def test_trash_name_collision(self, vault):
        vault.create("a.md", "first")
        vault.trash("a.md")
        vault.create("a.md", "second")
        vault.trash("a.md")
        assert (vault.root / TRASH_DIR / "a 1.md").read_text() == "second"

    def test_trash_missing(self, vault):
        assert not vault.trash("missing.md").success


def test_root_is_resolved(tmp_path):
    store = LocalVaultStore(tmp_path / "x" / ".." / "vault")
    assert store.root == (tmp_path / "vault").resolve()
