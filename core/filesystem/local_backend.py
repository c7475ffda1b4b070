"""Local vault store - a vault that is a plain folder on disk."""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path, PurePosixPath

from core.filesystem.backend import DocumentStore, FileReadResult, FileWriteResult

logger = logging.getLogger(__name__)

TRASH_DIR = ".trash"

# [[target]], [[target|alias]], [[target#heading]]
_WIKILINK_RE = re.compile(r"\[\[([^\]|#\n]+)((?:[#|][^\]\n]*)?)\]\]")
# [text](target) / [text](target#heading)
_MDLINK_RE = re.compile(r"(\[[^\]\n]*\]\()([^)\s#]+)((?:#[^)\s]*)?\))")


class LocalVaultStore(DocumentStore):
    """Store that operates directly on a vault folder."""

    def __init__(self, root: str | Path):
        self._root = Path(root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        resolved = (self._root / path).resolve()
        try:
            resolved.relative_to(self._root)
        except ValueError:
            raise ValueError(f"Path outside vault: {path}") from None
        return resolved

    def read(self, path: str) -> FileReadResult:
        p = self._resolve(path)
        if not p.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        with open(p, encoding="utf-8", newline="") as f:
            content = f.read()
        return FileReadResult(content=content, size=p.stat().st_size)

    def write(self, path: str, content: str) -> FileWriteResult:
        try:
            p = self._resolve(path)
            if not p.is_file():
                return FileWriteResult(success=False, error=f"File not found: {path}")
            # newline="" keeps CRLF documents byte-identical
            with open(p, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            return FileWriteResult(success=True)
        except Exception as e:
            return FileWriteResult(success=False, error=str(e))

    def exists(self, path: str) -> bool:
        try:
            return self._resolve(path).exists()
        except ValueError:
            return False

    def is_file(self, path: str) -> bool:
        try:
            return self._resolve(path).is_file()
        except ValueError:
            return False

    def create(self, path: str, initial_text: str = "") -> FileWriteResult:
        try:
            p = self._resolve(path)
            if p.exists():
                return FileWriteResult(success=False, error=f"Path already exists: {path}")
            p.parent.mkdir(parents=True, exist_ok=True)
            with open(p, "w", encoding="utf-8", newline="") as f:
                f.write(initial_text)
            return FileWriteResult(success=True)
        except Exception as e:
            return FileWriteResult(success=False, error=str(e))

    def move(self, source_path: str, dest_path: str) -> FileWriteResult:
        try:
            src = self._resolve(source_path)
            dst = self._resolve(dest_path)
            if not src.is_file():
                return FileWriteResult(success=False, error=f"File not found: {source_path}")
            if dst.exists():
                return FileWriteResult(success=False, error=f"Path already exists: {dest_path}")
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(src), str(dst))
        except Exception as e:
            return FileWriteResult(success=False, error=str(e))

        rewritten = self._rewrite_links(source_path, dest_path)
        if rewritten:
            logger.info("Updated links in %d note(s) after moving %s", rewritten, source_path)
        return FileWriteResult(success=True)

    def trash(self, path: str) -> FileWriteResult:
        try:
            src = self._resolve(path)
            if not src.is_file():
                return FileWriteResult(success=False, error=f"File not found: {path}")
            target = self._root / TRASH_DIR / PurePosixPath(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            counter = 1
            while target.exists():
                target = target.with_name(f"{src.stem} {counter}{src.suffix}")
                counter += 1
            shutil.move(str(src), str(target))
            return FileWriteResult(success=True)
        except Exception as e:
            return FileWriteResult(success=False, error=str(e))

    # ── link maintenance ──

    def _rewrite_links(self, old_path: str, new_path: str) -> int:
        """Point wiki and markdown links at the moved file. Returns notes changed."""
        old = PurePosixPath(old_path)
        new = PurePosixPath(new_path)
        by_full = {str(old): str(new), str(old.with_suffix("")): str(new.with_suffix(""))}
        by_stem = {old.stem: new.stem} if old.stem != new.stem else {}

        def wiki(match: re.Match) -> str:
            target = match.group(1).strip()
            if target in by_full:
                return f"[[{by_full[target]}{match.group(2)}]]"
            if target in by_stem:
                return f"[[{by_stem[target]}{match.group(2)}]]"
            return match.group(0)

        def markdown(match: re.Match) -> str:
            target = match.group(2).replace("%20", " ")
            if target == str(old):
                return f"{match.group(1)}{str(new).replace(' ', '%20')}{match.group(3)}"
            return match.group(0)

        changed = 0
        for note in self._root.rglob("*.md"):
            if TRASH_DIR in note.relative_to(self._root).parts:
                continue
            try:
                with open(note, encoding="utf-8", newline="") as f:
                    text = f.read()
            except (OSError, UnicodeDecodeError):
                continue
            updated = _MDLINK_RE.sub(markdown, _WIKILINK_RE.sub(wiki, text))
            if updated != text:
                with open(note, "w", encoding="utf-8", newline="") as f:
                    f.write(updated)
                changed += 1
        return changed
