"""File collection utilities for package publishing."""
import re
from pathlib import Path
from typing import Iterable, List, Tuple

from ..models import PackageFile

MARKDOWN_SUFFIXES = {".md", ".mdx"}
_FRONT_MATTER_TITLE = re.compile(r"^title:\s*['\"]?(.+?)['\"]?\s*$")


class FileCollector:
    """Collects content files from a package root."""

    def __init__(self, ignored_names: Iterable[str] = ()):
        self._ignored = set(ignored_names)

    def collect_files(self, root: Path) -> List[PackageFile]:
        """
        Collect all content files recursively.

        Hidden files and folders (dot-prefixed) and ignored names are skipped.

        Args:
            root: Package root to scan

        Returns:
            Package files sorted by relative path
        """
        root = Path(root)
        files = []
        for item in root.rglob("*"):
            rel = item.relative_to(root)
            if any(part.startswith(".") for part in rel.parts):
                continue
            if item.name in self._ignored or not item.is_file():
                continue
            files.append(PackageFile(path=rel.as_posix(), source=item, name=self.display_name(item)))
        return sorted(files, key=lambda f: f.path)

    @staticmethod
    def display_name(path: Path) -> str:
        """Title from markdown front matter or first heading; file name otherwise."""
        if path.suffix.lower() not in MARKDOWN_SUFFIXES:
            return path.name
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError):
            return path.name

        in_front_matter = bool(lines) and lines[0].strip() == "---"
        for line in lines[1:] if in_front_matter else lines:
            stripped = line.strip()
            if in_front_matter:
                if stripped == "---":
                    in_front_matter = False
                    continue
                match = _FRONT_MATTER_TITLE.match(stripped)
                if match:
                    return match.group(1)
                continue
            if stripped.startswith("# "):
                return stripped[2:].strip()
        return path.name

    @staticmethod
    def partition_encodable(files: Iterable[PackageFile]) -> Tuple[List[PackageFile], List[PackageFile]]:
        """Split files into (valid, invalid) by whether their relative path is valid UTF-8."""
        valid, invalid = [], []
        for file in files:
            try:
                file.path.encode("utf-8")
            except UnicodeEncodeError:
                invalid.append(file)
            else:
                valid.append(file)
        return valid, invalid

    @staticmethod
    def printable_path(path: str) -> str:
        """Path with undecodable bytes shown as \\xNN escapes."""
        return path.encode("utf-8", "surrogateescape").decode("utf-8", "backslashreplace")
