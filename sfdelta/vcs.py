"""Git access for the delta command.

``VersionControl`` is the interface the resolver depends on; ``GitCli`` runs
the real ``git`` binary in the project root.
"""
import shutil
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from .errors import CliNotFoundError, VersionControlError


class ChangeStatus(Enum):
    ADDED = "A"
    MODIFIED = "M"
    DELETED = "D"
    RENAMED = "R"
    COPIED = "C"
    TYPE_CHANGED = "T"
    UNMERGED = "U"
    UNKNOWN = "X"

    @classmethod
    def from_code(cls, code: str) -> "ChangeStatus":
        # R100 / C075 carry a similarity score after the letter
        letter = code[:1].upper()
        for status in cls:
            if status.value == letter:
                return status
        return cls.UNKNOWN


@dataclass(frozen=True)
class ChangeRecord:
    status: ChangeStatus
    path: str
    old_path: str | None = None

    @property
    def is_deletion(self) -> bool:
        return self.status is ChangeStatus.DELETED

    def __str__(self) -> str:
        if self.old_path:
            return f"{self.status.value}\t{self.old_path} -> {self.path}"
        return f"{self.status.value}\t{self.path}"


class VersionControl(Protocol):
    def is_inside_work_tree(self) -> bool: ...

    def merge_base(self, ref: str, other: str = "HEAD") -> str | None: ...

    def recent_commits(self, count: int) -> list[str]: ...

    def diff(self, base: str, head: str = "HEAD", pathspec: str | None = None) -> list[ChangeRecord]: ...


def parse_name_status(output: str) -> list[ChangeRecord]:
    """Parse ``git diff --name-status -z`` output.

    Entries are NUL separated: ``status path`` or, for renames and copies,
    ``status old_path new_path``.
    """
    tokens = output.split("\0")
    if tokens and tokens[-1] == "":
        tokens.pop()

    records = []
    i = 0
    while i < len(tokens):
        code = tokens[i].strip()
        i += 1
        if not code:
            continue
        status = ChangeStatus.from_code(code)
        if status in (ChangeStatus.RENAMED, ChangeStatus.COPIED):
            if i + 1 >= len(tokens):
                raise VersionControlError(f"Truncated rename entry in git diff output: {code}")
            old_path, new_path = tokens[i], tokens[i + 1]
            i += 2
            records.append(ChangeRecord(status, new_path.replace("\\", "/"), old_path.replace("\\", "/")))
        else:
            if i >= len(tokens):
                raise VersionControlError(f"Truncated entry in git diff output: {code}")
            records.append(ChangeRecord(status, tokens[i].replace("\\", "/")))
            i += 1
    return records


class GitCli:
    """VersionControl backed by the git command line."""

    def __init__(self, work_tree: Path, git: str | None = None):
        self.work_tree = Path(work_tree)
        self.git = git or shutil.which("git")
        if not self.git:
            raise CliNotFoundError("git not in PATH")

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        cmd = [self.git, *args]
        res = subprocess.run(
            cmd,
            cwd=self.work_tree,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding="utf-8",
        )
        if check and res.returncode != 0:
            raise VersionControlError(
                f"{' '.join(cmd)} failed ({res.returncode}): {res.stderr.strip()}"
            )
        return res

    def is_inside_work_tree(self) -> bool:
        res = self._run("rev-parse", "--is-inside-work-tree", check=False)
        return res.returncode == 0 and res.stdout.strip() == "true"

    def merge_base(self, ref: str, other: str = "HEAD") -> str | None:
        # exit 1 = unrelated histories, 128 = unknown ref; both mean "no merge base"
        res = self._run("merge-base", ref, other, check=False)
        sha = res.stdout.strip()
        if res.returncode != 0 or not sha:
            return None
        return sha

    def recent_commits(self, count: int) -> list[str]:
        """Newest-first SHAs of the last ``count`` commits on HEAD."""
        res = self._run("log", "-n", str(count), "--pretty=format:%H")
        return [line.strip() for line in res.stdout.splitlines() if line.strip()]

    def diff(self, base: str, head: str = "HEAD", pathspec: str | None = None) -> list[ChangeRecord]:
        # --relative: paths (and the pathspec) are relative to the project dir,
        # which may sit below the repository top level
        args = ["diff", "--name-status", "-z", "--relative", f"{base}..{head}"]
        if pathspec:
            args += ["--", pathspec]
        res = self._run(*args)
        return parse_name_status(res.stdout)
