"""Delta resolution: which files changed, what to stage, what to destroy.

A run goes through one of three states:

* no changes     - nothing under the path filter changed; no artifacts at all
* validate       - feature branch check; stage + package.xml only
* deploy         - known environment; stage + package.xml + destructiveChanges.xml
"""
import shutil
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path

from .config import MARKER_FIELD, MARKER_QUERY, DeltaConfig
from .errors import ManifestGenerationError, MarkerQueryError, VersionControlError
from .manifest import Manifest, MetadataMember, read_manifest
from .org import ManifestGenerator, MetadataQuery
from .vcs import ChangeRecord, VersionControl

DEPLOY = "deploy"
VALIDATE = "validate"


@dataclass
class DeltaResult:
    mode: str
    base_commit: str
    changes: list[ChangeRecord] = field(default_factory=list)
    staged: list[ChangeRecord] = field(default_factory=list)
    deleted_paths: list[str] = field(default_factory=list)
    destructive_members: tuple[MetadataMember, ...] = ()
    package_xml: Path | None = None
    destructive_xml: Path | None = None
    additive_manifest: Manifest | None = None
    destructive_manifest: Manifest | None = None

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)


def strip_extensions(filename: str) -> str:
    """``Bar.cls-meta.xml`` -> ``Bar``."""
    return filename.split(".", 1)[0]


def member_from_path(path: str, package_root: str | None = None) -> MetadataMember | None:
    """Map ``<root>/<type>/<name>.<ext...>`` to a MetadataMember.

    The root is ``package_root`` when the path lives under it, otherwise the
    first path segment. The type is the raw folder name (``classes``), not
    the Metadata API type (``ApexClass``). Returns None for paths that do not
    have both a type and a name segment.
    """
    parts = [p for p in path.replace("\\", "/").split("/") if p]
    root_parts = [p for p in (package_root or "").split("/") if p]

    if root_parts and parts[:len(root_parts)] == root_parts:
        rest = parts[len(root_parts):]
    else:
        rest = parts[1:]

    if len(rest) < 2:
        return None
    type_name, name = rest[0], strip_extensions(rest[1])
    if not type_name or not name:
        return None
    return MetadataMember(type_name, name)


def derive_members(paths, package_root: str | None = None) -> tuple[MetadataMember, ...]:
    members = set()
    for path in paths:
        member = member_from_path(path, package_root)
        if member is not None:
            members.add(member)
    return tuple(sorted(members))


def build_destructive_manifest(members, api_version: str) -> Manifest:
    return Manifest.from_members(members, api_version)


class DeltaResolver:
    def __init__(
        self,
        config: DeltaConfig,
        vcs: VersionControl,
        marker_source: MetadataQuery,
        manifest_generator: ManifestGenerator,
    ):
        self.config = config
        self.vcs = vcs
        self.marker_source = marker_source
        self.manifest_generator = manifest_generator

    # --- STEP 1: Determine delta range ---
    def read_marker(self) -> str | None:
        """Last deployed commit recorded in the org, or None."""
        print("🔍 Retrieving last deploy SHA from org...")
        try:
            records = self.marker_source.query(self.config.org_alias, MARKER_QUERY)
        except MarkerQueryError as e:
            print(f"⚠️ Could not query deployment marker: {e}")
            return None
        if not records:
            return None
        sha = records[0].get(MARKER_FIELD)
        if sha is None:
            return None
        sha = str(sha).strip()
        if not sha or sha == "null":
            return None
        return sha

    def fallback_commit(self) -> str:
        commits = self.vcs.recent_commits(self.config.fallback_depth)
        if not commits:
            raise VersionControlError("No commits found on the current branch.")
        return commits[-1]

    def resolve_range(self) -> tuple[str, str]:
        """Return ``(base_commit, mode)``."""
        if self.config.is_deploy_target:
            sha = self.read_marker()
            if sha:
                print(f"✅ Found SHA: {sha}")
                return sha, DEPLOY
            print(f"⚠️ No SHA found. Using fallback: last {self.config.fallback_depth} commits.")
            sha = self.fallback_commit()
            print(f"🪃 Fallback SHA: {sha}")
            return sha, DEPLOY

        branch = self.config.base_branch
        base = self.vcs.merge_base(branch, "HEAD") if branch else None
        if not base:
            print(f"⚠️ Merge-base not found. Using HEAD~{self.config.fallback_depth}")
            base = f"HEAD~{self.config.fallback_depth}"
        return base, VALIDATE

    def list_changes(self, base_commit: str) -> list[ChangeRecord]:
        print(f"📊 Diff range: {base_commit}..HEAD")
        changes = self.vcs.diff(base_commit, "HEAD", self.config.path_filter)

        print("📋 Changed files:")
        if not changes:
            print("None")
        for change in changes:
            print(change)
        return changes

    # --- STEP 3-4: Prepare delta directory, copy modified files ---
    def stage(self, changes: list[ChangeRecord]) -> tuple[list[ChangeRecord], list[str]]:
        """Copy every surviving non-deleted file into the package dir.

        Returns the staged records and the deleted paths.
        """
        print("🧹 Creating delta directory...")
        shutil.rmtree(self.config.delta_dir, ignore_errors=True)
        self.config.package_dir.mkdir(parents=True, exist_ok=True)

        staged, deleted = [], []
        for change in changes:
            if change.is_deletion:
                deleted.append(change.path)
                continue
            source = self.config.project_root / change.path
            if not source.is_file():
                continue
            dest = self.config.package_dir / change.path
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, dest)
            staged.append(change)
        return staged, deleted

    # --- STEP 5: Generate package.xml ---
    def build_additive_manifest(self) -> Manifest:
        print("📦 Generating package.xml...")
        generated = self.manifest_generator.generate_manifest(
            self.config.package_dir, self.config.api_version, self.config.package_dir
        )
        try:
            manifest = read_manifest(generated)
        except (ET.ParseError, OSError) as e:
            raise ManifestGenerationError(f"Could not read generated manifest {generated}: {e}") from e
        manifest.version = self.config.api_version
        manifest.write(self.config.package_xml)
        if Path(generated).resolve() != self.config.package_xml.resolve():
            Path(generated).unlink(missing_ok=True)
        return manifest

    # --- STEP 6: Build destructiveChanges.xml (deploy only) ---
    def write_destructive_manifest(self, members) -> Manifest:
        print("🗑️ Building destructiveChanges.xml...")
        manifest = build_destructive_manifest(members, self.config.api_version)
        manifest.write(self.config.destructive_xml)
        return manifest

    def list_package_contents(self) -> None:
        print("📜 Delta package contents:")
        package_dir = self.config.package_dir
        for path in sorted(package_dir.rglob("*")):
            if path.is_file() and path != self.config.package_xml:
                print(f"- {path.relative_to(package_dir).as_posix()}")

    def run(self) -> DeltaResult:
        base_commit, mode = self.resolve_range()
        changes = self.list_changes(base_commit)
        result = DeltaResult(mode=mode, base_commit=base_commit, changes=changes)

        if not changes:
            print("🚫 No changes detected. Exiting.")
            return result

        result.staged, result.deleted_paths = self.stage(changes)
        result.additive_manifest = self.build_additive_manifest()
        result.package_xml = self.config.package_xml

        if mode == DEPLOY:
            result.destructive_members = derive_members(result.deleted_paths, self.config.package_root)
            result.destructive_manifest = self.write_destructive_manifest(result.destructive_members)
            result.destructive_xml = self.config.destructive_xml
        else:
            print("ℹ️ Skipping destructive deploy (validation context).")

        self.list_package_contents()
        return result
