from pathlib import Path

import pytest

from sfdelta.config import DeltaConfig
from sfdelta.errors import ManifestGenerationError, MarkerQueryError, RetrievalError
from sfdelta.manifest import Manifest
from sfdelta.resolver import strip_extensions

FOLDER_TYPES = {
    "classes": "ApexClass",
    "triggers": "ApexTrigger",
    "flows": "Flow",
    "objects": "CustomObject",
    "lwc": "LightningComponentBundle",
}


class FakeVcs:
    def __init__(self, changes=None, commits=None, merge_bases=None, inside=True):
        self.changes = list(changes or [])
        self.commits = list(commits or ["c3", "c2", "c1"])
        self.merge_bases = dict(merge_bases or {})
        self.inside = inside
        self.diff_calls = []

    def is_inside_work_tree(self):
        return self.inside

    def merge_base(self, ref, other="HEAD"):
        return self.merge_bases.get(ref)

    def recent_commits(self, count):
        return self.commits[:count]

    def diff(self, base, head="HEAD", pathspec=None):
        self.diff_calls.append((base, head, pathspec))
        return list(self.changes)


class FakeOrg:
    """Stands in for the sf CLI: marker query, retrieve and manifest generate."""

    def __init__(self, records=None, query_error=False, retrieve_error=False,
                 generate_error=False, retrieved=None):
        self.records = records or []
        self.query_error = query_error
        self.retrieve_error = retrieve_error
        self.generate_error = generate_error
        self.retrieved = retrieved or {}
        self.queries = []
        self.retrievals = []

    def query(self, org_alias, soql):
        self.queries.append((org_alias, soql))
        if self.query_error:
            raise MarkerQueryError("INVALID_TYPE: sObject type 'Deployment_Metadata__mdt' is not supported.")
        return self.records

    def retrieve(self, org_alias, manifest, output_dir):
        self.retrievals.append((org_alias, Path(manifest), Path(output_dir)))
        if self.retrieve_error:
            raise RetrievalError("Entity of type 'ApexClass' named 'Foo' cannot be found")
        for rel, content in self.retrieved.items():
            target = Path(output_dir) / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")

    def generate_manifest(self, source_dir, api_version, output_dir):
        if self.generate_error:
            raise ManifestGenerationError("No source-backed components present in the package.")
        manifest = Manifest(version="58.0")
        for path in Path(source_dir).rglob("*"):
            if not path.is_file() or path.name == "package.xml":
                continue
            parts = path.relative_to(source_dir).parts
            if "default" not in parts:
                continue
            rest = parts[parts.index("default") + 1:]
            if len(rest) >= 2 and rest[0] in FOLDER_TYPES:
                manifest.add(FOLDER_TYPES[rest[0]], strip_extensions(rest[1]))
        return manifest.write(Path(output_dir) / "package.xml")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    (root / "sfdx-project.json").write_text('{"packageDirectories": [{"path": "force-app", "default": true}]}')
    return root


@pytest.fixture
def make_config(project: Path):
    def _make(**overrides) -> DeltaConfig:
        return DeltaConfig(project_root=project, **overrides)
    return _make


@pytest.fixture
def write_source(project: Path):
    def _write(rel: str, content: str = "") -> Path:
        path = project / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path
    return _write
