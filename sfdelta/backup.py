"""Pre-deployment backup of the components listed in the delta package.xml."""
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from .config import PROJECT_FILE, DeltaConfig
from .errors import NotAProjectError, RetrievalError
from .org import MetadataRetriever


@dataclass
class BackupResult:
    backup_dir: Path
    manifest: Path
    skipped: bool = False
    retrieval_failed: bool = False
    files: list[Path] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return not self.skipped and not self.retrieval_failed


def ensure_project_root(config: DeltaConfig) -> None:
    if not (config.project_root / PROJECT_FILE).is_file():
        raise NotAProjectError(
            f"Missing {PROJECT_FILE} in '{config.project_root}'. Not a valid Salesforce DX workspace."
        )


def retrieved_xml_files(backup_dir: Path) -> list[Path]:
    return sorted(p for p in Path(backup_dir).rglob("*.xml") if p.is_file())


def run_backup(config: DeltaConfig, retriever: MetadataRetriever, now: datetime | None = None) -> BackupResult:
    backup_dir = config.resolve_backup_dir(now)
    manifest = config.package_xml

    print(f"📁 Project root: {config.project_root}")
    print(f"📂 Backup destination: {backup_dir}")
    print(f"📄 Manifest path: {manifest}")

    ensure_project_root(config)
    result = BackupResult(backup_dir=backup_dir, manifest=manifest)

    if not manifest.is_file():
        print(f"📭 No package.xml found at '{manifest}'. Skipping backup.")
        result.skipped = True
        return result

    print(f"📦 Backing up metadata from org '{config.org_alias}'...")
    backup_dir.mkdir(parents=True, exist_ok=True)

    try:
        retriever.retrieve(config.org_alias, manifest, backup_dir)
    except RetrievalError as e:
        print(f"⚠️ Metadata retrieval failed. Possibly first-time components or unsupported types. ({e})")
        result.retrieval_failed = True
        return result

    result.files = retrieved_xml_files(backup_dir)
    if not result.files:
        print("⚠️ No metadata files retrieved. Likely new components not present in org.")
        print("🧩 Continuing pipeline without backup.")
    else:
        print(f"✅ Backup completed to '{backup_dir}'.")
    return result
