"""Markdown blocks appended to the GitHub Actions step summary."""
from datetime import datetime
from pathlib import Path

from .config import DeltaConfig


def timestamp(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")


def delta_summary(config: DeltaConfig, result, now: datetime | None = None) -> str:
    lines = [
        f"### {config.icon} Delta Deployment Summary",
        f"- **Target Environment**: {config.environment}",
        f"- **Base Branch Used**: {config.base_branch or '(feature validation)'}",
        f"- **Merge Base Commit**: {result.base_commit}",
        f"- **Run ID**: {config.run_id or 'N/A'}",
        f"- **Timestamp**: {timestamp(now)}",
        "- **Metadata Components Deployed:**",
    ]
    if result.additive_manifest is not None:
        lines += [f"- {name}" for name in result.additive_manifest.type_names]

    # an empty destructiveChanges.xml reports the same as none at all
    destructive = result.destructive_manifest
    if destructive is not None and destructive.type_names:
        lines.append("- **Destructive Components Removed:**")
        lines += [f"- {name}" for name in destructive.type_names]
    return "\n".join(lines) + "\n"


def backup_summary(config: DeltaConfig, result, now: datetime | None = None) -> str:
    lines = [
        "### 📦 Delta Backup Summary",
        f"- **Org Alias**: {config.org_alias}",
        f"- **Backup Directory**: {Path(result.backup_dir).name}",
        f"- **Manifest Used**: {Path(result.manifest).name}",
        f"- **Timestamp**: {timestamp(now)}",
    ]
    return "\n".join(lines) + "\n"


def append_step_summary(config: DeltaConfig, markdown: str, quiet: bool = False) -> bool:
    """Append ``markdown`` to $GITHUB_STEP_SUMMARY. Returns False when unset."""
    if config.step_summary is None:
        if not quiet:
            print("⚠️ GITHUB_STEP_SUMMARY not set. Skipping summary output.")
        return False
    print("📝 Writing summary to GitHub step summary...")
    with open(config.step_summary, "a", encoding="utf-8") as f:
        f.write(markdown)
    return True
