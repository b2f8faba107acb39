import os
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError

# --- DEFAULTS ---
DEFAULT_API_VERSION = "63.0"
DEFAULT_FALLBACK_DEPTH = 3
DEFAULT_ORG_ALIAS = "target-org"
DEFAULT_ENVIRONMENT = "SF-QA"

DELTA_DIR = "delta"
PACKAGE_DIR = "package"
PACKAGE_XML = "package.xml"
DESTRUCTIVE_XML = "destructiveChanges.xml"
PROJECT_FILE = "sfdx-project.json"
PATH_FILTER = "force-app/**"
PACKAGE_ROOT = "force-app/main/default"

MARKER_QUERY = "SELECT Last_Deployed_SHA__c FROM Deployment_Metadata__mdt"
MARKER_FIELD = "Last_Deployed_SHA__c"

VALIDATION_ICON = "🧩"


@dataclass(frozen=True)
class Target:
    branch: str
    icon: str


# Deployment environments -> remote branch + icon shown in the step summary.
# Anything not listed here is a feature validation run.
TARGETS = {
    "SF-QA": Target("origin/SF-QA", "🔬"),
    "SF-UAT": Target("origin/SF-UAT", "🧪"),
    "SF-Release": Target("origin/SF-Release", "🚦"),
}


@dataclass(frozen=True)
class SalesforceCredentials:
    username: str
    password: str
    security_token: str
    domain: str = "test"


@dataclass(frozen=True)
class DeltaConfig:
    """Everything the delta and backup commands read from the environment."""

    project_root: Path
    api_version: str = DEFAULT_API_VERSION
    fallback_depth: int = DEFAULT_FALLBACK_DEPTH
    org_alias: str = DEFAULT_ORG_ALIAS
    environment: str = DEFAULT_ENVIRONMENT
    base_branch_override: str | None = None
    backup_dir: Path | None = None
    step_summary: Path | None = None
    run_id: str | None = None
    path_filter: str = PATH_FILTER
    package_root: str = PACKAGE_ROOT
    credentials: SalesforceCredentials | None = None

    @property
    def target(self) -> Target | None:
        return TARGETS.get(self.environment)

    @property
    def is_deploy_target(self) -> bool:
        return self.target is not None

    @property
    def base_branch(self) -> str | None:
        if self.target is not None:
            return self.target.branch
        return self.base_branch_override or None

    @property
    def icon(self) -> str:
        return self.target.icon if self.target is not None else VALIDATION_ICON

    @property
    def delta_dir(self) -> Path:
        return self.project_root / DELTA_DIR

    @property
    def package_dir(self) -> Path:
        return self.delta_dir / PACKAGE_DIR

    @property
    def package_xml(self) -> Path:
        return self.package_dir / PACKAGE_XML

    @property
    def destructive_xml(self) -> Path:
        return self.delta_dir / DESTRUCTIVE_XML

    def resolve_backup_dir(self, now: datetime | None = None) -> Path:
        if self.backup_dir is not None:
            return self.backup_dir
        stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
        return self.project_root / f"deltabackup-{stamp}"


def _env(environ, name: str) -> str | None:
    value = (environ.get(name) or "").strip()
    return value or None


def _parse_depth(raw: str | None) -> int:
    if raw is None:
        return DEFAULT_FALLBACK_DEPTH
    try:
        depth = int(raw)
    except ValueError:
        raise ConfigError(f"FALLBACK_DEPTH must be a whole number, got '{raw}'") from None
    if depth < 1:
        raise ConfigError(f"FALLBACK_DEPTH must be at least 1, got {depth}")
    return depth


def _credentials(environ) -> SalesforceCredentials | None:
    username = _env(environ, "SF_USERNAME")
    password = _env(environ, "SF_PASSWORD")
    token = _env(environ, "SF_SECURITY_TOKEN")
    if not all([username, password, token]):
        return None
    return SalesforceCredentials(
        username=username,
        password=password,
        security_token=token,
        domain=_env(environ, "SF_DOMAIN") or "test",
    )


def load_dotenv_file() -> None:
    # --- Load .env robustly (works regardless of where you run the script) ---
    dotenv_path = find_dotenv(usecwd=True)
    if not dotenv_path or not load_dotenv(dotenv_path, override=False):
        print("ℹ️ .env not found (using OS env only)", file=sys.stderr)


def load_config(environ=None, project_root: Path | None = None) -> DeltaConfig:
    """Build a DeltaConfig from environment variables.

    ``environ`` defaults to ``os.environ``; tests pass a plain dict.
    """
    if environ is None:
        environ = os.environ
    root = (project_root or Path.cwd()).resolve()

    backup_dir = _env(environ, "BACKUP_DIR")
    step_summary = _env(environ, "GITHUB_STEP_SUMMARY")

    return DeltaConfig(
        project_root=root,
        api_version=_env(environ, "API_VERSION") or DEFAULT_API_VERSION,
        fallback_depth=_parse_depth(_env(environ, "FALLBACK_DEPTH")),
        org_alias=_env(environ, "ORG_ALIAS") or DEFAULT_ORG_ALIAS,
        environment=_env(environ, "environment") or DEFAULT_ENVIRONMENT,
        base_branch_override=_env(environ, "BASE_BRANCH"),
        backup_dir=Path(backup_dir) if backup_dir else None,
        step_summary=Path(step_summary) if step_summary else None,
        run_id=_env(environ, "GITHUB_RUN_ID"),
        credentials=_credentials(environ),
    )
