"""Salesforce delta packaging for CI: changed-source staging, package.xml,
destructiveChanges.xml and a pre-deploy backup of the target org."""
from .config import DeltaConfig, load_config
from .errors import (
    ConfigError,
    DeltaError,
    ManifestGenerationError,
    MarkerQueryError,
    NotAProjectError,
    NotARepositoryError,
    RetrievalError,
)
from .manifest import Manifest, MetadataMember, parse_manifest, read_manifest
from .resolver import DEPLOY, VALIDATE, DeltaResolver, DeltaResult, derive_members
from .vcs import ChangeRecord, ChangeStatus

__version__ = "0.1.0"
