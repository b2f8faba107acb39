"""Salesforce org access: SOQL marker queries, metadata retrieval, manifest generation.

The resolver and the backup command only see the three Protocols below.
``SfCliOrg`` implements all of them on top of the ``sf`` CLI;
``SimpleSalesforceQuery`` answers SOQL through simple_salesforce when
username/password credentials are available.
"""
import json
import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import Protocol

from simple_salesforce import Salesforce
from simple_salesforce.exceptions import SalesforceError

from .config import SalesforceCredentials
from .errors import CliNotFoundError, ManifestGenerationError, MarkerQueryError, RetrievalError

ANSI_RE = re.compile(r"\x1B\[[0-?]*[ -/]*[@-~]")


def strip_ansi(s: str) -> str:
    return ANSI_RE.sub("", s)


class MetadataQuery(Protocol):
    def query(self, org_alias: str, soql: str) -> list[dict]: ...


class MetadataRetriever(Protocol):
    def retrieve(self, org_alias: str, manifest: Path, output_dir: Path) -> None: ...


class ManifestGenerator(Protocol):
    def generate_manifest(self, source_dir: Path, api_version: str, output_dir: Path) -> Path: ...


def find_sf_cli() -> str:
    cli = shutil.which("sf") or shutil.which("sfdx")
    if not cli:
        raise CliNotFoundError("Salesforce CLI 'sf' command not found in PATH.")
    return cli


def cli_error_message(stdout: str, stderr: str) -> str:
    """Best-effort one-line reason from a failed ``sf ... --json`` call."""
    try:
        data = json.loads(stdout or "{}")
        message = data.get("message") or (data.get("result") or {}).get("message")
        if message:
            return strip_ansi(str(message)).strip()
    except (json.JSONDecodeError, AttributeError):
        pass
    text = strip_ansi(stderr or stdout or "").strip()
    return text.splitlines()[-1] if text else "no output"


class SfCliOrg:
    """All three org interfaces through the Salesforce CLI."""

    def __init__(self, cli: str | None = None, cwd: Path | None = None):
        self._cli = cli
        self.cwd = cwd

    @property
    def cli(self) -> str:
        if self._cli is None:
            self._cli = find_sf_cli()
        return self._cli

    def _run(self, args: list[str]) -> subprocess.CompletedProcess:
        cmd = [self.cli, *args, "--json"]
        env = os.environ.copy()
        env["TERM"] = "dumb"   # disable TTY spinners
        env["NO_COLOR"] = "1"  # drop ANSI color

        print("[INFO] Running:", " ".join(cmd))
        return subprocess.run(
            cmd,
            cwd=self.cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding="utf-8",
            env=env,
        )

    def query(self, org_alias: str, soql: str) -> list[dict]:
        res = self._run(["data", "query", "--query", soql, "--target-org", org_alias])
        if res.returncode != 0:
            raise MarkerQueryError(cli_error_message(res.stdout, res.stderr))
        try:
            data = json.loads(res.stdout or "{}")
        except json.JSONDecodeError as e:
            raise MarkerQueryError(f"Could not parse sf data query output: {e}") from e
        records = (data.get("result") or {}).get("records") or []
        return [r for r in records if isinstance(r, dict)]

    def retrieve(self, org_alias: str, manifest: Path, output_dir: Path) -> None:
        res = self._run([
            "project", "retrieve", "start",
            "--ignore-conflicts",
            "--target-org", org_alias,
            "--manifest", str(manifest),
            "--output-dir", str(output_dir),
        ])
        if res.returncode != 0:
            raise RetrievalError(cli_error_message(res.stdout, res.stderr))

    def generate_manifest(self, source_dir: Path, api_version: str, output_dir: Path) -> Path:
        res = self._run([
            "project", "manifest", "generate",
            "--source-dir", str(source_dir),
            "--api-version", api_version,
            "--output-dir", str(output_dir),
        ])
        if res.returncode != 0:
            raise ManifestGenerationError(cli_error_message(res.stdout, res.stderr))
        generated = Path(output_dir) / "package.xml"
        if not generated.is_file():
            raise ManifestGenerationError(f"sf reported success but {generated} was not written")
        return generated


class SimpleSalesforceQuery:
    """MetadataQuery over the REST API. The org alias is ignored: the
    credentials already pick the org."""

    def __init__(self, credentials: SalesforceCredentials, session=None):
        self.credentials = credentials
        self._sf = session

    @property
    def sf(self):
        if self._sf is None:
            self._sf = Salesforce(
                username=self.credentials.username,
                password=self.credentials.password,
                security_token=self.credentials.security_token,
                domain=self.credentials.domain,
            )
        return self._sf

    def query(self, org_alias: str, soql: str) -> list[dict]:
        try:
            result = self.sf.query_all(soql)
        except (SalesforceError, OSError) as e:
            raise MarkerQueryError(f"SOQL query failed: {e}") from e
        return list(result.get("records") or [])

