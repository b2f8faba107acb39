"""Entry points for the CI scripts. No flags: everything comes from env vars / .env."""
import io
import sys

from .backup import ensure_project_root, run_backup
from .config import DeltaConfig, load_config, load_dotenv_file
from .errors import DeltaError, NotARepositoryError
from .org import SfCliOrg, SimpleSalesforceQuery
from .resolver import DeltaResolver
from .summary import append_step_summary, backup_summary, delta_summary
from .vcs import GitCli


def utf8_console() -> None:
    # --- UTF-8-safe console on Windows ---
    try:
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")
    except AttributeError:
        sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")
        sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding="utf-8", errors="replace")


def marker_source_for(config: DeltaConfig, sf_cli: SfCliOrg):
    """simple_salesforce when credentials are in the env, otherwise the sf CLI."""
    if config.credentials is not None:
        return SimpleSalesforceQuery(config.credentials)
    return sf_cli


def generate_delta(config: DeltaConfig, vcs=None, sf_cli=None, marker_source=None):
    vcs = vcs or GitCli(config.project_root)
    sf_cli = sf_cli or SfCliOrg(cwd=config.project_root)
    marker_source = marker_source or marker_source_for(config, sf_cli)

    print(f"🌍 Environment: {config.environment}")
    if config.base_branch:
        print(f"🔗 Base Branch: {config.base_branch}")

    # --- SAFETY CHECK ---
    ensure_project_root(config)
    if not vcs.is_inside_work_tree():
        raise NotARepositoryError("Not inside a Git repository. Aborting.")

    resolver = DeltaResolver(config, vcs, marker_source, sf_cli)
    result = resolver.run()
    if not result.has_changes:
        return result

    append_step_summary(config, delta_summary(config, result))
    print("")
    print("✅ Delta script completed successfully.")
    return result


def delta_backup(config: DeltaConfig, retriever=None):
    retriever = retriever or SfCliOrg(cwd=config.project_root)
    result = run_backup(config, retriever)
    if result.skipped or result.retrieval_failed:
        return result
    append_step_summary(config, backup_summary(config, result), quiet=True)
    return result


def _main(command) -> int:
    utf8_console()
    load_dotenv_file()
    try:
        config = load_config()
        command(config)
    except DeltaError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    return 0


def generate_delta_main() -> None:
    sys.exit(_main(generate_delta))


def delta_backup_main() -> None:
    sys.exit(_main(delta_backup))
