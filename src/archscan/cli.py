"""Click CLI for archscan."""

import click

_SEVERITY_CHOICES = click.Choice(["low", "medium", "high"])
_CATEGORY_CHOICES = click.Choice(
    ["circular_dependency", "dead_code", "god_module", "layering_violation", "coupling"]
)


def _setup_logging(verbose: bool) -> None:
    import logging

    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO)


def _load_config_or_fail(repo):
    from archscan.config import detector_config, load_config, structural_config

    try:
        config = load_config(repo)
        # Validate up front so bad keys surface as usage errors
        structural_config(config)
        detector_config(config)
    except ValueError as e:
        raise click.UsageError(f"Invalid .archscan/config.toml: {e}") from e
    return config


def _echo_findings_summary(findings) -> None:
    counts = {"high": 0, "medium": 0, "low": 0}
    for f in findings:
        counts[f.severity] = counts.get(f.severity, 0) + 1
    click.echo(
        f"  Findings:        {len(findings)} "
        f"(high {counts['high']}, medium {counts['medium']}, low {counts['low']})"
    )


@click.group()
def cli():
    """archscan: structural indexing and architecture checks."""


@cli.command()
@click.argument("repo_path", default=".", type=click.Path(exists=True))
def init(repo_path):
    """Initialize a .archscan directory with config.toml."""
    from pathlib import Path

    from archscan.config import create_default_config
    from archscan.constants import DATA_DIR

    repo = Path(repo_path).resolve()
    try:
        config_path = create_default_config(repo)
    except FileExistsError as e:
        raise click.UsageError(str(e)) from e
    click.echo(f"Created {config_path}")

    # Ensure .archscan/ is in .gitignore
    gitignore = repo / ".gitignore"
    marker = f"{DATA_DIR}/"
    if gitignore.exists():
        content = gitignore.read_text()
        if marker not in content:
            with open(gitignore, "a") as f:
                f.write(f"\n{marker}\n")
            click.echo(f"Added {marker} to .gitignore")
    else:
        gitignore.write_text(f"{marker}\n")
        click.echo(f"Created .gitignore with {marker}")


@cli.command()
@click.argument("repo_path", default=".", type=click.Path(exists=True, file_okay=False))
@click.option("--full", is_flag=True, help="Reprocess every file instead of only changed ones.")
@click.option("--no-analyze", is_flag=True, help="Skip pattern detection after indexing.")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output.")
def index(repo_path, full, no_analyze, verbose):
    """Index a repository and run the pattern detectors."""
    from pathlib import Path

    from archscan.indexer.orchestrator import CANCELLED, index_project

    _setup_logging(verbose)
    repo = Path(repo_path).resolve()
    config = _load_config_or_fail(repo)

    try:
        result = index_project(repo, full=full, config=config, analyze=not no_analyze)
    except RuntimeError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Indexed {repo}")
    click.echo(f"  Strategy:        {result.strategy}")
    click.echo(f"  Files scanned:   {result.files_scanned}")
    click.echo(f"  Selected:        {result.files_selected}")
    click.echo(f"  Processed:       {result.files_processed}")
    click.echo(f"  Deleted:         {result.files_deleted}")
    click.echo(f"  Parse errors:    {result.parse_errors}")
    click.echo(f"  Duration:        {result.duration_ms}ms")
    if result.status == CANCELLED:
        click.echo("  Run was cancelled; detection skipped.")
    elif result.analysis is not None:
        _echo_findings_summary(result.analysis.findings)
        if result.analysis.failed_detectors:
            click.echo(f"  Failed detectors: {', '.join(result.analysis.failed_detectors)}")


@cli.command()
@click.argument("repo_path", default=".", type=click.Path(exists=True, file_okay=False))
@click.option("-v", "--verbose", is_flag=True, help="Verbose output.")
def analyze(repo_path, verbose):
    """Rerun the pattern detectors on the indexed model."""
    from pathlib import Path

    from archscan.db.connection import db_path
    from archscan.indexer.orchestrator import analyze_project

    _setup_logging(verbose)
    repo = Path(repo_path).resolve()
    if not db_path(repo).exists():
        raise click.UsageError("Database not found. Run 'archscan index' before 'archscan analyze'.")
    config = _load_config_or_fail(repo)

    try:
        result = analyze_project(repo, config=config)
    except RuntimeError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Analyzed {repo}")
    _echo_findings_summary(result.findings)
    if result.failed_detectors:
        click.echo(f"  Failed detectors: {', '.join(result.failed_detectors)}")


def _open_indexed(repo):
    """Read-only connection and project row for an indexed repo."""
    from archscan.db import queries
    from archscan.db.connection import get_connection

    try:
        conn = get_connection(repo, read_only=True)
    except FileNotFoundError as e:
        raise click.UsageError(str(e)) from e
    project = queries.get_project(conn, str(repo))
    if project is None:
        conn.close()
        raise click.UsageError(f"{repo} has not been indexed. Run 'archscan index' first.")
    return conn, project


def _echo_run(run) -> None:
    line = (
        f"  #{run['id']:<4} {run['layer']:<11} {run['status']:<10} "
        f"{run['files_processed']}/{run['files_total']} files"
    )
    if run["duration_ms"] is not None:
        line += f"  {run['duration_ms']}ms"
    click.echo(line)
    if run["error"]:
        click.echo(f"        error: {run['error']}")


@cli.command()
@click.argument("repo_path", default=".", type=click.Path(exists=True, file_okay=False))
@click.option("--runs", "run_limit", default=5, show_default=True, type=click.IntRange(min=0),
              help="How many recent index runs to list.")
@click.option("--run", "run_id", default=None, type=int, help="Show a single index run.")
def status(repo_path, run_limit, run_id):
    """Show the indexing status of a repository and its recent runs."""
    from pathlib import Path

    from archscan.db import queries

    repo = Path(repo_path).resolve()
    conn, project = _open_indexed(repo)
    try:
        if run_id is not None:
            run = queries.get_index_run(conn, run_id)
            if run is None or run["project_id"] != project["id"]:
                raise click.UsageError(f"No index run with id={run_id} for {repo}")
            _echo_run(run)
            click.echo(f"        started:   {run['started_at']}")
            click.echo(f"        completed: {run['completed_at'] or 'n/a'}")
            return
        runs = queries.list_index_runs(conn, project["id"])
    finally:
        conn.close()

    click.echo(f"Project: {project['path']} (id={project['id']})")
    click.echo(f"  Status:          {project['index_status']}")
    click.echo(f"  Files:           {project['total_files']}")
    click.echo(f"  Symbols:         {project['total_symbols']}")
    click.echo(f"  Language:        {project['primary_language'] or 'n/a'}")
    click.echo(f"  Last commit:     {project['last_indexed_commit'] or 'n/a'}")
    click.echo(f"  Indexed at:      {project['indexed_at'] or 'n/a'}")
    recent = runs[-run_limit:] if run_limit else []
    if recent:
        click.echo(f"Recent runs ({len(recent)} of {len(runs)}):")
        for run in reversed(recent):
            _echo_run(run)


@cli.command()
@click.argument("repo_path", default=".", type=click.Path(exists=True, file_okay=False))
@click.option("--category", type=_CATEGORY_CHOICES, default=None, help="Only show this category.")
@click.option("--severity", type=_SEVERITY_CHOICES, default=None, help="Only show this severity.")
@click.option("--json", "as_json", is_flag=True, help="Emit findings as JSON.")
def findings(repo_path, category, severity, as_json):
    """List findings from the last analysis run."""
    import json
    from pathlib import Path

    from archscan.db import queries

    repo = Path(repo_path).resolve()
    conn, project = _open_indexed(repo)
    try:
        rows = queries.list_findings(conn, project["id"], category=category, severity=severity)
    finally:
        conn.close()

    if as_json:
        payload = [
            {
                "category": r["category"],
                "severity": r["severity"],
                "title": r["title"],
                "description": r["description"],
                "evidence": json.loads(r["evidence"]),
                "suggestion": r["suggestion"],
            }
            for r in rows
        ]
        click.echo(json.dumps(payload, indent=2))
        return

    if not rows:
        click.echo("No findings.")
        return
    for r in rows:
        click.echo(f"[{r['severity'].upper():6}] {r['category']}: {r['title']}")
        click.echo(f"         {r['description']}")
        if r["suggestion"]:
            click.echo(f"         -> {r['suggestion']}")
