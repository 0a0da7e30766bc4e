"""
Workstation provisioner — CLI entrypoint.

Usage:
    provisioner --help
    provisioner plan
    sudo provisioner run
    provisioner --manifest arch-ctf-lite run --mock
"""

from __future__ import annotations

import json
import signal
import sys
from pathlib import Path

import click

from provisioner import __version__
from provisioner.core.observability.logging_config import resolve_level, setup_logging

NEXT_STEPS = (
    "Log out and log back in to activate the new login shell",
    "Check out your tools in {tools_dir}",
    "Try the {function} function to create a new challenge workspace",
)


@click.group()
@click.version_option(version=__version__, prog_name="provisioner")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--manifest",
    "-m",
    "manifest_path",
    default=None,
    help="Manifest file or shipped manifest name (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    manifest_path: str | None,
) -> None:
    """Provision a workstation from a declarative manifest."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["manifest_path"] = manifest_path

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = None

    setup_logging(level=resolve_level(level))


# ── run ─────────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output the report as JSON.")
@click.option("--only", "only", multiple=True, help="Run only this step (and its prerequisites).")
@click.option("--mock", is_flag=True, help="Simulate: record commands instead of running them.")
@click.option("--fail-fast", is_flag=True, help="Stop everything at the first fatal failure.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Append step events and the report to this NDJSON run log.",
)
@click.pass_context
def run(
    ctx: click.Context,
    as_json: bool,
    only: tuple[str, ...],
    mock: bool,
    fail_fast: bool,
    log_file: Path | None,
) -> None:
    """Bring the workstation to the state the manifest describes."""
    from provisioner.core.engine.runner import Runner
    from provisioner.core.observability.reporter import TerminalReporter
    from provisioner.core.use_cases.provision import provision

    quiet = ctx.obj.get("quiet", False)
    runner = Runner(halt_on_fatal=fail_fast)
    reporter = None if as_json else TerminalReporter(show_attempts=not quiet)

    previous = _install_signal_handlers(runner)
    try:
        result = provision(
            manifest_path=ctx.obj.get("manifest_path"),
            only=list(only),
            mock_mode=mock,
            runner=runner,
            reporter=reporter,
            run_log=log_file,
        )
    finally:
        _restore_signal_handlers(previous)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"[-] {result.error}", fg="red", err=True)
        sys.exit(result.exit_code)

    report = result.report
    manifest = result.manifest
    assert report is not None and manifest is not None

    if report.exit_code == 0 and not quiet and not result.mock_mode:
        home = manifest.target.home_path
        click.echo()
        click.secho("[*] Recommended next steps:", fg="blue")
        for i, line in enumerate(NEXT_STEPS, start=1):
            text = line.format(
                tools_dir=manifest.workspace.tools_path(home),
                function=manifest.profile.workspace_function,
            )
            click.secho(f"[*] {i}. {text}", fg="blue")

    sys.exit(report.exit_code)


def _install_signal_handlers(runner) -> dict:
    """SIGINT/SIGTERM cancel the run before the next step.

    Returns the handlers that were replaced.
    """

    def handler(signum, frame) -> None:
        click.secho("\n[!] Cancelling after the current step...", fg="yellow", err=True)
        runner.cancel()

    previous = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[sig] = signal.signal(sig, handler)
        except ValueError:
            # not in the main thread
            pass
    return previous


def _restore_signal_handlers(previous: dict) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler)


# ── plan ────────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--only", "only", multiple=True, help="Show only this step (and its prerequisites).")
@click.pass_context
def plan(ctx: click.Context, as_json: bool, only: tuple[str, ...]) -> None:
    """Show the ordered steps a run would evaluate."""
    from provisioner.core.use_cases.provision import plan_manifest

    result = plan_manifest(manifest_path=ctx.obj.get("manifest_path"), only=list(only))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"[-] {result.error}", fg="red", err=True)
        sys.exit(1)

    assert result.manifest is not None and result.plan is not None
    click.secho(f"\n{result.manifest.name}", fg="cyan", bold=True)
    click.echo(f"   target: {result.manifest.target.account}  ({result.manifest_path})")
    click.echo()

    width = len(str(len(result.plan)))
    for i, step in enumerate(result.plan, start=1):
        severity = click.style(step.severity.value, fg="red" if step.fatal else "white")
        after = f"  after: {', '.join(sorted(step.prerequisites))}" if step.prerequisites else ""
        click.echo(f"   {i:>{width}}. {step.name} [{severity}]{after}")

    click.echo()


# ── check ───────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, as_json: bool) -> None:
    """Validate the manifest and its plan."""
    from provisioner.core.use_cases.check import check_manifest

    result = check_manifest(manifest_path=ctx.obj.get("manifest_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.manifest is not None
        click.secho("[+] Manifest is valid", fg="green", bold=True)
        click.echo(f"   Manifest: {result.manifest.name} ({result.manifest_path})")
        click.echo(f"   Tools: {len(result.manifest.tools)}")
        click.echo(f"   Steps: {result.step_count}")
    else:
        click.secho("[-] Manifest errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   - {err}")

    if result.warnings:
        click.echo()
        click.secho("[!] Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   - {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


# ── status ──────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--mock", is_flag=True, help="Answer queries from the mock runner.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Run log to read the last run from.",
)
@click.pass_context
def status(ctx: click.Context, as_json: bool, mock: bool, log_file: Path | None) -> None:
    """Show which steps are already satisfied. Changes nothing."""
    from provisioner.core.use_cases.status import get_status

    result = get_status(
        manifest_path=ctx.obj.get("manifest_path"),
        mock_mode=mock,
        run_log=log_file,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        click.secho(f"[-] {result.error}", fg="red", err=True)
        sys.exit(1)

    assert result.manifest is not None
    quiet = ctx.obj.get("quiet", False)

    if not quiet:
        click.secho(f"\n{result.manifest.name}", fg="cyan", bold=True)
        if result.manifest.description:
            click.echo(f"   {result.manifest.description}")
        click.echo()

    for step in result.steps:
        if step.satisfied:
            click.secho(f"[+] {step.name}", fg="green")
        else:
            click.secho(f"[*] {step.name}: pending", fg="blue")

    click.echo()
    click.secho(
        f"   {result.satisfied_count}/{len(result.steps)} steps satisfied",
        fg="white",
        bold=True,
    )

    if not quiet:
        missing = [name for name, a in result.adapters.items() if not a["available"]]
        if missing:
            click.secho(f"   Tools not on PATH: {', '.join(missing)}", fg="yellow")

    if result.last_run:
        run_status = result.last_run.get("status", "")
        color = {"ok": "green", "partial": "yellow", "failed": "red"}.get(run_status, "white")
        click.echo("   Last run: ", nl=False)
        click.secho(run_status, fg=color, nl=False)
        click.echo(f" at {result.last_run.get('finished_at', '')}")

    click.echo()


# ── manifests ───────────────────────────────────────────────────


@cli.command("manifests")
def list_manifests_cmd() -> None:
    """List the manifests shipped with the provisioner."""
    from provisioner.core.data import DEFAULT_MANIFEST, list_manifests

    for name in list_manifests():
        marker = " (default)" if name == DEFAULT_MANIFEST else ""
        click.echo(f"{name}{marker}")


if __name__ == "__main__":
    cli()
