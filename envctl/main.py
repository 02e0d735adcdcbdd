"""
envctl — CLI entrypoint.

Usage:
    envctl --help
    envctl list
    envctl deploy QA-01 --service auth-001 --version 2.0.0
    envctl deploy-testing --service auth-001 --version 2.0.0 --workers 4
    envctl rollback DEV-01 auth-001

Every invocation builds a fresh in-memory workspace from environments.yml
(or the built-in defaults); nothing is persisted between runs.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click

from envctl import __version__
from envctl.core.observability.logging_config import setup_from_environment

_STATUS_COLORS = {"ok": "green", "partial": "yellow", "failed": "red"}
_HEALTH_ICONS = {"healthy": "✅", "degraded": "⚠️ ", "unhealthy": "❌", "unknown": "❔"}
_HEALTH_COLORS = {"healthy": "green", "degraded": "yellow", "unhealthy": "red", "unknown": "white"}


@click.group()
@click.version_option(version=__version__, prog_name="envctl")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to environments.yml (default: auto-detect, else built-in inventory).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """envctl — deploy services across development, test and production environments."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = None

    setup_from_environment(level)


# ── Helpers ─────────────────────────────────────────────────────


def _fail(message: str) -> None:
    click.secho(f"❌ {message}", fg="red")
    sys.exit(1)


def _workspace(ctx: click.Context, **kwargs: Any):
    from envctl.core.errors import ConfigurationError
    from envctl.core.use_cases.bootstrap import bootstrap

    try:
        return bootstrap(ctx.obj.get("config_path"), **kwargs)
    except ConfigurationError as e:
        _fail(str(e))


def _resolve(ws, ref: str):
    from envctl.core.errors import NotFoundError

    try:
        return ws.manager.resolve(ref)
    except NotFoundError as e:
        _fail(str(e))


def _approval_source(approve: bool | None):
    """--approve/--deny win; otherwise ask on a terminal, abstain off one."""
    from envctl.core.approval import ApprovalRequest, CallbackApproval, StaticApproval

    if approve is not None:
        return StaticApproval(approve)

    def ask(request: ApprovalRequest) -> bool | None:
        if not sys.stdin.isatty():
            return None
        return click.confirm(
            f"⚠️  {request.environment_name} ({request.environment_type}) requires approval. "
            f"Deploy {request.service_name} v{request.version}?",
            default=False,
        )

    return CallbackApproval(ask)


def _overrides(strategy: str | None, no_delay: bool) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if strategy:
        overrides["strategy"] = strategy
    if no_delay:
        overrides["simulate_delay"] = False
    return overrides


def _print_result(result) -> None:
    label = "Rolled back" if result.operation == "rollback" else "Deployed"
    if result.ok:
        click.secho(f"✅ {label} {result.service_id} v{result.version} → {result.environment}", fg="green")
        click.echo(f"   deployment {result.deployment_id} via {result.strategy} in {result.duration_ms}ms")
        return

    click.secho(f"❌ {result.environment}: {result.error}", fg="red")
    for issue in result.issues:
        click.echo(f"   • {issue}")


def _strategy_names() -> list[str]:
    from envctl.core.strategies import STRATEGIES

    return sorted(STRATEGIES)


_strategy_option = click.option(
    "--strategy", "-s",
    type=click.Choice(_strategy_names()),
    default=None,
    help="Deployment strategy (default: from settings).",
)
_no_delay_option = click.option(
    "--no-delay", is_flag=True, help="Skip the simulated rollout duration.",
)
_json_option = click.option(
    "--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.",
)


def _service_options(fn):
    from envctl.core.models.service import ServiceType

    fn = click.option("--by", "deployed_by", default=None, help="Who is deploying.")(fn)
    fn = click.option(
        "--service-type",
        type=click.Choice([t.value for t in ServiceType]),
        default=ServiceType.WEB_SERVICE.value,
        show_default=True,
    )(fn)
    fn = click.option("--name", "service_name", default=None, help="Service display name.")(fn)
    fn = click.option("--version", "version", required=True, help="Version to deploy.")(fn)
    fn = click.option("--service", "service_id", required=True, help="Service id.")(fn)
    return fn


def _build_service(service_id: str, service_name: str | None, version: str, service_type: str):
    from envctl.core.models.service import Service, ServiceType

    return Service(
        id=service_id,
        name=service_name or service_id,
        version=version,
        type=ServiceType(service_type),
    )


# ── Inventory ───────────────────────────────────────────────────


@cli.command("list")
@click.option("--type", "type_code", default=None, help="Only this type (DEV, QA, UAT, STG, PROD).")
@click.option("--search", "query", default=None, help="Substring of name, id, URL or type.")
@_json_option
@click.pass_context
def list_environments(ctx: click.Context, type_code: str | None, query: str | None, as_json: bool) -> None:
    """List environments."""
    from envctl.core.errors import ConfigurationError
    from envctl.core.models.environment_type import EnvironmentType

    ws = _workspace(ctx)
    environments = ws.manager.search(query)
    if type_code:
        try:
            env_type = EnvironmentType.from_code(type_code)
        except ConfigurationError as e:
            _fail(str(e))
        environments = [env for env in environments if env.type == env_type]

    if as_json:
        click.echo(json.dumps([env.to_dict() for env in environments], indent=2))
        return

    if not environments:
        click.echo("No environments found.")
        return

    for env in environments:
        click.echo(f"  {env.id:<14} {env.summary()}")

    if not ctx.obj.get("quiet"):
        stats = ws.manager.statistics()
        click.echo()
        click.echo(
            f"  {stats.total_environments} environments, {stats.active_environments} active, "
            f"{stats.total_services} services, {stats.total_deployments} deployments"
        )


@cli.command()
@click.argument("ref")
@_json_option
@click.pass_context
def show(ctx: click.Context, ref: str, as_json: bool) -> None:
    """Show one environment in detail (REF is an id or name)."""
    ws = _workspace(ctx)
    env = _resolve(ws, ref)

    if as_json:
        click.echo(json.dumps(env.to_dict(), indent=2))
        return

    click.echo(env.detailed_info())
    if env.services:
        click.secho("Services:", bold=True)
        for service in env.services.values():
            click.echo(f"  • {service}")
    if env.configurations:
        click.secho("Configuration:", bold=True)
        for item in env.configurations.values():
            click.echo(f"  • {item}")


@cli.command()
@click.argument("ref", required=False)
@_json_option
@click.pass_context
def validate(ctx: click.Context, ref: str | None, as_json: bool) -> None:
    """Validate every environment, or check readiness of one."""
    ws = _workspace(ctx)

    if ref is not None:
        report = ws.validation.readiness(_resolve(ws, ref))
        if as_json:
            click.echo(json.dumps(report.to_dict(), indent=2))
        else:
            if report.ready:
                click.secho(f"✅ {report.environment_name} is ready for deployment", fg="green")
            else:
                click.secho(f"❌ {report.environment_name} is not ready:", fg="red", bold=True)
                for err in report.errors:
                    click.echo(f"   • {err}")
            if report.warnings:
                click.secho("⚠️  Warnings:", fg="yellow")
                for warn in report.warnings:
                    click.echo(f"   • {warn}")
        if not report.ready:
            sys.exit(1)
        return

    issues = ws.validation.validate_all()
    if as_json:
        click.echo(json.dumps({"valid": not issues, "issues": issues}, indent=2))
    elif not issues:
        click.secho(f"✅ All {ws.repository.count()} environments are valid", fg="green")
    else:
        click.secho("❌ Validation issues:", fg="red", bold=True)
        for name, env_issues in issues.items():
            click.secho(f"   {name}", bold=True)
            for issue in env_issues:
                click.echo(f"     • {issue}")
    if issues:
        sys.exit(1)


@cli.command()
@click.argument("ref")
@_json_option
@click.pass_context
def history(ctx: click.Context, ref: str, as_json: bool) -> None:
    """Show the deployment history of an environment."""
    ws = _workspace(ctx)
    env = _resolve(ws, ref)

    if as_json:
        click.echo(json.dumps([h.model_dump(mode="json") for h in env.deployment_history], indent=2))
        return

    if not env.deployment_history:
        click.echo(f"No deployments recorded for {env.name}.")
        return
    for entry in env.deployment_history:
        click.echo(f"  {entry}")


# ── Deployments ─────────────────────────────────────────────────


@cli.command()
@click.argument("ref")
@_service_options
@_strategy_option
@_no_delay_option
@click.option("--approve/--deny", "approve", default=None, help="Answer the approval gate up front.")
@_json_option
@click.pass_context
def deploy(
    ctx: click.Context,
    ref: str,
    service_id: str,
    version: str,
    service_name: str | None,
    service_type: str,
    deployed_by: str | None,
    strategy: str | None,
    no_delay: bool,
    approve: bool | None,
    as_json: bool,
) -> None:
    """Deploy a service version to one environment."""
    ws = _workspace(
        ctx,
        approval=_approval_source(approve),
        overrides=_overrides(strategy, no_delay),
    )
    service = _build_service(service_id, service_name, version, service_type)
    result = ws.orchestrator.deploy_to_environment(ref, service, version, deployed_by)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _print_result(result)
    if result.failed:
        sys.exit(1)


@cli.command("deploy-testing")
@_service_options
@_strategy_option
@_no_delay_option
@click.option("--workers", type=click.IntRange(1, 16), default=None, help="Deploy environments concurrently.")
@_json_option
@click.pass_context
def deploy_testing(
    ctx: click.Context,
    service_id: str,
    version: str,
    service_name: str | None,
    service_type: str,
    deployed_by: str | None,
    strategy: str | None,
    no_delay: bool,
    workers: int | None,
    as_json: bool,
) -> None:
    """Deploy to every DEV, QA, UAT and staging environment (never production)."""
    ws = _workspace(
        ctx,
        approval=_approval_source(None),
        overrides=_overrides(strategy, no_delay),
    )
    service = _build_service(service_id, service_name, version, service_type)
    batch = ws.orchestrator.deploy_to_all_testing(
        service, version, deployed_by, max_workers=workers or ws.settings.testing_workers,
    )

    if as_json:
        click.echo(json.dumps(batch.to_dict(), indent=2))
    else:
        for env_id, result in batch.results.items():
            marker = "✓" if result.ok else "✗"
            click.echo(f"  {marker} {env_id}", nl=False)
            if result.failed:
                click.secho(f"  {result.error}", fg="red")
            else:
                click.echo()
        click.echo()
        click.echo(f"  {service.name} v{version}: ", nl=False)
        click.secho(
            f"{batch.status} ({batch.succeeded}/{batch.total} succeeded)",
            fg=_STATUS_COLORS.get(batch.status, "white"),
        )
    if not batch.all_ok:
        sys.exit(1)


@cli.command()
@click.argument("ref")
@click.argument("service_id")
@click.option("--by", "rolled_back_by", default=None, help="Who is rolling back.")
@_json_option
@click.pass_context
def rollback(ctx: click.Context, ref: str, service_id: str, rolled_back_by: str | None, as_json: bool) -> None:
    """Roll a service back out of an environment."""
    ws = _workspace(ctx, overrides={"simulate_delay": False})
    result = ws.orchestrator.rollback(ref, service_id, rolled_back_by)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _print_result(result)
    if result.failed:
        sys.exit(1)


# ── Introspection ───────────────────────────────────────────────


@cli.command()
@_json_option
def strategies(as_json: bool) -> None:
    """List available deployment strategies."""
    from envctl.core.strategies import list_strategies

    entries = list_strategies()
    if as_json:
        click.echo(json.dumps(entries, indent=2))
        return
    for entry in entries:
        click.secho(f"  {entry['name']}", bold=True, nl=False)
        click.echo(f" — {entry['description']}")
        click.echo(f"      {' → '.join(entry['phases'])}  (~{entry['delay_seconds']}s)")


@cli.command()
@_json_option
@click.pass_context
def health(ctx: click.Context, as_json: bool) -> None:
    """Show health of every environment."""
    from envctl.core.observability.health import check_system_health

    ws = _workspace(ctx)
    report = check_system_health(ws.repository.find_all(), ws.probe)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        click.echo(f"{_HEALTH_ICONS.get(report.status, '')} System: ", nl=False)
        click.secho(report.status, fg=_HEALTH_COLORS.get(report.status, "white"), bold=True)
        for component in report.components:
            click.echo(f"  {_HEALTH_ICONS.get(component.status, '')} {component.name}: {component.message}")
    if report.status == "unhealthy":
        sys.exit(1)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
