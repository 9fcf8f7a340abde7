"""
vibe-check CLI

Command-line interface for analyzing commit history and learning from debug
spirals.

Usage:
    vibe-check analyze [--repo PATH] [--days N] [--since DATE] [--no-record] [--format text|json]
    vibe-check sessions [--repo PATH] [--days N] [--format text|json]
    vibe-check intervene TYPE [--pattern P] [--component C] [--duration MIN] [--failed]
    vibe-check retro [--repo PATH] [--format text|json]
    vibe-check lessons [--all] [--dismiss ID] [--apply ID --effectiveness N]
    vibe-check trends [--repo PATH] [--format text|json]
    vibe-check status [--repo PATH]
    vibe-check config [--key KEY --value VALUE]
"""

import json
import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import click

from vibe_check.core.models import PatternCategory

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"]


def _setup_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _resolve_pattern(pattern_str: str | None) -> str | None:
    if pattern_str is None:
        return None
    normalized = pattern_str.strip().upper().replace("-", "_")
    try:
        return PatternCategory(normalized).value
    except ValueError:
        valid = ", ".join(p.value for p in PatternCategory)
        raise click.BadParameter(f"Unknown pattern: {pattern_str}. Supported: {valid}") from None


def _resolve_window(days: int | None, since: datetime | None, until: datetime | None):
    """Explicit --since wins over --days. Naive datetimes are local time."""
    if since is not None:
        since = since.astimezone()
    elif days is not None:
        since = datetime.now(timezone.utc) - timedelta(days=days)
    if until is not None:
        until = until.astimezone()
    return since, until


def _make_engine(config_path: str | None, gap: int | None = None):
    from vibe_check.config.schema import load_config
    from vibe_check.core.engine import VibeEngine

    config = load_config(Path(config_path) if config_path else None)
    if gap is not None:
        config = config.model_copy(update={"gap_minutes": gap})
    return VibeEngine(config=config)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", default=None, type=click.Path(dir_okay=False),
              help="Path to a config.json (default: ~/.vibe-check/config.json)")
@click.pass_context
def cli(ctx, verbose: bool, config_path):
    """vibe-check - Workflow health from your commit history"""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command()
@click.option("--repo", "-r", default=".", type=click.Path(file_okay=False), help="Repository path")
@click.option("--days", "-d", default=7, help="Days of history to analyze")
@click.option("--since", type=click.DateTime(formats=DATE_FORMATS), default=None,
              help="Start of the window (overrides --days)")
@click.option("--until", type=click.DateTime(formats=DATE_FORMATS), default=None,
              help="End of the window")
@click.option("--gap", type=click.IntRange(1, 1440), default=None,
              help="Idle minutes that close a session")
@click.option("--no-record", is_flag=True, help="Do not persist this analysis")
@click.option("--format", "output_format", default="text", type=click.Choice(["text", "json"]))
@click.pass_context
def analyze(ctx, repo, days, since, until, gap, no_record, output_format):
    """Analyze commits: sessions, spirals, metrics and pattern score."""
    from vibe_check.insights.generator import DigestGenerator

    engine = _make_engine(ctx.obj["config_path"], gap)
    since, until = _resolve_window(days, since, until)

    try:
        report = engine.analyze(
            repo_path=Path(repo),
            since=since,
            until=until,
            record=False if no_record else None,
        )
        worst = max(report.spirals, key=lambda c: c.duration_minutes, default=None)
        recommendation = engine.recommend(worst.pattern.value) if worst else None
    except (RuntimeError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        click.echo(DigestGenerator().format_report(report, recommendation))


@cli.command()
@click.option("--repo", "-r", default=".", type=click.Path(file_okay=False), help="Repository path")
@click.option("--days", "-d", default=7, help="Days of history to segment")
@click.option("--since", type=click.DateTime(formats=DATE_FORMATS), default=None)
@click.option("--until", type=click.DateTime(formats=DATE_FORMATS), default=None)
@click.option("--gap", type=click.IntRange(1, 1440), default=None,
              help="Idle minutes that close a session")
@click.option("--format", "output_format", default="text", type=click.Choice(["text", "json"]))
@click.pass_context
def sessions(ctx, repo, days, since, until, gap, output_format):
    """List work sessions without recording anything."""
    from vibe_check.insights.generator import DigestGenerator

    engine = _make_engine(ctx.obj["config_path"], gap)
    since, until = _resolve_window(days, since, until)

    try:
        found = engine.get_sessions(repo_path=Path(repo), since=since, until=until)
    except (RuntimeError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps([s.to_dict() for s in found], indent=2))
    else:
        click.echo(DigestGenerator().format_sessions(found))


@cli.command()
@click.argument("intervention", required=False)
@click.option("--pattern", "-p", default=None, help="Spiral pattern (e.g. SECRETS_AUTH)")
@click.option("--component", "-c", default=None, help="Component the spiral was on")
@click.option("--duration", type=click.IntRange(min=0), default=None, help="Spiral minutes")
@click.option("--notes", "-n", default=None, help="Free-form notes")
@click.option("--failed", is_flag=True, help="The intervention did not break the spiral")
@click.option("--list", "list_types", is_flag=True, help="List intervention types")
@click.option("--format", "output_format", default="text", type=click.Choice(["text", "json"]))
@click.pass_context
def intervene(ctx, intervention, pattern, component, duration, notes, failed, list_types,
              output_format):
    """Record what broke a debug spiral."""
    from vibe_check.learning.knowledge import list_intervention_types, parse_intervention_type

    if list_types:
        types = list_intervention_types()
        if output_format == "json":
            click.echo(json.dumps(types, indent=2))
        else:
            click.echo("\n  Intervention types\n")
            for t in types:
                label = t["type"].lower().replace("_", "-")
                click.echo(f"  {label:<14} {t['name']:<22} {t['description']}")
            click.echo()
        return

    if not intervention:
        raise click.UsageError("Missing intervention type (see --list)")
    try:
        intervention_type = parse_intervention_type(intervention)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="INTERVENTION") from None

    engine = _make_engine(ctx.obj["config_path"])
    try:
        record = engine.record_intervention(
            intervention_type,
            pattern=_resolve_pattern(pattern),
            component=component,
            duration=duration,
            notes=notes,
            successful=not failed,
        )
    except (RuntimeError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps(record.to_dict(), indent=2))
    else:
        target = record.spiral_component or "unknown component"
        click.echo(
            f"Recorded {intervention_type.value} for {record.spiral_pattern or 'unspecified pattern'}"
            f" on {target}"
        )


@cli.command()
@click.option("--repo", "-r", default=".", type=click.Path(file_okay=False),
              help="Repository whose last week is summarized")
@click.option("--format", "output_format", default="text", type=click.Choice(["text", "json"]))
@click.pass_context
def retro(ctx, repo, output_format):
    """Review remembered spirals and synthesize lessons."""
    from vibe_check.insights.generator import DigestGenerator

    engine = _make_engine(ctx.obj["config_path"])
    try:
        result, db, profile = engine.retrospective()
        weekly = engine.weekly_retro(Path(repo))
    except (RuntimeError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps({
            "weekly": weekly.to_dict(),
            "synthesis": result.to_dict(),
            "stats": db.stats.to_dict(),
            "profile": profile.stats.to_dict(),
        }, indent=2))
    else:
        click.echo(DigestGenerator().format_retro(result, db, profile, weekly))


@cli.command()
@click.option("--all", "show_all", is_flag=True, help="Include dismissed lessons")
@click.option("--pattern", "-p", default=None, help="Only lessons for this pattern")
@click.option("--dismiss", "dismiss_id", default=None, help="Dismiss a lesson by id")
@click.option("--apply", "apply_id", default=None, help="Mark a lesson as applied")
@click.option("--effectiveness", type=click.IntRange(0, 100), default=None,
              help="How well the applied lesson worked (0-100)")
@click.option("--format", "output_format", default="text", type=click.Choice(["text", "json"]))
@click.pass_context
def lessons(ctx, show_all, pattern, dismiss_id, apply_id, effectiveness, output_format):
    """List, dismiss or apply lessons."""
    from vibe_check.insights.generator import DigestGenerator

    if apply_id and effectiveness is None:
        raise click.BadParameter("--apply requires --effectiveness", param_hint="--effectiveness")

    engine = _make_engine(ctx.obj["config_path"])
    try:
        if dismiss_id:
            lesson = engine.dismiss_lesson(dismiss_id)
            click.echo(f"Dismissed {lesson.id}")
            return
        if apply_id:
            lesson = engine.apply_lesson(apply_id, effectiveness)
            click.echo(f"Applied {lesson.id}, confidence now {lesson.confidence}%")
            return
        found = engine.list_lessons(include_dismissed=show_all, pattern=_resolve_pattern(pattern))
    except (RuntimeError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps([lesson.to_dict() for lesson in found], indent=2))
    else:
        click.echo(DigestGenerator().format_lessons(found))


@cli.command()
@click.option("--repo", "-r", default=".", type=click.Path(file_okay=False), help="Repository path")
@click.option("--format", "output_format", default="text", type=click.Choice(["text", "json"]))
@click.pass_context
def trends(ctx, repo, output_format):
    """Show weekly and monthly trends and regression alerts."""
    from vibe_check.insights.generator import DigestGenerator

    engine = _make_engine(ctx.obj["config_path"])
    try:
        trend_report, regression, recovery = engine.get_trends(Path(repo))
    except (RuntimeError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps({
            "trends": trend_report.to_dict(),
            "regression": regression.to_dict(),
            "recovery": [r.to_dict() for r in recovery],
        }, indent=2))
    else:
        click.echo(DigestGenerator().format_trends(trend_report, regression, recovery))


@cli.command()
@click.option("--repo", "-r", default=".", type=click.Path(file_okay=False), help="Repository path")
@click.pass_context
def status(ctx, repo):
    """Show commit source, storage and profile status."""
    engine = _make_engine(ctx.obj["config_path"])
    info = engine.get_status(Path(repo))

    click.echo("\n  vibe-check Status\n")
    reader = info["reader"]
    icon = "+" if reader["available"] else "-"
    click.echo(f"  {icon} {reader['source']} history in {Path(repo).resolve()}")
    click.echo(f"    Data dir: {info['storage']['data_dir']}")
    click.echo(f"    Stored sessions: {info['stored_sessions']}, records: {info['session_records']}")
    stats = info["profile"]
    click.echo(
        f"    Profile: {stats['total_sessions']} analyses, "
        f"{stats['total_spirals_detected']} spirals, best score {stats['best_score']}"
    )
    click.echo()


@cli.command()
@click.option("--key", "-k", help="Config key to get/set")
@click.option("--value", "-V", help="Config value to set")
@click.pass_context
def config(ctx, key, value):
    """View or update vibe-check configuration."""
    from pydantic import ValidationError

    from vibe_check.config.defaults import CONFIG_FILENAME, DEFAULT_DATA_DIR
    from vibe_check.config.schema import VibeConfig, load_config
    from vibe_check.core.storage import atomic_write_json

    path = Path(ctx.obj["config_path"]) if ctx.obj["config_path"] else DEFAULT_DATA_DIR / CONFIG_FILENAME
    current = load_config(path)

    if key and key not in VibeConfig.model_fields:
        raise click.BadParameter(
            f"Unknown key: {key}. Supported: {', '.join(VibeConfig.model_fields)}",
            param_hint="--key",
        )

    if key and value is not None:
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            parsed = value
        data = current.model_dump(exclude_unset=True)
        data[key] = parsed
        try:
            updated = VibeConfig(**data)
        except ValidationError as e:
            raise click.BadParameter(str(e), param_hint="--value") from None
        atomic_write_json(path, updated.model_dump(exclude_unset=True))
        click.echo(f"Set {key} = {getattr(updated, key)}")
    elif key:
        click.echo(f"{key} = {getattr(current, key)}")
    else:
        click.echo("\n  vibe-check Configuration")
        click.echo(f"  Config file: {path}")
        for name, val in current.model_dump().items():
            click.echo(f"  {name}: {val}")
        click.echo()


if __name__ == "__main__":
    cli()
