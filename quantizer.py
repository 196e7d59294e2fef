"""CLI entry point for detecting and correcting offbeat timeline objects."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, cast

import click
from rich import print
from rich.console import Console
from rich.markup import escape

from src.config_loader import ConfigError, load_config
from src.config_paths import DEFAULT_CONFIG_PATH
from src.datatypes import AppConfig
from src.quantizer import report
from src.quantizer.cli_runtime import CLIAppError, CliOutputManager, configure_logging, format_kv
from src.quantizer.env_flags import CONFIG_ENV_VAR, config_override, debug_enabled
from src.quantizer.errors import QuantizerError
from src.quantizer.project import ProjectTimeline
from src.quantizer.scanner import ScanOptions
from src.quantizer.session import QuantizerSession
from src.quantizer.timing import FindTarget, OffbeatInfo

__all__ = ("main", "load_app_config", "RunContext")


def load_app_config(config_path: str | None) -> AppConfig:
    """
    Resolve and load the configuration.

    An explicit path (argument or ``QUANTIZER_CONFIG``) must exist; otherwise
    ``quantizer.toml`` in the working directory is used when present, and the
    built-in defaults when it is not.
    """

    explicit = config_path or config_override()
    if explicit:
        try:
            return load_config(explicit)
        except FileNotFoundError as exc:
            raise CLIAppError(
                f"Config file not found: {explicit}",
                code=2,
                rich_message=f"[red]Config file not found:[/red] {explicit}",
            ) from exc
        except ConfigError as exc:
            raise CLIAppError(f"Config error: {exc}", code=2, rich_message=f"[red]Config error:[/red] {exc}") from exc
    if DEFAULT_CONFIG_PATH.exists():
        try:
            return load_config(str(DEFAULT_CONFIG_PATH))
        except ConfigError as exc:
            raise CLIAppError(f"Config error: {exc}", code=2, rich_message=f"[red]Config error:[/red] {exc}") from exc
    return AppConfig()


@dataclass
class RunContext:
    """Everything a subcommand needs after options and config are resolved."""

    cfg: AppConfig
    output: CliOutputManager
    timeline: ProjectTimeline
    session: QuantizerSession
    project_path: Path
    json_pretty: bool
    emit_json: bool


def _load_timeline(project_path: Path) -> ProjectTimeline:
    if not project_path.exists():
        raise CLIAppError(
            f"Project file not found: {project_path}",
            code=2,
            rich_message=f"[red]Project file not found:[/red] {project_path}",
        )
    try:
        return ProjectTimeline.load(project_path)
    except QuantizerError as exc:
        raise CLIAppError(str(exc), rich_message=f"[red]Cannot load project:[/red] {exc}") from exc


def _prepare(ctx: click.Context, project: str, *, emit_json: bool = False) -> RunContext:
    params = cast(Dict[str, Any], ctx.ensure_object(dict))
    cfg = load_app_config(params.get("config_path"))

    verbose = bool(params.get("verbose")) or debug_enabled()
    quiet = bool(params.get("quiet"))
    no_color = bool(params.get("no_color"))
    emit_json = emit_json or cfg.cli.emit_json_tail
    # stdout carries only the JSON document when one is requested
    console = Console(no_color=no_color, highlight=False, stderr=emit_json)
    output = CliOutputManager(quiet=quiet, verbose=verbose, no_color=no_color, console=console)
    configure_logging("DEBUG" if verbose else cfg.logging.level, console=output.console)

    project_path = Path(project).expanduser()
    timeline = _load_timeline(project_path)
    session = QuantizerSession(
        timeline,
        ScanOptions(
            layer_name_template=cfg.scan.layer_name_template,
            wrapper_effect_names=tuple(cfg.scan.wrapper_effect_names),
        ),
    )
    return RunContext(
        cfg=cfg,
        output=output,
        timeline=timeline,
        session=session,
        project_path=project_path,
        json_pretty=bool(params.get("json_pretty")) or cfg.cli.json_pretty,
        emit_json=emit_json,
    )


def _emit_json(run: RunContext, payload: Dict[str, Any]) -> None:
    if not run.emit_json:
        return
    if run.json_pretty:
        text = json.dumps(payload, indent=2, ensure_ascii=False)
    else:
        text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    click.echo(text)


def _resolve_target(run: RunContext, overrides: Dict[str, Optional[bool]]) -> FindTarget:
    detect_cfg = run.cfg.detect

    def pick(name: str) -> bool:
        value = overrides.get(name)
        return bool(getattr(detect_cfg, name)) if value is None else bool(value)

    target = FindTarget(
        start=pick("start"),
        keyframe=pick("keyframe"),
        end=pick("end"),
        project_end=pick("project_end"),
    )
    if not (target.start or target.keyframe or target.end or target.project_end):
        raise CLIAppError(
            "No timing targets selected",
            code=2,
            rich_message="[red]No timing targets selected.[/red] Enable at least one of start/keyframe/end/project-end.",
        )
    return target


def _resolve_distance(run: RunContext, distance: Optional[int]) -> int:
    value = run.cfg.detect.distance if distance is None else distance
    if value < 0:
        raise CLIAppError("--distance must be >= 0", code=2)
    if run.cfg.detect.clamp_distance:
        return run.session.clamp_distance(value)
    return value


def _run_guarded(fn: Callable[[], None]) -> None:
    try:
        fn()
    except CLIAppError as exc:
        print(exc.rich_message)
        raise click.exceptions.Exit(exc.code) from exc
    except QuantizerError as exc:
        print(f"[red]Error:[/red] {escape(str(exc))}")
        raise click.exceptions.Exit(1) from exc


def _target_options(func: Callable[..., Any]) -> Callable[..., Any]:
    options = [
        click.option("--start/--no-start", "start", default=None, help="Override [detect].start."),
        click.option("--keyframe/--no-keyframe", "keyframe", default=None, help="Override [detect].keyframe."),
        click.option("--end/--no-end", "end", default=None, help="Override [detect].end."),
        click.option(
            "--project-end/--no-project-end",
            "project_end",
            default=None,
            help="Override [detect].project_end.",
        ),
        click.option(
            "--distance",
            type=click.IntRange(min=0),
            default=None,
            help="Largest offset in frames treated as correctable (overrides [detect].distance).",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option(
    "--config",
    "config_path",
    default=None,
    help=f"Path to a TOML config. Defaults to ${CONFIG_ENV_VAR} or ./{DEFAULT_CONFIG_PATH} when present.",
)
@click.option("--quiet", is_flag=True, help="Suppress tables and notes; JSON output is still emitted.")
@click.option("--verbose", is_flag=True, help="Show debug logging.")
@click.option("--no-color", is_flag=True, help="Disable ANSI colour output.")
@click.option("--json-pretty", is_flag=True, help="Pretty-print JSON output.")
@click.pass_context
def main(
    ctx: click.Context,
    config_path: str | None,
    quiet: bool,
    verbose: bool,
    no_color: bool,
    json_pretty: bool,
) -> None:
    """Find timeline objects that sit slightly off the BPM grid and snap them onto it."""

    params_map = cast(Dict[str, Any], ctx.ensure_object(dict))
    params_map.update(
        {
            "config_path": config_path,
            "quiet": quiet,
            "verbose": verbose,
            "no_color": no_color,
            "json_pretty": json_pretty,
        }
    )
    ctx.obj = params_map


@main.command("detect")
@click.argument("project", type=click.Path(dir_okay=False))
@_target_options
@click.option("--json", "json_mode", is_flag=True, help="Emit the detected points as JSON.")
@click.pass_context
def detect_command(
    ctx: click.Context,
    project: str,
    start: Optional[bool],
    keyframe: Optional[bool],
    end: Optional[bool],
    project_end: Optional[bool],
    distance: Optional[int],
    json_mode: bool,
) -> None:
    """List offbeat points in PROJECT."""

    def _run() -> None:
        run = _prepare(ctx, project, emit_json=json_mode)
        target = _resolve_target(run, {"start": start, "keyframe": keyframe, "end": end, "project_end": project_end})
        tolerance = _resolve_distance(run, distance)
        infos = run.session.find_offsync_objects(target, tolerance)

        run.output.banner(f"{len(infos)} offbeat point(s) within {tolerance} frame(s)")
        if infos and not run.output.quiet:
            run.output.console.print(report.offbeat_table(infos))
        _emit_json(run, report.detection_payload(infos, distance=tolerance, grid=run.session.grid()))

    _run_guarded(_run)


def _select_points(infos: Sequence[OffbeatInfo], indices: Sequence[int], fix_all: bool) -> List[OffbeatInfo]:
    if fix_all:
        if indices:
            raise CLIAppError("Use either --all or --index, not both", code=2)
        return list(infos)
    if not indices:
        raise CLIAppError(
            "Nothing selected",
            code=2,
            rich_message="[red]Nothing selected.[/red] Pass --all or one or more --index values from `detect`.",
        )
    selected: List[OffbeatInfo] = []
    for index in indices:
        if not 0 <= index < len(infos):
            raise CLIAppError(f"--index {index} is out of range (0..{len(infos) - 1})", code=2)
        if infos[index] not in selected:
            selected.append(infos[index])
    return selected


@main.command("fix")
@click.argument("project", type=click.Path(dir_okay=False))
@_target_options
@click.option("--index", "indices", type=int, multiple=True, help="Index from `detect` to fix. Repeatable.")
@click.option("--all", "fix_all", is_flag=True, help="Fix every detected point.")
@click.option("--output", "output_path", default=None, help="Write the corrected project here instead of in place.")
@click.option("--dry-run", is_flag=True, help="Apply corrections in memory only.")
@click.option("--json", "json_mode", is_flag=True, help="Emit the correction summary as JSON.")
@click.pass_context
def fix_command(
    ctx: click.Context,
    project: str,
    start: Optional[bool],
    keyframe: Optional[bool],
    end: Optional[bool],
    project_end: Optional[bool],
    distance: Optional[int],
    indices: tuple[int, ...],
    fix_all: bool,
    output_path: str | None,
    dry_run: bool,
    json_mode: bool,
) -> None:
    """Snap offbeat points in PROJECT onto the grid."""

    def _run() -> None:
        run = _prepare(ctx, project, emit_json=json_mode)
        target = _resolve_target(run, {"start": start, "keyframe": keyframe, "end": end, "project_end": project_end})
        tolerance = _resolve_distance(run, distance)
        infos = run.session.find_offsync_objects(target, tolerance)
        if not infos:
            run.output.banner("Nothing to fix")
            _emit_json(run, report.fix_payload(run.session.fix_all([]), dry_run=dry_run))
            return

        selected = _select_points(infos, indices, fix_all)
        summary = run.session.fix_all(selected)
        run.output.banner(f"Fixed {len(summary.fixed)} point(s)")
        if summary.fixed and not run.output.quiet:
            run.output.console.print(report.offbeat_table(summary.fixed, title="Corrected points"))
        for info in summary.skipped:
            run.output.warn(f"Skipped {report.describe_timing(info.timing)}: object was removed")

        if dry_run:
            run.output.line(format_kv("dry-run", "project not written"))
        else:
            destination = Path(output_path).expanduser() if output_path else run.project_path
            run.timeline.save(destination)
            run.output.line(format_kv("written", destination))
        _emit_json(run, report.fix_payload(summary, dry_run=dry_run))

    _run_guarded(_run)


@main.command("next")
@click.argument("project", type=click.Path(dir_okay=False))
@_target_options
@click.option("--json", "json_mode", is_flag=True, help="Emit the selected point as JSON.")
@click.pass_context
def next_command(
    ctx: click.Context,
    project: str,
    start: Optional[bool],
    keyframe: Optional[bool],
    end: Optional[bool],
    project_end: Optional[bool],
    distance: Optional[int],
    json_mode: bool,
) -> None:
    """Move PROJECT's cursor to the next offbeat point after it."""

    def _run() -> None:
        run = _prepare(ctx, project, emit_json=json_mode)
        target = _resolve_target(run, {"start": start, "keyframe": keyframe, "end": end, "project_end": project_end})
        tolerance = _resolve_distance(run, distance)
        chosen = run.session.select_next(target, tolerance, after=run.timeline.cursor)
        if chosen is None:
            run.output.banner("No offbeat points found")
            _emit_json(run, {"point": None})
            return
        run.timeline.save(run.project_path)
        run.output.banner(f"Cursor moved to frame {chosen.frame}")
        run.output.line(format_kv("layer", chosen.layer_name or "-"))
        run.output.line(format_kv("timing", report.describe_timing(chosen.timing)))
        run.output.line(format_kv("offset", f"{chosen.offset_frames:+d}"))
        _emit_json(run, {"point": chosen.to_json()})

    _run_guarded(_run)


@main.command("grid")
@click.argument("project", type=click.Path(dir_okay=False))
@click.option("--json", "json_mode", is_flag=True, help="Emit grid parameters as JSON.")
@click.pass_context
def grid_command(ctx: click.Context, project: str, json_mode: bool) -> None:
    """Show PROJECT's frame rate, tempo and frames per beat."""

    def _run() -> None:
        run = _prepare(ctx, project, emit_json=json_mode)
        payload = report.grid_payload(run.session.grid())
        run.output.section("Grid")
        run.output.line(format_kv("fps", f"{payload['fps'][0]}/{payload['fps'][1]}"))
        run.output.line(format_kv("bpm", payload["bpm"]))
        run.output.line(format_kv("offset", f"{payload['bpm_offset']}s"))
        run.output.line(format_kv("frames per beat", f"{payload['max_frames_per_beat']:.3f}"))
        run.output.verbose_line(f"Largest meaningful distance: {int(payload['max_frames_per_beat'] // 2)} frames")
        _emit_json(run, payload)

    _run_guarded(_run)


if __name__ == "__main__":
    main()
