"""Command-line interface for PromptWorld.

Usage:
    promptworld scene new "My scene"
    promptworld scene import-image SCENE_ID photo.png [more.jpg ...]
    promptworld scene drag SCENE_ID --object OBJ --from 0 0 --to 40 10
    promptworld scene describe SCENE_ID
    promptworld scene render SCENE_ID -o view.png
    promptworld settings set-key
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from .core.config import API_KEY_ENV_VAR, PromptWorldConfig
from .core.errors import PromptWorldError, StoreError
from .core.store import BackgroundSaver, SceneStore
from .editor import Editor
from .interaction.events import PointerEvent, WheelEvent
from .scene.scene import Scene
from .services.description import GeminiDescriptionService

console = Console()

DEFAULT_CONFIG_PATH = "promptworld_config.json"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich output."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False)],
    )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option(
    "--config", "-c",
    type=click.Path(),
    default=None,
    help="Configuration file (JSON)",
)
@click.option(
    "--store",
    type=click.Path(file_okay=False),
    default=None,
    help="Scene directory (default: ./promptworld_scenes)",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config: str | None, store: str | None) -> None:
    """PromptWorld - arrange images as planes in a pseudo-3D scene."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config
    setup_logging(verbose)

    if config and Path(config).exists():
        cfg = PromptWorldConfig.from_file(config)
    else:
        cfg = PromptWorldConfig.default()
    if store:
        cfg.storage.store_dir = Path(store)
    ctx.obj["config"] = cfg


def _config(ctx: click.Context) -> PromptWorldConfig:
    return ctx.obj["config"]


def _notice(message: str) -> None:
    console.print(f"[yellow]{message}[/yellow]")


@contextmanager
def _open_editor(ctx: click.Context, scene_id: str) -> Iterator[Editor]:
    """Open a stored scene with saves running in the background.

    Every queued save is flushed before the block exits. PromptWorld errors
    are reported and turned into an abort.
    """
    cfg = _config(ctx)
    store = SceneStore(cfg.storage.resolve_store_dir())

    def on_error(scene: Scene, error: StoreError) -> None:
        _notice(f"Changes are kept but not saved yet: {error}")

    try:
        with BackgroundSaver(store, on_error=on_error) as saver:
            editor = Editor(cfg, store, persist=saver.submit, on_notice=_notice)
            editor.open_scene(scene_id)
            yield editor
    except PromptWorldError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort()


def _store(ctx: click.Context) -> SceneStore:
    return SceneStore(_config(ctx).storage.resolve_store_dir())


def _format_vector(values: tuple[float, float, float]) -> str:
    return ", ".join(f"{v:g}" for v in values)


# -----------------------------------------------------------------------------
# Scene commands
# -----------------------------------------------------------------------------

@main.group()
def scene() -> None:
    """Create, edit and export scenes."""
    pass


@scene.command("new")
@click.argument("name", default="Untitled Scene")
@click.pass_context
def scene_new(ctx: click.Context, name: str) -> None:
    """Create a new empty scene."""
    editor = Editor(_config(ctx), _store(ctx))
    try:
        created = editor.create_scene(name)
    except PromptWorldError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort()
    console.print(f"[green]Created scene '{created.name}'[/green]")
    console.print(f"ID: {created.id}")


@scene.command("list")
@click.pass_context
def scene_list(ctx: click.Context) -> None:
    """List stored scenes, oldest first."""
    store = _store(ctx)
    summaries = store.load_all()

    if not summaries:
        console.print("[dim]No scenes found[/dim]")
        console.print(f"[dim]Scene directory: {store.store_dir}[/dim]")
        return

    table = Table(title="Scenes")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Objects", justify="right", style="green")
    table.add_column("Created", style="dim")

    for summary in summaries:
        table.add_row(
            summary.id,
            summary.name,
            str(summary.object_count),
            summary.created_at.isoformat(timespec="seconds"),
        )

    console.print(table)
    console.print(f"\n[dim]Scene directory: {store.store_dir}[/dim]")


@scene.command("info")
@click.argument("scene_id")
@click.pass_context
def scene_info(ctx: click.Context, scene_id: str) -> None:
    """Show the camera and every object plane of a scene."""
    try:
        loaded = _store(ctx).load(scene_id)
    except PromptWorldError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort()

    console.print(f"\n[bold]Scene: {loaded.name}[/bold]\n")
    camera = loaded.camera
    console.print(f"[cyan]Camera:[/cyan] pan ({camera.pan_x:g}, {camera.pan_y:g}), zoom {camera.zoom:g}")

    if not loaded.objects:
        console.print("[dim]No objects[/dim]")
        return

    table = Table(title="Objects")
    table.add_column("ID", style="cyan")
    table.add_column("Position")
    table.add_column("Rotation")
    table.add_column("Scale", justify="right")
    table.add_column("Image", style="dim")
    table.add_column("Description")

    for plane in loaded.objects:
        description = plane.description or "[dim]-[/dim]"
        if len(description) > 60:
            description = description[:57] + "..."
        table.add_row(
            plane.id,
            _format_vector(plane.position.as_tuple()),
            _format_vector(plane.rotation.as_tuple()),
            f"{plane.scale:g}",
            f"{plane.image.mime_type}, {len(plane.image.data):,} B",
            description,
        )

    console.print(table)


@scene.command("import-image")
@click.argument("scene_id")
@click.argument("files", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option("--data-url", "data_urls", multiple=True, help="Image given as a base64 data URL (repeatable)")
@click.pass_context
def scene_import_image(
    ctx: click.Context, scene_id: str, files: tuple[str, ...], data_urls: tuple[str, ...]
) -> None:
    """Add image files or data URLs to a scene as new planes."""
    if not files and not data_urls:
        raise click.UsageError("Give at least one image file or --data-url.")

    with _open_editor(ctx, scene_id) as editor:
        for file in files:
            try:
                plane = editor.import_file(file)
            except PromptWorldError as e:
                console.print(f"[red]Skipped {Path(file).name}: {e}[/red]")
                continue
            console.print(f"[green]Added {Path(file).name} as {plane.id}[/green]")

        for i, url in enumerate(data_urls, 1):
            try:
                plane = editor.import_data_url(url)
            except PromptWorldError as e:
                console.print(f"[red]Skipped data URL #{i}: {e}[/red]")
                continue
            console.print(f"[green]Added data URL #{i} as {plane.id}[/green]")


@scene.command("image")
@click.argument("scene_id")
@click.argument("object_id")
@click.pass_context
def scene_image(ctx: click.Context, scene_id: str, object_id: str) -> None:
    """Print an object's image as a base64 data URL."""
    with _open_editor(ctx, scene_id) as editor:
        try:
            url = editor.image_data_url(object_id)
        except KeyError:
            console.print(f"[red]Object not found: {object_id}[/red]")
            raise click.Abort()
    # Plain echo so the URL is never wrapped
    click.echo(url)


@scene.command("drag")
@click.argument("scene_id")
@click.option("--object", "-o", "object_id", default=None, help="Object to press on (default: bare canvas)")
@click.option("--from", "start", nargs=2, type=float, default=(0.0, 0.0), help="Pointer-down position")
@click.option("--to", "end", nargs=2, type=float, required=True, help="Pointer-up position")
@click.option("--shift", is_flag=True, help="Hold Shift (rotate around Y)")
@click.option("--alt", is_flag=True, help="Hold Alt (move along Z)")
@click.option("--steps", type=click.IntRange(min=1), default=10, help="Intermediate pointer moves")
@click.pass_context
def scene_drag(
    ctx: click.Context,
    scene_id: str,
    object_id: str | None,
    start: tuple[float, float],
    end: tuple[float, float],
    shift: bool,
    alt: bool,
    steps: int,
) -> None:
    """Replay a pointer drag on a scene.

    A drag on the canvas pans the camera. On an object it moves the object in
    X/Y, or rotates it with --shift, or moves it in Z with --alt.
    """
    with _open_editor(ctx, scene_id) as editor:
        machine = editor.machine
        decision = machine.pointer_down(
            PointerEvent(start[0], start[1], target_id=object_id, shift=shift, alt=alt)
        )
        if not decision.starts_session:
            console.print("[yellow]That press does not start an interaction[/yellow]")
            return

        (x0, y0), (x1, y1) = start, end
        for i in range(1, steps + 1):
            t = i / steps
            machine.pointer_move(PointerEvent(x0 + (x1 - x0) * t, y0 + (y1 - y0) * t))
        machine.pointer_up(PointerEvent(x1, y1))

        console.print(f"[green]{decision.mode.value.replace('_', ' ').capitalize()} done[/green]")
        if decision.target_id is not None:
            plane = editor.scene.get_object(decision.target_id)
            console.print(f"  {plane.transform.to_css()}")
        else:
            console.print(f"  {editor.scene.camera.to_css()}")


@scene.command("wheel")
@click.argument("scene_id")
@click.option("--object", "-o", "object_id", default=None, help="Object under the wheel (default: bare canvas)")
@click.option("--ticks", "-n", type=click.IntRange(min=1), default=1, help="Number of wheel ticks")
@click.option("--in/--out", "zoom_in", default=True, help="Scroll up (grow) or down (shrink)")
@click.pass_context
def scene_wheel(ctx: click.Context, scene_id: str, object_id: str | None, ticks: int, zoom_in: bool) -> None:
    """Replay wheel ticks: zoom the camera or scale an object."""
    delta = -1.0 if zoom_in else 1.0
    with _open_editor(ctx, scene_id) as editor:
        for _ in range(ticks):
            decision = editor.machine.wheel(WheelEvent(delta, target_id=object_id))
            if decision.is_inert:
                console.print("[yellow]That wheel event does not change anything[/yellow]")
                return

        current = editor.scene
        if object_id is None:
            console.print(f"[green]Zoom: {current.camera.zoom:g}[/green]")
        else:
            console.print(f"[green]Scale of {object_id}: {current.get_object(object_id).scale:g}[/green]")


@scene.command("set-description")
@click.argument("scene_id")
@click.argument("object_id")
@click.argument("text")
@click.pass_context
def scene_set_description(ctx: click.Context, scene_id: str, object_id: str, text: str) -> None:
    """Replace an object's description."""
    with _open_editor(ctx, scene_id) as editor:
        try:
            editor.set_description(object_id, text)
        except KeyError:
            console.print(f"[red]Object not found: {object_id}[/red]")
            raise click.Abort()
        console.print(f"[green]Description of {object_id} updated[/green]")


def _description_service(ctx: click.Context) -> GeminiDescriptionService:
    try:
        return GeminiDescriptionService.from_params(_config(ctx).description)
    except PromptWorldError as e:
        console.print(f"[red]{e}[/red]")
        console.print(f"[dim]Set {API_KEY_ENV_VAR} or run: promptworld settings set-key[/dim]")
        raise click.Abort()


@scene.command("describe")
@click.argument("scene_id")
@click.argument("object_ids", nargs=-1)
@click.pass_context
def scene_describe(ctx: click.Context, scene_id: str, object_ids: tuple[str, ...]) -> None:
    """Describe object images with Gemini (all objects if none are given)."""
    service = _description_service(ctx)

    with _open_editor(ctx, scene_id) as editor:
        selected = list(object_ids) or [plane.id for plane in editor.scene.objects]
        if not selected:
            console.print("[dim]No objects to describe[/dim]")
            return

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Describing...", total=len(selected))

            def on_progress(index: int, total: int, object_id: str) -> None:
                progress.update(task, completed=index, description=f"Describing {object_id}...")

            report = editor.describe(selected, service, on_progress)
            progress.update(task, completed=len(selected))

        for object_id, result in report.results.items():
            style = {"ok": "green", "warning": "yellow", "error": "red"}[result.status.value]
            console.print(f"[{style}]{object_id}[/{style}]: {result.text}")

        console.print(
            f"\n{report.succeeded} described, {report.warnings} warning(s), {report.failed} error(s)"
        )
        if not report.saved:
            _notice("Descriptions are kept but were not saved")


@scene.command("ask")
@click.argument("scene_id")
@click.argument("question")
@click.pass_context
def scene_ask(ctx: click.Context, scene_id: str, question: str) -> None:
    """Ask Gemini a question about a scene's arrangement."""
    service = _description_service(ctx)
    with _open_editor(ctx, scene_id) as editor:
        with console.status("Thinking..."):
            answer = editor.ask(question, service)
        console.print(answer)


@scene.command("export")
@click.argument("scene_id")
@click.option(
    "--output-dir", "-d",
    type=click.Path(file_okay=False),
    default=".",
    help="Directory for the exported document",
)
@click.pass_context
def scene_export(ctx: click.Context, scene_id: str, output_dir: str) -> None:
    """Write a scene as a portable JSON document."""
    with _open_editor(ctx, scene_id) as editor:
        try:
            path = editor.export_scene(output_dir)
        except OSError as e:
            console.print(f"[red]Export failed: {e}[/red]")
            raise click.Abort()
        console.print(f"[green]Exported: {path}[/green]")


@scene.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def scene_import(ctx: click.Context, path: str) -> None:
    """Import an exported scene document as a new scene."""
    editor = Editor(_config(ctx), _store(ctx))
    try:
        imported = editor.import_scene(path)
    except (PromptWorldError, ValueError, OSError) as e:
        console.print(f"[red]Import failed: {e}[/red]")
        raise click.Abort()
    console.print(f"[green]Imported '{imported.name}' ({len(imported.objects)} object(s))[/green]")
    console.print(f"ID: {imported.id}")


@scene.command("render")
@click.argument("scene_id")
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False),
    default="view.png",
    help="Output PNG path",
)
@click.pass_context
def scene_render(ctx: click.Context, scene_id: str, output: str) -> None:
    """Save an approximate PNG sketch of the current view."""
    with _open_editor(ctx, scene_id) as editor:
        path = editor.export_view(output)
        console.print(f"[green]View saved: {path}[/green]")


@scene.command("delete")
@click.argument("scene_id")
@click.option("--force", "-f", is_flag=True, help="Delete without confirmation")
@click.pass_context
def scene_delete(ctx: click.Context, scene_id: str, force: bool) -> None:
    """Delete a stored scene."""
    store = _store(ctx)
    if not force and not click.confirm(f"Delete scene {scene_id}?"):
        console.print("[dim]Cancelled[/dim]")
        return

    if store.delete(scene_id):
        console.print(f"[green]Deleted scene: {scene_id}[/green]")
    else:
        console.print(f"[red]Scene not found: {scene_id}[/red]")
        raise click.Abort()


# -----------------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------------

@main.command()
@click.option(
    "--output", "-o",
    type=click.Path(),
    default=DEFAULT_CONFIG_PATH,
    help="Output path for config file",
)
def init_config(output: str) -> None:
    """Generate a default configuration file."""
    try:
        PromptWorldConfig.default().to_file(output)
    except OSError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort()
    console.print(f"[green]Created config file: {output}[/green]")


@main.group()
def settings() -> None:
    """Manage stored settings."""
    pass


@settings.command("set-key")
@click.option(
    "--key",
    prompt="Gemini API key (empty to clear)",
    default="",
    show_default=False,
    hide_input=True,
    help="API key to store",
)
@click.pass_context
def settings_set_key(ctx: click.Context, key: str) -> None:
    """Store the Gemini API key in the config file."""
    path = ctx.obj["config_path"] or DEFAULT_CONFIG_PATH
    cfg = _config(ctx)
    cfg.description.api_key = key.strip()
    try:
        cfg.to_file(path)
    except OSError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort()

    if cfg.description.api_key:
        console.print(f"[green]API key saved to {path}[/green]")
    else:
        console.print(f"[green]API key cleared in {path}[/green]")


@settings.command("show")
@click.pass_context
def settings_show(ctx: click.Context) -> None:
    """Show the effective configuration."""
    cfg = _config(ctx)

    table = Table(show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Scene directory", str(cfg.storage.resolve_store_dir()))
    table.add_row("Zoom step", f"{cfg.interaction.zoom_step:g}")
    table.add_row("Scale step", f"{cfg.interaction.scale_step:g}")
    table.add_row("Double-tap window", f"{cfg.interaction.double_tap_ms:g} ms")
    table.add_row("Model", cfg.description.model)
    table.add_row("API key", "set" if cfg.description.resolve_api_key() else "[dim]not set[/dim]")

    console.print(table)


if __name__ == "__main__":
    main()
