"""Command-line interface for Quire.

This module defines the CLI commands using the Click framework.

Commands:
- init: Scaffold a new Quire project.
- build: Build the site into the output directory.
- serve: Run the development server with live reload.
- new: Create a new content file, interactively when no path is given.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from datetime import datetime, timezone
from pathlib import Path

import click
import questionary

from . import __version__
from .config import CONFIG_FILENAME, load_config
from .errors import BuildError, QuireError
from .utils import slugify, titleize

logger = logging.getLogger(__name__)

ROOT_CHOICE = ". (root)"


class _ClickHandler(logging.Handler):
    """Writes log records to stderr through ``click.echo``."""

    colors = {"WARNING": "yellow", "ERROR": "red", "CRITICAL": "red"}

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            click.echo(click.style(message, fg=self.colors.get(record.levelname)), err=True)
        except Exception:
            self.handleError(record)


def _configure_logging(verbose: bool) -> None:
    handler = _ClickHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    root = logging.getLogger("quire")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


@click.group()
@click.version_option(version=__version__, prog_name="quire")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
def cli(verbose: bool):
    """Quire static site builder."""
    _configure_logging(verbose)


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft content")
@click.option("--future", is_flag=True, help="Include content dated in the future")
@click.option("--base-url", help="Override base_url from quire.yaml")
@click.option(
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    help="Write the site here instead of output_dir",
)
@click.option("--strict", is_flag=True, help="Exit non-zero if any document failed")
def build(
    drafts: bool,
    future: bool,
    base_url: str | None,
    output: Path | None,
    strict: bool,
):
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import build_site

    try:
        result = build_site(
            project_root,
            include_drafts=drafts,
            include_future=future,
            base_url=base_url,
            output_dir_override=output.resolve() if output else None,
        )
    except BuildError as exc:
        _report_failure(project_root, exc.source_path, exc.message)
        raise SystemExit(1) from None
    except QuireError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  Error: {exc}", fg="white"), err=True)
        raise SystemExit(1) from None

    for error in result.errors:
        click.echo(
            click.style(f"Skipped ({error.kind}): ", fg="yellow")
            + f"{_relative(project_root, error.source_path)}: {error.message}",
            err=True,
        )
    click.echo(f"Built {len(result.pages)} pages into {result.output_dir}")
    if strict and result.errors:
        raise SystemExit(1)


def _relative(project_root: Path, path: Path) -> Path:
    try:
        return path.relative_to(project_root)
    except ValueError:
        return path


def _report_failure(project_root: Path, source_path: Path, message: str) -> None:
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(
        click.style(f"  File: {_relative(project_root, source_path)}", fg="yellow"),
        err=True,
    )
    click.echo(click.style(f"  Error: {message}", fg="white"), err=True)


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft content")
@click.option("--future", is_flag=True, help="Include content dated in the future")
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the dev server (overrides quire.yaml)",
)
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (overrides quire.yaml ws_port)",
)
def serve(drafts: bool, future: bool, port: int | None, ws_port: int | None):
    """Run dev server with live reload."""
    project_root = Path.cwd()
    from .server import DevServer

    try:
        server = DevServer(project_root, http_port=port, ws_port=ws_port)
        server.start(include_drafts=drafts, include_future=future)
    except BuildError as exc:
        _report_failure(project_root, exc.source_path, exc.message)
        raise SystemExit(1) from None
    except QuireError as exc:
        raise click.ClickException(str(exc)) from None


@cli.command()
@click.argument("path", required=False)
def new(path: str | None):
    """Create a new content file.

    PATH is relative to the content directory, e.g. ``posts/my-post.md``.
    Without PATH the section and name are asked interactively.
    """
    project_root = Path.cwd()
    try:
        config = load_config(project_root)
    except QuireError as exc:
        raise click.ClickException(str(exc)) from None
    content_dir = project_root / config.content_dir
    if not content_dir.is_dir():
        raise click.ClickException(
            f"No {config.content_dir}/ directory found. Run this command from a Quire project root."
        )

    target_path = content_dir / path if path else _prompt_target(content_dir)
    if target_path.suffix != ".md":
        target_path = target_path.with_name(target_path.name + ".md")

    if target_path.exists():
        raise click.ClickException(
            f"File already exists: {_relative(project_root, target_path)}"
        )

    slug = slugify(target_path.stem)
    conflicting = [
        f.name for f in target_path.parent.glob("*.md") if slugify(f.stem) == slug
    ]
    if conflicting:
        raise click.ClickException(
            f"A file with slug '{slug}' already exists: {conflicting[0]}"
        )

    target_path.parent.mkdir(parents=True, exist_ok=True)
    target_path.write_text(
        _new_document(titleize(target_path.name), datetime.now(timezone.utc)),
        encoding="utf-8",
    )
    click.echo(f"Created {_relative(project_root, target_path)}")


def _new_document(title: str, now: datetime) -> str:
    escaped = title.replace('"', '\\"')
    return (
        "---\n"
        f'title: "{escaped}"\n'
        f"date: {now.replace(microsecond=0).isoformat()}\n"
        "draft: true\n"
        "tags: []\n"
        "---\n\n"
    )


def _prompt_target(content_dir: Path) -> Path:
    """Ask for the section and filename of a new document."""
    folder = questionary.select(
        "Select section:",
        choices=_get_content_folders(content_dir),
        style=_questionary_style(),
    ).ask()
    if folder is None:
        raise click.Abort()

    name = questionary.text(
        "Filename (without .md extension):",
        validate=lambda x: len(x.strip()) > 0 or "Filename cannot be empty",
        style=_questionary_style(),
    ).ask()
    if name is None:
        raise click.Abort()

    add_date = questionary.confirm(
        "Prefix with today's date? (YYYY-MM-DD-)",
        default=True,
        style=_questionary_style(),
    ).ask()
    if add_date is None:
        raise click.Abort()

    filename = name.strip()
    if add_date:
        filename = datetime.now().strftime("%Y-%m-%d-") + filename
    target_dir = content_dir if folder == ROOT_CHOICE else content_dir / folder
    return target_dir / f"{filename}.md"


def _get_content_folders(content_dir: Path) -> list[str]:
    """Content folders not starting with ``_`` or ``.``, root option first."""
    folders = sorted(
        path.name
        for path in content_dir.iterdir()
        if path.is_dir() and not path.name.startswith(("_", "."))
    )
    return [ROOT_CHOICE, *folders]


def _questionary_style():
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


@cli.command()
@click.argument("name")
def init(name: str):
    """Scaffold a new Quire project."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    _scaffold(target, datetime.now(timezone.utc))
    click.echo(f"New Quire site created at {target}")


def _scaffold(root: Path, now: datetime) -> None:
    """Create the directory structure and starter files of a project."""
    files = {
        CONFIG_FILENAME: (
            f"title: {titleize(root.name)}\n"
            "base_url: \"\"\n"
            "description: \"\"\n"
            "author: \"\"\n"
            "paginate: 10\n"
        ),
        "content/_index.md": "---\ntitle: Latest posts\n---\n",
        "content/about.md": "---\ntitle: About\n---\n\nA few words about me.\n",
        "content/posts/_index.md": "---\ntitle: Posts\n---\n",
        f"content/posts/{now.strftime('%Y-%m-%d')}-hello-world.md": (
            _new_document("Hello World", now).replace("draft: true", "draft: false")
            + "My first post.\n"
        ),
        "static/.gitkeep": "",
        "layouts/.gitkeep": "",
    }
    for rel, text in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    (root / ".gitignore").write_text("public/\npublic.staging/\n", encoding="utf-8")
    _try_git_init(root)


def _try_git_init(root: Path) -> None:
    """Initialize a git repository if git is available."""
    if os.environ.get("QUIRE_SKIP_GIT_INIT") == "1":
        return
    git_bin = shutil.which("git")
    if not git_bin:
        return
    try:
        subprocess.run([git_bin, "init"], cwd=root, check=True, capture_output=True)
    except (OSError, subprocess.CalledProcessError) as exc:
        # Non-fatal: user can run git init manually
        logger.debug("git init failed: %s", exc)


def main():
    """Entry point for the CLI application."""
    cli()
