"""Commands: init, add, commit, log, show."""

import logging
from pathlib import Path

import click

from libgroot.constants import DEFAULT_REPO_DIR
from libgroot.diff import DiffKind, DiffLine
from libgroot.plumbing import ObjectError
from libgroot.ref import RefError
from libgroot.repository import CommitDiff, FileStatus, Repository, RepositoryError

LOG_SEPARATOR = '--------------'

_DIFF_STYLES = {
    DiffKind.ADDED: ('++', {'fg': 'green'}),
    DiffKind.REMOVED: ('--', {'fg': 'red'}),
    DiffKind.UNCHANGED: ('', {'dim': True}),
}


def _open_repo(ctx: click.Context) -> Repository:
    """Open the repository for the selected working directory, creating it if needed."""
    try:
        return Repository(ctx.obj['work_dir'])
    except OSError as e:
        raise click.ClickException(f'Cannot open repository: {e}') from e


@click.group()
@click.option('-C', '--work-dir', type=click.Path(file_okay=False, path_type=Path), default=Path('.'),
              envvar='GROOT_WORK_DIR', show_default=True, help='Working directory holding the repository.')
@click.option('-v', '--verbose', is_flag=True, help='Enable debug logging.')
@click.pass_context
def main(ctx: click.Context, work_dir: Path, verbose: bool) -> None:
    """A minimal content-addressed version control tool."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(levelname)s %(name)s: %(message)s')
    ctx.ensure_object(dict)
    ctx.obj['work_dir'] = work_dir


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@main.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Create a repository in the working directory."""
    repo = _open_repo(ctx)
    if repo.created:
        click.echo(f'Initialized empty groot repository in {repo.repo_path()}')
    else:
        click.echo(f'Already initialized the {DEFAULT_REPO_DIR} folder')


# ---------------------------------------------------------------------------
# add
# ---------------------------------------------------------------------------

@main.command()
@click.argument('file', type=click.Path(path_type=Path))
@click.pass_context
def add(ctx: click.Context, file: Path) -> None:
    """Stage FILE for the next commit."""
    repo = _open_repo(ctx)
    try:
        entry = repo.add(file)
    except OSError as e:
        raise click.ClickException(f'Cannot add {file}: {e.strerror or e}') from e
    except (ObjectError, RepositoryError) as e:
        raise click.ClickException(str(e)) from e

    click.echo(entry.hash)
    click.echo(f'Added {entry.path}')


# ---------------------------------------------------------------------------
# commit
# ---------------------------------------------------------------------------

@main.command()
@click.argument('message')
@click.pass_context
def commit(ctx: click.Context, message: str) -> None:
    """Record the staged files as a new commit with MESSAGE."""
    repo = _open_repo(ctx)
    try:
        commit_ref = repo.commit(message)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='MESSAGE') from e
    except (OSError, ObjectError, RefError, RepositoryError) as e:
        raise click.ClickException(f'Commit failed: {e}') from e

    click.echo(f'Commit Successfully created: {commit_ref}')


# ---------------------------------------------------------------------------
# log
# ---------------------------------------------------------------------------

@main.command()
@click.pass_context
def log(ctx: click.Context) -> None:
    """Show the commit history from HEAD back to the first commit."""
    repo = _open_repo(ctx)
    try:
        entries = repo.log()
        empty = True
        for entry in entries:
            empty = False
            click.echo(LOG_SEPARATOR)
            click.echo(f'Commit: {click.style(entry.commit_ref, fg="yellow")}')
            click.echo(f'Date: {entry.commit.timestamp}')
            click.echo(f'\n    {entry.commit.message}\n')
    except (RefError, RepositoryError) as e:
        raise click.ClickException(str(e)) from e

    if empty:
        click.echo('No commits yet')


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------

def _render_diff(lines: list[DiffLine]) -> None:
    for line in lines:
        marker, style = _DIFF_STYLES[line.kind]
        text = line.text if line.text.endswith('\n') else f'{line.text}\n'
        click.echo(click.style(f'{marker}{text}', **style), nl=False)


def _render_commit_diff(commit_diff: CommitDiff) -> None:
    click.echo(f'Changes in commit {commit_diff.commit_ref}:\n')
    for change in commit_diff.changes:
        click.echo(click.style(f'File: {change.path}', bold=True))
        if change.binary:
            click.echo('Binary file, content not shown')
        else:
            click.echo(change.content)

        match change.status:
            case FileStatus.MODIFIED if change.binary:
                click.echo('Binary file changed')
            case FileStatus.MODIFIED:
                click.echo('\nDiff:')
                _render_diff(change.lines)
                click.echo()
            case FileStatus.NEW_FILE:
                click.echo('New file in this commit')
            case FileStatus.FIRST_COMMIT:
                click.echo('First commit')


@main.command()
@click.argument('commit_id')
@click.pass_context
def show(ctx: click.Context, commit_id: str) -> None:
    """Show the per-file changes COMMIT_ID made relative to its parent."""
    repo = _open_repo(ctx)
    try:
        commit_diff = repo.show_commit(commit_id)
    except (ObjectError, RepositoryError) as e:
        raise click.ClickException(str(e)) from e

    if commit_diff is None:
        click.echo('Commit not found')
        return

    _render_commit_diff(commit_diff)
