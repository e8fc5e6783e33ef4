import mimetypes
from pathlib import Path
from typing import Optional

import typer

from ciphershare_cli.core.api import (
    ApiError,
    api_delete_file,
    api_download_file,
    api_edit_file,
    api_list_discoverable,
    api_list_my_files,
    api_list_shared_with_me,
    api_upload_file,
)
from ciphershare_cli.core.utils import require_token

app = typer.Typer(help="Upload, download and manage files.")


def _print_files(files: list, owner_column: bool = False) -> None:
    if not files:
        typer.echo("No files found.")
        return

    header = f"{'ID':6}  {'Name':30}  {'Size':>10}"
    if owner_column:
        header += f"  {'Owner':20}"
    typer.echo(header)
    typer.echo("-" * len(header))
    for f in files:
        line = f"{str(f.get('id', ''))[:6]:6}  {str(f.get('file_name', ''))[:30]:30}  {str(f.get('file_size', '')):>10}"
        if owner_column:
            line += f"  {str(f.get('name', ''))[:20]:20}"
        typer.echo(line)


@app.command("list")
def list_files(
    shared: bool = typer.Option(False, "--shared", help="Files shared with you"),
    discover: bool = typer.Option(False, "--discover", help="Files you can request access to"),
):
    """
    List your files (default), files shared with you, or discoverable files.
    """
    token = require_token()
    try:
        if shared:
            entries = api_list_shared_with_me(token)
            if not entries:
                typer.echo("No files shared with you.")
                return
            typer.echo(f"{'Grant':6}  {'File':6}  {'Name':30}  {'Owner':20}  {'Access':8}")
            typer.echo("-" * 78)
            for e in entries:
                typer.echo(
                    f"{e['id']:<6}  {e['file_id']:<6}  {e['file_name'][:30]:30}  "
                    f"{e['name'][:20]:20}  {e['permission_name']:8}"
                )
        elif discover:
            _print_files(api_list_discoverable(token), owner_column=True)
        else:
            _print_files(api_list_my_files(token))
    except ApiError as e:
        typer.echo(f"Failed to list files: {e.message}")
        raise typer.Exit(code=1)


@app.command("upload")
def upload(
    filepath: str = typer.Argument(..., help="Path to the file to upload"),
    description: str = typer.Option("", "--description", "-d", help="File description"),
):
    """
    Upload a file. The server encrypts it with a fresh per-file key.
    """
    token = require_token()

    path = Path(filepath)
    if not path.is_file():
        typer.echo(f"File not found: {filepath}")
        raise typer.Exit(code=1)

    mime, _ = mimetypes.guess_type(path.name)
    try:
        result = api_upload_file(token, str(path), description, mime)
    except ApiError as e:
        typer.echo(f"Upload failed: {e.message}")
        raise typer.Exit(code=1)

    typer.echo(f"{result['message']} ID: {result['file']['id']}")


@app.command("download")
def download(
    file_id: int = typer.Argument(..., help="File ID"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output path"),
):
    """
    Download and decrypt a file you own or that is shared with you.
    """
    token = require_token()
    try:
        filename, content = api_download_file(token, file_id)
    except ApiError as e:
        typer.echo(f"Download failed: {e.message}")
        raise typer.Exit(code=1)

    out_path = Path(output) if output else Path.cwd() / Path(filename).name
    out_path.write_bytes(content)
    typer.echo(f"Saved {len(content)} bytes to {out_path}")


@app.command("edit")
def edit(
    file_id: int = typer.Argument(..., help="File ID"),
    name: str = typer.Option(..., "--name", "-n", help="New name, without extension"),
    description: str = typer.Option("", "--description", "-d", help="New description"),
    shared: bool = typer.Option(False, "--shared", help="Edit a file shared with you (Editor access)"),
):
    """
    Rename a file or change its description. The extension is kept.
    """
    token = require_token()
    try:
        message = api_edit_file(token, file_id, name, description, shared=shared)
    except ApiError as e:
        typer.echo(f"Edit failed: {e.message}")
        raise typer.Exit(code=1)
    typer.echo(message)


@app.command("delete")
def delete(
    file_id: int = typer.Argument(..., help="File ID"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """
    Delete one of your files together with all its shares and requests.
    """
    token = require_token()

    if not force:
        confirm = typer.confirm(f"Are you sure you want to delete file {file_id}?")
        if not confirm:
            typer.echo("Operation cancelled.")
            raise typer.Exit(code=0)

    try:
        message = api_delete_file(token, file_id)
    except ApiError as e:
        typer.echo(f"Delete failed: {e.message}")
        raise typer.Exit(code=1)
    typer.echo(message)
