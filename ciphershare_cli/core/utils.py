import typer

from .session import load_token

PERMISSION_IDS = {"viewer": 1, "editor": 2}


def require_token() -> str:
    token = load_token()
    if not token:
        typer.echo("No active session. Run 'ciphershare auth set-token' first.")
        raise typer.Exit(code=1)
    return token


def permission_id(name: str) -> int:
    try:
        return PERMISSION_IDS[name.lower()]
    except KeyError:
        typer.echo(f"Invalid permission. Options: {', '.join(PERMISSION_IDS)}")
        raise typer.Exit(code=1)
