# ciphershare_cli/auth/commands.py
import typer

from ciphershare_cli.core.session import save_token, clear_token

app = typer.Typer(help="Session commands. Tokens are issued by the auth service.")


@app.command("set-token")
def set_token(
    token: str = typer.Option(..., "--token", "-t", prompt=True, hide_input=True, help="Bearer token"),
):
    """
    Store the access token used for every other command.
    """
    save_token(token)
    typer.echo("Session saved.")


@app.command("logout")
def logout():
    """
    Forget the local session.
    """
    clear_token()
    typer.echo("Session cleared.")
