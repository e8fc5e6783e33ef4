# ciphershare_cli/main.py


import typer
from ciphershare_cli.auth.commands import app as auth_app
from ciphershare_cli.files.commands import app as files_app
from ciphershare_cli.sharing.commands import app as sharing_app

app = typer.Typer()
app.add_typer(auth_app, name="auth")
app.add_typer(files_app, name="files")
app.add_typer(sharing_app, name="sharing")

if __name__ == "__main__":
    app()
