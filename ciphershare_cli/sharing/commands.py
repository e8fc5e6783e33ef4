from typing import Optional

import typer

from ciphershare_cli.core.api import (
    ApiError,
    api_access_list,
    api_approve_request,
    api_list_departments,
    api_list_requests,
    api_reject_request,
    api_request_access,
    api_revoke_access,
    api_share_with_department,
    api_share_with_user,
    api_update_access,
)
from ciphershare_cli.core.utils import permission_id, require_token

app = typer.Typer(help="Share files, handle access requests and manage grants.")


def _run(action, failure: str):
    try:
        return action()
    except ApiError as e:
        typer.echo(f"{failure}: {e.message}")
        raise typer.Exit(code=1)


@app.command("request")
def request_access(
    file_id: int = typer.Argument(..., help="File ID"),
    permission: str = typer.Option("viewer", "--permission", "-p", help="viewer or editor"),
):
    """
    Ask the owner of a file for access.
    """
    token = require_token()
    pid = permission_id(permission)
    typer.echo(_run(lambda: api_request_access(token, file_id, pid), "Request failed"))


@app.command("requests")
def list_requests():
    """
    Pending requests on your files.
    """
    token = require_token()
    entries = _run(lambda: api_list_requests(token), "Failed to list requests")
    if not entries:
        typer.echo("No pending requests.")
        return

    typer.echo(f"{'ID':6}  {'File':30}  {'From':20}  {'Access':8}")
    typer.echo("-" * 70)
    for e in entries:
        typer.echo(f"{e['id']:<6}  {e['file_name'][:30]:30}  {e['name'][:20]:20}  {e['permission_name']:8}")


@app.command("approve")
def approve(request_id: int = typer.Argument(..., help="Request ID")):
    token = require_token()
    typer.echo(_run(lambda: api_approve_request(token, request_id), "Approval failed"))


@app.command("reject")
def reject(request_id: int = typer.Argument(..., help="Request ID")):
    token = require_token()
    typer.echo(_run(lambda: api_reject_request(token, request_id), "Rejection failed"))


@app.command("share")
def share(
    file_id: int = typer.Argument(..., help="File ID"),
    department: Optional[int] = typer.Option(None, "--department", "-d", help="Department ID"),
    user: Optional[int] = typer.Option(None, "--user", "-u", help="User ID"),
    permission: str = typer.Option("viewer", "--permission", "-p", help="viewer or editor"),
):
    """
    Share a file with every member of a department, or with one user.
    """
    token = require_token()
    if (department is None) == (user is None):
        typer.echo("Specify exactly one of --department or --user.")
        raise typer.Exit(code=1)

    pid = permission_id(permission)
    if department is not None:
        result = _run(lambda: api_share_with_department(token, file_id, department, pid), "Share failed")
        granted = len(result["result"]["granted"])
        typer.echo(f"{result['message']} {granted} member(s) granted.")
    else:
        typer.echo(_run(lambda: api_share_with_user(token, file_id, user, pid), "Share failed"))


@app.command("update")
def update(
    grant_id: int = typer.Argument(..., help="Grant ID"),
    permission: str = typer.Option(..., "--permission", "-p", help="viewer or editor"),
):
    """
    Change the permission of an existing grant.
    """
    token = require_token()
    pid = permission_id(permission)
    typer.echo(_run(lambda: api_update_access(token, grant_id, pid), "Update failed"))


@app.command("revoke")
def revoke(grant_id: int = typer.Argument(..., help="Grant ID")):
    token = require_token()
    typer.echo(_run(lambda: api_revoke_access(token, grant_id), "Revoke failed"))


@app.command("access")
def access(
    file_id: int = typer.Argument(..., help="File ID"),
    permission: str = typer.Option("viewer", "--permission", "-p", help="viewer or editor"),
):
    """
    Who has the given permission on a file.
    """
    token = require_token()
    permission_id(permission)
    entries = _run(lambda: api_access_list(token, file_id, permission.capitalize()), "Failed to get access list")
    if not entries:
        typer.echo("Nobody has this access.")
        return

    typer.echo(f"{'Grant':6}  {'Name':20}  {'Email':30}  {'Department':20}")
    typer.echo("-" * 82)
    for e in entries:
        typer.echo(
            f"{e['id']:<6}  {e['name'][:20]:20}  {str(e.get('email') or '')[:30]:30}  "
            f"{str(e.get('dep_name') or '')[:20]:20}"
        )


@app.command("departments")
def departments():
    """
    Departments you can share with.
    """
    token = require_token()
    depts = _run(lambda: api_list_departments(token), "Failed to get departments")
    if not depts:
        typer.echo("No departments found.")
        return

    typer.echo(f"{'ID':6}  {'Name':30}")
    typer.echo("-" * 40)
    for dept in depts:
        typer.echo(f"{str(dept.get('id', ''))[:6]:6}  {str(dept.get('dep_name', ''))[:30]:30}")
