import requests
from pathlib import Path
from typing import List, Optional, Tuple
from urllib.parse import unquote
from .config import BASE_URL, CA_CERT, REQUEST_TIMEOUT


class ApiError(Exception):
    """
    Non-2xx answer from the backend, or the backend could not be reached.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _get_verify():
    return CA_CERT if CA_CERT else True


def _request(method: str, path: str, token: str, **kwargs) -> requests.Response:
    url = f"{BASE_URL}{path}"
    headers = {"Authorization": f"Bearer {token}"}
    try:
        resp = requests.request(
            method, url, headers=headers, verify=_get_verify(), timeout=REQUEST_TIMEOUT, **kwargs
        )
    except requests.RequestException as e:
        raise ApiError(f"Could not reach {BASE_URL}: {e}")

    if resp.status_code >= 400:
        try:
            message = resp.json().get("message") or resp.json().get("detail")
        except ValueError:
            message = resp.text
        raise ApiError(str(message), resp.status_code)
    return resp


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------
def api_list_my_files(token: str) -> List[dict]:
    return _request("GET", "/files/mine", token).json()


def api_list_shared_with_me(token: str) -> List[dict]:
    return _request("GET", "/files/shared", token).json()


def api_list_discoverable(token: str) -> List[dict]:
    return _request("GET", "/files/discover", token).json()


def api_upload_file(token: str, file_path: str, description: str = "", mime: Optional[str] = None) -> dict:
    """
    Uploads a file as multipart form. The server encrypts it.
    """
    path = Path(file_path)
    with open(path, "rb") as f:
        files = {"file": (path.name, f, mime or "application/octet-stream")}
        data = {"file_description": description}
        return _request("POST", "/files", token, files=files, data=data).json()


def api_download_file(token: str, file_id: int) -> Tuple[str, bytes]:
    """
    Returns (filename, plaintext bytes).
    """
    resp = _request("GET", f"/files/{file_id}/download", token)
    disposition = resp.headers.get("Content-Disposition", "")
    filename = f"file_{file_id}"
    if "filename*=UTF-8''" in disposition:
        filename = unquote(disposition.split("filename*=UTF-8''", 1)[1].split(";", 1)[0])
    elif 'filename="' in disposition:
        filename = disposition.split('filename="', 1)[1].split('"', 1)[0]
    return filename, resp.content


def api_edit_file(token: str, file_id: int, name: str, description: str, shared: bool = False) -> str:
    path = f"/files/shared/{file_id}" if shared else f"/files/{file_id}"
    body = {"file_name": name, "file_description": description}
    return _request("PUT", path, token, json=body).json()["message"]


def api_delete_file(token: str, file_id: int) -> str:
    return _request("DELETE", f"/files/{file_id}", token).json()["message"]


# ---------------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------------
def api_request_access(token: str, file_id: int, permission_id: int) -> str:
    body = {"requested_file_id": file_id, "requested_permission_id": permission_id}
    return _request("POST", "/sharing/requests", token, json=body).json()["message"]


def api_list_requests(token: str) -> List[dict]:
    return _request("GET", "/sharing/requests", token).json()


def api_approve_request(token: str, request_id: int) -> str:
    return _request("POST", f"/sharing/requests/{request_id}/approve", token).json()["message"]


def api_reject_request(token: str, request_id: int) -> str:
    return _request("DELETE", f"/sharing/requests/{request_id}", token).json()["message"]


def api_share_with_department(token: str, file_id: int, department_id: int, permission_id: int) -> dict:
    body = {"file_id": file_id, "shared_with_department_id": department_id, "permission_id": permission_id}
    return _request("POST", "/sharing/departments", token, json=body).json()


def api_share_with_user(token: str, file_id: int, user_id: int, permission_id: int) -> str:
    body = {"file_id": file_id, "shared_with_user_id": user_id, "permission_id": permission_id}
    return _request("POST", "/sharing/users", token, json=body).json()["message"]


def api_update_access(token: str, grant_id: int, permission_id: int) -> str:
    body = {"shared_permission_id": permission_id}
    return _request("PUT", f"/sharing/grants/{grant_id}", token, json=body).json()["message"]


def api_revoke_access(token: str, grant_id: int) -> str:
    return _request("DELETE", f"/sharing/grants/{grant_id}", token).json()["message"]


def api_access_list(token: str, file_id: int, permission: str) -> List[dict]:
    return _request("GET", f"/sharing/files/{file_id}/access", token, params={"permission": permission}).json()


def api_list_departments(token: str) -> List[dict]:
    return _request("GET", "/sharing/targets/departments", token).json()
