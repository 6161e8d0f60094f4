# meeting_artifacts/services/hackmd_client.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from meeting_artifacts.services.api_client import ApiClient, ApiClientError

logger = logging.getLogger("meeting_artifacts.hackmd")

HACKMD_API_URL = "https://api.hackmd.io/v1"
HACKMD_NOTE_URL = "https://hackmd.io"

# Anyone may read; signed-in users may edit and comment.
DEFAULT_NOTE_PERMISSIONS: Dict[str, str] = {
    "readPermission": "guest",
    "writePermission": "signed_in",
    "commentPermission": "signed_in_users",
}


class HackMDClientError(ApiClientError):
    """
    Raised when a HackMD API call fails.
    """


def note_link(note: Dict[str, Any]) -> str:
    """
    Public link of a note: its publishLink, or the editor URL by id.
    """
    return note.get("publishLink") or f"{HACKMD_NOTE_URL}/{note['id']}"


class HackMDClient(ApiClient):
    """
    HackMD notes host.

    With `team_path` set, every call goes through /teams/{team_path}/notes so
    notes live in the team workspace; otherwise the token owner's personal
    workspace is used.
    """

    service_name = "HackMD"
    error_class = HackMDClientError

    def __init__(
        self,
        api_token: str,
        team_path: Optional[str] = None,
        base_url: str = HACKMD_API_URL,
        timeout_seconds: float = 10.0,
    ) -> None:
        if not api_token:
            raise ValueError("api_token is required")
        base_url = base_url.rstrip("/")
        if team_path:
            base_url = f"{base_url}/teams/{team_path}"
        super().__init__(base_url, token=api_token, timeout_seconds=timeout_seconds)

    async def list_notes(self) -> List[Dict[str, Any]]:
        return await self.get_json("/notes")

    async def get_note(self, note_id: str) -> Dict[str, Any]:
        """
        Full note, content included (the list endpoint omits content).
        """
        return await self.get_json(f"/notes/{note_id}")

    async def find_note_by_title(self, title: str) -> Optional[Dict[str, Any]]:
        for note in await self.list_notes():
            if note.get("title") == title:
                return note
        return None

    async def create_note(
        self,
        title: str,
        content: str,
        permissions: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        data = {
            "title": title,
            "content": content,
            **(permissions or DEFAULT_NOTE_PERMISSIONS),
        }
        note = await self.post_json("/notes", json=data)
        logger.info("Created HackMD note %s", note.get("id"))
        return note

    async def update_note(self, note_id: str, content: str) -> Dict[str, Any]:
        note = await self.patch_json(f"/notes/{note_id}", json={"content": content})
        logger.info("Updated HackMD note %s", note_id)
        return note
