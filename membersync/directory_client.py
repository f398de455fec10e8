"""Google Admin SDK Directory API wrapper for Google Group membership."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from google.api_core.exceptions import RetryError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from . import config
from .google_api import error_reasons, execute, http_status
from .models import GroupMember

log = logging.getLogger(__name__)


class ChangeStatus(Enum):
    DONE = "done"
    ALREADY_MEMBER = "already_member"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass
class ChangeResult:
    """Outcome of a single add or remove call."""

    status: ChangeStatus
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status in (ChangeStatus.DONE, ChangeStatus.ALREADY_MEMBER)


def _is_conflict(exc: HttpError) -> bool:
    return http_status(exc) == 409 or "duplicate" in error_reasons(exc)


class GroupDirectory:
    """Members of one Google Group, addressed by its email (group key)."""

    def __init__(self, service, group_key: str) -> None:
        self.service = service
        self.group_key = group_key

    @classmethod
    def from_credentials(cls, creds, group_key: str) -> GroupDirectory:
        service = build("admin", "directory_v1", credentials=creds, cache_discovery=False)
        return cls(service, group_key)

    def list_members(self) -> list[GroupMember]:
        """Fetch every member of the group, following pagination.

        Returns an empty list for a group with no members.  API errors
        propagate; a partial listing is never returned.
        """
        members: list[GroupMember] = []
        page_token: str | None = None

        while True:
            result = execute(
                self.service.members().list(
                    groupKey=self.group_key,
                    maxResults=config.GROUP_PAGE_SIZE,
                    pageToken=page_token,
                    fields="nextPageToken,members(id,email)",
                )
            )
            for member in result.get("members", []):
                if member.get("email"):
                    members.append(GroupMember.from_api(member))

            page_token = result.get("nextPageToken")
            if not page_token:
                break

        log.info("Fetched %d members of %s", len(members), self.group_key)
        return members

    def add_member(self, email: str) -> ChangeResult:
        """Add *email* to the group.

        Already being a member counts as success.  A 404 (Google does not
        know the address) is reported as NOT_FOUND rather than raised.
        """
        try:
            execute(
                self.service.members().insert(
                    groupKey=self.group_key,
                    body={"email": email, "role": "MEMBER"},
                )
            )
        except HttpError as exc:
            if _is_conflict(exc):
                log.info("%s is already a member of %s", email, self.group_key)
                return ChangeResult(ChangeStatus.ALREADY_MEMBER)
            if http_status(exc) == 404:
                log.error("Failed to add %s to %s: 404 not found", email, self.group_key)
                return ChangeResult(ChangeStatus.NOT_FOUND, "not found")
            log.error("Failed to add %s to %s: %s", email, self.group_key, exc)
            return ChangeResult(ChangeStatus.FAILED, str(exc))
        except RetryError as exc:
            log.error("Gave up adding %s to %s: %s", email, self.group_key, exc)
            return ChangeResult(ChangeStatus.FAILED, str(exc))
        return ChangeResult(ChangeStatus.DONE)

    def remove_member(self, member_key: str) -> ChangeResult:
        """Remove a member by id or email.

        A 404 means the member is already gone, which counts as done.
        """
        try:
            execute(
                self.service.members().delete(
                    groupKey=self.group_key, memberKey=member_key,
                )
            )
        except HttpError as exc:
            if http_status(exc) == 404:
                log.warning("%s was not in %s", member_key, self.group_key)
                return ChangeResult(ChangeStatus.DONE, "already removed")
            log.error("Failed to remove %s from %s: %s", member_key, self.group_key, exc)
            return ChangeResult(ChangeStatus.FAILED, str(exc))
        except RetryError as exc:
            log.error("Gave up removing %s from %s: %s", member_key, self.group_key, exc)
            return ChangeResult(ChangeStatus.FAILED, str(exc))
        return ChangeResult(ChangeStatus.DONE)
