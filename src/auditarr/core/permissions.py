"""Ownership and mode checks for the shared media tree.

Hardlinking between the download directory and the library only works when
every service writes as a member of one shared group and that group can
write everywhere. The auditor reports deviations from that model and
suggests a command for each one; it never changes anything itself.
"""

import shlex
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field

from auditarr.core.classifier import is_metadata_file
from auditarr.core.models import PermissionIssue, PermissionRecord, Severity
from auditarr.core.paths import has_prefix

ROOT_UID = 0


class PermissionPolicy(BaseModel):
    """Expected ownership for the media tree."""

    model_config = ConfigDict(frozen=True)

    expected_gid: int = 0
    allowed_uids: Tuple[int, ...] = ()
    sgid_paths: Tuple[str, ...] = ()
    nonstandard_severity: Severity = Severity.WARNING


class PermissionAuditor:
    """Evaluates permission records against a :class:`PermissionPolicy`."""

    def __init__(self, policy: PermissionPolicy):
        self.policy = policy

    def audit(self, record: PermissionRecord) -> List[PermissionIssue]:
        """Return every issue found for one entry; metadata files are skipped."""
        if is_metadata_file(record.path):
            return []

        issues = []
        quoted = shlex.quote(record.path)
        recursive = "-R " if record.is_directory else ""

        if record.owner_uid not in self.policy.allowed_uids:
            if record.is_directory and record.owner_uid == ROOT_UID:
                severity = Severity.WARNING
            else:
                severity = Severity.ERROR
            target = self.policy.allowed_uids[0] if self.policy.allowed_uids else "<uid>"
            issues.append(self._issue(
                record,
                "wrong_owner",
                severity,
                f"Owned by UID {record.owner_uid}, expected one of "
                f"{list(self.policy.allowed_uids)}: chown {recursive}{target} {quoted}",
            ))

        if record.group_gid != self.policy.expected_gid:
            issues.append(self._issue(
                record,
                "wrong_group",
                Severity.ERROR,
                f"Group is GID {record.group_gid}, expected {self.policy.expected_gid}: "
                f"chgrp {recursive}{self.policy.expected_gid} {quoted}",
            ))

        if not record.group_writable:
            issues.append(self._issue(
                record,
                "not_group_writable",
                Severity.WARNING,
                f"Group cannot write, hardlinks and imports will fail: chmod g+w {quoted}",
            ))

        if (
            record.is_directory
            and has_prefix(record.path, self.policy.sgid_paths)
            and not record.has_sgid
        ):
            issues.append(self._issue(
                record,
                "missing_sgid",
                Severity.WARNING,
                f"Directory missing SGID bit, new files won't inherit the group: chmod g+s {quoted}",
            ))

        if self._is_nonstandard(record):
            expected = "2775" if record.is_directory else "664"
            issues.append(self._issue(
                record,
                "nonstandard_permissions",
                self.policy.nonstandard_severity,
                f"Mode {record.mode_string} is unusual for a media "
                f"{'directory' if record.is_directory else 'file'}: chmod {expected} {quoted}",
            ))

        return issues

    @staticmethod
    def _is_nonstandard(record: PermissionRecord) -> bool:
        if record.mode & 0o002:
            return True
        owner_needs = 0o700 if record.is_directory else 0o600
        return record.mode & owner_needs != owner_needs

    @staticmethod
    def _issue(record: PermissionRecord, kind: str, severity: Severity, hint: str) -> PermissionIssue:
        return PermissionIssue(
            path=record.path,
            issue=kind,
            severity=severity,
            fix_hint=hint,
            current_mode=record.mode & 0o7777,
            owner=record.owner_uid,
            group=record.group_gid,
        )
