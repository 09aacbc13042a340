"""
suspicious.py

Audit of delete decisions that are probably not real duplicates:
alternate takes of a song, and files that differ only by their leading
track number (the same song on two tracks of a compilation, say).
"""

import os
import re
from dataclasses import dataclass

from audiodedupe.i18n import emit

# ================= I18N MESSAGE KEYS =================

MSG_SUSPICIOUS_COUNT = "SUSPICIOUS_COUNT"
MSG_SUSPICIOUS_ITEM = "SUSPICIOUS_ITEM"
MSG_SUSPICIOUS_KEEP = "SUSPICIOUS_KEEP"
MSG_SUSPICIOUS_DELETE = "SUSPICIOUS_DELETE"

# ====================================================

ALTERNATE_TAKE = re.compile(r"take\s*[ivx\d]+|alternate|alt\.", re.IGNORECASE)
LEADING_NUMBER = re.compile(r"^\d+[-.\s]+")
COPY_SUFFIX = re.compile(r"\s*\(\d+\)\.")

REASON_ALTERNATE = "alternate take"
REASON_TRACK_NUMBERS = "different track numbers"


@dataclass
class Suspicious:
    group_id: str
    reason: str
    keep: str
    delete: str

    def to_dict(self):
        return {
            "groupId": self.group_id,
            "reason": self.reason,
            "keep": self.keep,
            "delete": self.delete,
        }


def strip_track_number(filename):
    name = LEADING_NUMBER.sub("", filename, count=1)
    return COPY_SUFFIX.sub(".", name, count=1).lower()


def leading_number(filename):
    m = re.match(r"^(\d+)", filename)
    return m.group(1) if m else None


def suspicious_reason(keep_path, delete_path):
    keep_name = os.path.basename(keep_path)
    delete_name = os.path.basename(delete_path)

    if ALTERNATE_TAKE.search(delete_name) or ALTERNATE_TAKE.search(keep_name):
        return REASON_ALTERNATE

    if keep_name != delete_name and strip_track_number(keep_name) == strip_track_number(delete_name):
        keep_number = leading_number(keep_name)
        delete_number = leading_number(delete_name)
        if keep_number and delete_number and keep_number != delete_number:
            return REASON_TRACK_NUMBERS

    return None


def find_suspicious(decisions):
    found = []
    for d in decisions:
        if not d.keep or not d.delete:
            continue
        keep_path = d.keep[0]
        for delete_path in d.delete:
            reason = suspicious_reason(keep_path, delete_path)
            if reason:
                found.append(Suspicious(d.group_id, reason, keep_path, delete_path))
    return found


def report_suspicious(found):
    emit(MSG_SUSPICIOUS_COUNT, count=len(found))
    for s in found:
        emit(MSG_SUSPICIOUS_ITEM, group=s.group_id, reason=s.reason)
        emit(MSG_SUSPICIOUS_KEEP, path=s.keep)
        emit(MSG_SUSPICIOUS_DELETE, path=s.delete)
