"""
Membership rules shared by the direct-join, invite and request paths.

The ``is_*`` predicates answer questions about documents already loaded; the
``ensure_*`` helpers turn them into HTTP errors; ``add_member`` performs the
join itself with conditional updates so the single-group and capacity rules
still hold when two requests race.
"""
import logging
from typing import Optional

from fastapi import HTTPException
from pymongo.database import Database

from database import find_by_id, oid
from events import StudentJoinedGroup, publish

logger = logging.getLogger(__name__)

FORMING = "Forming"
FULL = "Full"
SUPERVISED = "Supervised"


def group_state(group: dict) -> str:
    if group.get("assignedSupervisor"):
        return SUPERVISED
    if is_full(group):
        return FULL
    return FORMING


def is_group_admin(group: dict, student_id: str) -> bool:
    return group.get("admin") == student_id


def is_member(group: dict, student_id: str) -> bool:
    return student_id in group.get("members", [])


def is_full(group: dict) -> bool:
    return len(group.get("members", [])) >= group.get("maxMembers", 0)


def group_of(db: Database, student_id: str) -> Optional[dict]:
    """The group the student administers or belongs to, if any."""
    return db["group"].find_one({"$or": [{"admin": student_id}, {"members": student_id}]})


def get_student(db: Database, student_id: str) -> dict:
    student = find_by_id(db, "user", student_id, "Student")
    if student.get("role") != "student":
        raise HTTPException(status_code=403, detail="Only students can join groups")
    return student


def ensure_group_admin(group: dict, admin_id: str) -> None:
    if not is_group_admin(group, admin_id):
        raise HTTPException(status_code=403, detail="Only the group admin can perform this action")


def ensure_can_join(db: Database, group: dict, student_id: str) -> None:
    if is_group_admin(group, student_id):
        raise HTTPException(status_code=409, detail="You are the admin of this group")
    if is_member(group, student_id):
        raise HTTPException(status_code=409, detail="Student is already a member of this group")
    if group.get("assignedSupervisor"):
        raise HTTPException(status_code=409, detail="This group already has an assigned supervisor")
    if is_full(group):
        raise HTTPException(status_code=409, detail="This group is full")
    if group_of(db, student_id):
        raise HTTPException(status_code=409, detail="Student already belongs to a group")


def claim_membership(db: Database, student_id: str, group_id: str) -> bool:
    res = db["user"].update_one({"_id": oid(student_id), "groupId": None}, {"$set": {"groupId": group_id}})
    return res.modified_count == 1


def release_membership(db: Database, student_id: str, group_id: str) -> None:
    db["user"].update_one({"_id": oid(student_id), "groupId": group_id}, {"$set": {"groupId": None}})


def purge_pending(db: Database, student_id: str) -> None:
    """Drop every invite addressed to the student and every request they made."""
    db["user"].update_one({"_id": oid(student_id)}, {"$set": {"joinRequests": []}})
    db["group"].update_many(
        {"pendingJoinRequests.student": student_id},
        {"$pull": {"pendingJoinRequests": {"student": student_id}}},
    )


def add_member(db: Database, group: dict, student: dict) -> dict:
    """Add ``student`` to ``group`` and return the updated group.

    Checks are repeated atomically: the student's ``groupId`` is claimed
    first, then the member is pushed only while the group still has room
    and no supervisor has been assigned.
    """
    group_id = str(group["_id"])
    student_id = str(student["_id"])
    ensure_can_join(db, group, student_id)

    if not claim_membership(db, student_id, group_id):
        raise HTTPException(status_code=409, detail="Student already belongs to a group")

    capacity = group.get("maxMembers", 0)
    res = db["group"].update_one(
        {
            "_id": group["_id"],
            "members": {"$ne": student_id},
            "assignedSupervisor": None,
            f"members.{capacity - 1}": {"$exists": False},
        },
        {"$push": {"members": student_id}},
    )
    if res.modified_count == 0:
        release_membership(db, student_id, group_id)
        logger.warning("Lost race adding %s to group %s", student_id, group_id)
        current = db["group"].find_one({"_id": group["_id"]}) or {}
        if current.get("assignedSupervisor"):
            raise HTTPException(status_code=409, detail="This group already has an assigned supervisor")
        raise HTTPException(status_code=409, detail="This group is full")

    purge_pending(db, student_id)
    logger.info("Student %s joined group %s", student_id, group_id)
    publish(db, StudentJoinedGroup(
        group_id=group_id,
        group_name=group.get("name", ""),
        student_id=student_id,
        student_name=student.get("name", ""),
        admin_id=group.get("admin"),
    ))
    return db["group"].find_one({"_id": group["_id"]})


def dissolve_group(db: Database, group: dict) -> None:
    """Delete the group and everything that points at it."""
    group_id = str(group["_id"])
    db["group"].delete_one({"_id": group["_id"]})
    for member in group.get("members", []):
        release_membership(db, member, group_id)
    db["user"].update_many(
        {"joinRequests.groupId": group_id},
        {"$pull": {"joinRequests": {"groupId": group_id}}},
    )
    db["proposal"].delete_many({"groupId": group_id})
    db["meeting"].delete_many({"groupId": group_id})
