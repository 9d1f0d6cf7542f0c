import logging
from typing import List, Literal

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from pymongo.database import Database

from database import find_by_id, get_db, get_documents, is_valid_id, now, oid, serialize
from events import (
    JoinInviteReceived, JoinInviteRejected, JoinRequestReceived, JoinRequestRejected, publish,
)
from rules import (
    add_member, claim_membership, dissolve_group, ensure_can_join, ensure_group_admin, get_student,
    group_of, group_state, is_group_admin, is_member, purge_pending, release_membership,
)
from schemas import Group, Paper

logger = logging.getLogger(__name__)

router = APIRouter(tags=["groups"])


# --------- Schemas (light, for request bodies) ---------
class GroupIn(BaseModel):
    name: str
    admin: str
    researchInterests: List[str] = []


class StudentRef(BaseModel):
    studentId: str


class InviteIn(BaseModel):
    adminId: str
    studentId: str


class RequestDecision(BaseModel):
    adminId: str
    action: Literal["accept", "reject"]


def serialize_group(group: dict) -> dict:
    group = serialize(group)
    group["state"] = group_state(group)
    return group


def _dedupe(values: List[str]) -> List[str]:
    seen = []
    for value in values:
        value = value.strip()
        if value and value not in seen:
            seen.append(value)
    return seen


# --------- Groups ---------
@router.post("/groups", status_code=201)
def create_group(body: GroupIn, db: Database = Depends(get_db)):
    name = body.name.strip()
    if not name:
        raise HTTPException(400, "Group name is required")
    if not is_valid_id(body.admin):
        raise HTTPException(400, "Invalid id format")
    interests = _dedupe(body.researchInterests)
    if not interests:
        raise HTTPException(400, "At least one research interest is required")

    get_student(db, body.admin)
    existing = group_of(db, body.admin)
    if existing:
        if is_group_admin(existing, body.admin):
            raise HTTPException(409, "You have already created a group.")
        raise HTTPException(409, "You are already a member of a group.")

    group_oid = ObjectId()
    group_id = str(group_oid)
    if not claim_membership(db, body.admin, group_id):
        raise HTTPException(409, "You are already a member of a group.")

    doc = Group(
        name=name,
        admin=body.admin,
        members=[body.admin],
        researchInterests=interests,
        createdAt=now(),
    ).model_dump()
    doc["_id"] = group_oid
    db["group"].insert_one(doc)
    purge_pending(db, body.admin)
    logger.info("Group %s created by %s", group_id, body.admin)
    return {"success": True, "message": "Group created", "id": group_id}


@router.get("/groups")
def list_groups(db: Database = Depends(get_db)):
    return [serialize_group(g) for g in get_documents(db, "group", sort=[("createdAt", -1)])]


@router.get("/groups/student/{student_id}")
def get_student_group(student_id: str, db: Database = Depends(get_db)):
    oid(student_id)
    group = group_of(db, student_id)
    if not group:
        raise HTTPException(404, "Student is not in a group")
    return serialize_group(group)


@router.get("/groups/{group_id}")
def get_group(group_id: str, db: Database = Depends(get_db)):
    return serialize_group(find_by_id(db, "group", group_id, "Group"))


# --------- Direct join ---------
@router.patch("/groups/{group_id}/join")
def join_group(group_id: str, body: StudentRef, db: Database = Depends(get_db)):
    group = find_by_id(db, "group", group_id, "Group")
    student = get_student(db, body.studentId)
    updated = add_member(db, group, student)
    return {"success": True, "message": "Joined group", "group": serialize_group(updated)}


# --------- Invites (admin -> student) ---------
@router.post("/groups/{group_id}/invite", status_code=201)
def invite_student(group_id: str, body: InviteIn, db: Database = Depends(get_db)):
    group = find_by_id(db, "group", group_id, "Group")
    ensure_group_admin(group, body.adminId)
    student = get_student(db, body.studentId)
    ensure_can_join(db, group, body.studentId)

    request_id = str(ObjectId())
    invite = {
        "requestId": request_id,
        "groupId": group_id,
        "groupName": group["name"],
        "adminId": body.adminId,
        "date": now(),
    }
    res = db["user"].update_one(
        {"_id": student["_id"], "joinRequests.groupId": {"$ne": group_id}},
        {"$push": {"joinRequests": invite}},
    )
    if res.modified_count == 0:
        raise HTTPException(409, "Student has already been invited to this group")
    publish(db, JoinInviteReceived(group_id=group_id, group_name=group["name"], student_id=body.studentId))
    return {"success": True, "message": "Invitation sent", "requestId": request_id}


def _find_invite(db: Database, request_id: str, student_id: str):
    student = get_student(db, student_id)
    for invite in student.get("joinRequests", []):
        if invite.get("requestId") == request_id:
            return student, invite
    raise HTTPException(404, "Invitation not found")


@router.patch("/groups/invite/{request_id}/accept")
def accept_invite(request_id: str, body: StudentRef, db: Database = Depends(get_db)):
    student, invite = _find_invite(db, request_id, body.studentId)
    group = db["group"].find_one({"_id": oid(invite["groupId"])})
    if not group:
        db["user"].update_one({"_id": student["_id"]}, {"$pull": {"joinRequests": {"requestId": request_id}}})
        raise HTTPException(404, "Group not found")
    updated = add_member(db, group, student)
    return {"success": True, "message": "Invitation accepted", "group": serialize_group(updated)}


@router.patch("/groups/invite/{request_id}/reject")
def reject_invite(request_id: str, body: StudentRef, db: Database = Depends(get_db)):
    student, invite = _find_invite(db, request_id, body.studentId)
    db["user"].update_one({"_id": student["_id"]}, {"$pull": {"joinRequests": {"requestId": request_id}}})
    publish(db, JoinInviteRejected(
        group_id=invite["groupId"],
        group_name=invite.get("groupName", ""),
        student_name=student.get("name", ""),
        admin_id=invite["adminId"],
    ))
    return {"success": True, "message": "Invitation rejected"}


# --------- Requests (student -> admin) ---------
@router.post("/groups/{group_id}/request-join", status_code=201)
def request_join(group_id: str, body: StudentRef, db: Database = Depends(get_db)):
    group = find_by_id(db, "group", group_id, "Group")
    student = get_student(db, body.studentId)
    ensure_can_join(db, group, body.studentId)
    res = db["group"].update_one(
        {"_id": group["_id"], "pendingJoinRequests.student": {"$ne": body.studentId}},
        {"$push": {"pendingJoinRequests": {"student": body.studentId, "date": now()}}},
    )
    if res.modified_count == 0:
        raise HTTPException(409, "You have already requested to join this group")
    publish(db, JoinRequestReceived(
        group_id=group_id,
        group_name=group["name"],
        student_name=student.get("name", ""),
        admin_id=group["admin"],
    ))
    return {"success": True, "message": "Join request sent"}


@router.get("/groups/{group_id}/requests")
def list_join_requests(group_id: str, adminId: str, db: Database = Depends(get_db)):
    group = find_by_id(db, "group", group_id, "Group")
    ensure_group_admin(group, adminId)
    return group.get("pendingJoinRequests", [])


@router.patch("/groups/{group_id}/requests/{student_id}")
def decide_join_request(group_id: str, student_id: str, body: RequestDecision, db: Database = Depends(get_db)):
    group = find_by_id(db, "group", group_id, "Group")
    ensure_group_admin(group, body.adminId)
    if not any(r.get("student") == student_id for r in group.get("pendingJoinRequests", [])):
        raise HTTPException(404, "Join request not found")

    if body.action == "reject":
        db["group"].update_one({"_id": group["_id"]}, {"$pull": {"pendingJoinRequests": {"student": student_id}}})
        publish(db, JoinRequestRejected(group_id=group_id, group_name=group["name"], student_id=student_id))
        return {"success": True, "message": "Join request rejected"}

    student = get_student(db, student_id)
    updated = add_member(db, group, student)
    return {"success": True, "message": "Join request accepted", "group": serialize_group(updated)}


# --------- Leave / delete ---------
@router.patch("/groups/{group_id}/leave")
def leave_group(group_id: str, body: StudentRef, db: Database = Depends(get_db)):
    group = find_by_id(db, "group", group_id, "Group")
    if is_group_admin(group, body.studentId):
        raise HTTPException(403, "The group admin cannot leave the group")
    if not is_member(group, body.studentId):
        raise HTTPException(404, "Student is not a member of this group")
    if group.get("assignedSupervisor"):
        raise HTTPException(409, "Cannot leave a group that already has a supervisor")
    db["group"].update_one({"_id": group["_id"]}, {"$pull": {"members": body.studentId}})
    release_membership(db, body.studentId, group_id)
    logger.info("Student %s left group %s", body.studentId, group_id)
    return {"success": True, "message": "Left group"}


@router.delete("/groups/{group_id}")
def delete_group(group_id: str, adminId: str, db: Database = Depends(get_db)):
    group = find_by_id(db, "group", group_id, "Group")
    ensure_group_admin(group, adminId)
    if group.get("assignedSupervisor"):
        raise HTTPException(409, "Cannot delete a group that already has a supervisor")
    dissolve_group(db, group)
    logger.info("Group %s deleted by %s", group_id, adminId)
    return {"success": True, "message": "Group deleted"}


@router.post("/groups/{group_id}/recommendations", status_code=201)
def add_recommendation(group_id: str, paper: Paper, db: Database = Depends(get_db)):
    res = db["group"].update_one(
        {"_id": oid(group_id), "recommendedFeatures.id": {"$ne": paper.id}},
        {"$push": {"recommendedFeatures": paper.model_dump()}},
    )
    if res.matched_count == 0:
        find_by_id(db, "group", group_id, "Group")
        raise HTTPException(409, "Paper already recommended to this group")
    return {"success": True, "message": "Recommendation added"}
