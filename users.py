import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field
from pymongo.database import Database

from database import create_document, find_by_id, get_db, get_documents, oid, serialize
from rules import dissolve_group, group_of
from schemas import Paper, Role, User

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])

EDITABLE_FIELDS = ("name", "photo")


# --------- Schemas (light, for request bodies) ---------
class UserIn(BaseModel):
    name: str
    email: EmailStr
    role: Role
    studentId: Optional[str] = None
    department: Optional[str] = None
    phone: Optional[str] = None
    cgpa: Optional[float] = Field(None, ge=0, le=4)
    credits: Optional[int] = Field(None, ge=0)
    researchInterests: List[str] = []
    photo: Optional[str] = None


class ProfilePatch(BaseModel):
    name: Optional[str] = None
    photo: Optional[str] = None


class SupervisorAssignment(BaseModel):
    supervisorId: str


def _get_supervisor(db: Database, supervisor_id: str) -> dict:
    supervisor = find_by_id(db, "user", supervisor_id, "Supervisor")
    if supervisor.get("role") != "supervisor":
        raise HTTPException(400, "User is not a supervisor")
    return supervisor


def _ensure_not_group_supervised(db: Database, student_id: str) -> None:
    group = group_of(db, student_id)
    if group and group.get("assignedSupervisor"):
        raise HTTPException(409, "Student's group already has an assigned supervisor")

def link_supervisor(db: Database, student_ids: List[str], supervisor_id: str) -> None:
    """Point each student at the supervisor and list them on the supervisor, unlinking any previous one."""
    if not student_ids:
        return
    db["user"].update_many(
        {"students": {"$in": student_ids}, "_id": {"$ne": oid(supervisor_id)}},
        {"$pullAll": {"students": student_ids}},
    )
    db["user"].update_many(
        {"_id": {"$in": [oid(s) for s in student_ids]}},
        {"$set": {"assignedSupervisor": supervisor_id}},
    )
    db["user"].update_one(
        {"_id": oid(supervisor_id)},
        {"$addToSet": {"students": {"$each": student_ids}}},
    )


def unlink_supervisor(db: Database, student_ids: List[str], supervisor_id: str) -> None:
    if not student_ids:
        return
    db["user"].update_many(
        {"_id": {"$in": [oid(s) for s in student_ids]}, "assignedSupervisor": supervisor_id},
        {"$set": {"assignedSupervisor": None}},
    )
    db["user"].update_one(
        {"_id": oid(supervisor_id)},
        {"$pullAll": {"students": student_ids}},
    )


# --------- Users ---------
@router.post("/users", status_code=201)
def create_user(user: UserIn, db: Database = Depends(get_db)):
    if db["user"].find_one({"email": user.email}):
        raise HTTPException(409, "A user with this email already exists")
    doc = User(**user.model_dump())
    new_id = create_document(db, "user", doc)
    logger.info("Registered %s %s", user.role, new_id)
    return {"success": True, "message": "User created", "id": new_id}


@router.get("/users")
def list_users(role: Optional[str] = None, db: Database = Depends(get_db)):
    filt = {"role": role} if role else None
    return [serialize(u) for u in get_documents(db, "user", filt)]


@router.get("/users/student/{student_code}")
def get_user_by_student_code(student_code: str, db: Database = Depends(get_db)):
    u = db["user"].find_one({"studentId": student_code})
    if not u:
        raise HTTPException(404, "User not found")
    return serialize(u)


@router.get("/users/{user_id}")
def get_user(user_id: str, db: Database = Depends(get_db)):
    return serialize(find_by_id(db, "user", user_id, "User"))


@router.patch("/users/{user_id}")
def update_profile(user_id: str, patch: ProfilePatch, db: Database = Depends(get_db)):
    updates = {}
    for field in EDITABLE_FIELDS:
        value = getattr(patch, field)
        if value is not None and value.strip():
            updates[field] = value.strip()
    if not updates:
        raise HTTPException(400, "Nothing to update: provide a non-empty name or photo")
    res = db["user"].update_one({"_id": oid(user_id)}, {"$set": updates})
    if res.matched_count == 0:
        raise HTTPException(404, "User not found")
    return {"success": True, "message": "Profile updated", "user": serialize(db["user"].find_one({"_id": oid(user_id)}))}


@router.delete("/users/{user_id}")
def delete_user(user_id: str, db: Database = Depends(get_db)):
    user = find_by_id(db, "user", user_id, "User")

    owned = db["group"].find_one({"admin": user_id})
    if owned:
        if owned.get("assignedSupervisor"):
            unlink_supervisor(db, owned.get("members", []), owned["assignedSupervisor"])
        dissolve_group(db, owned)
        logger.info("Dissolved group %s with its admin %s", owned["_id"], user_id)

    if user.get("role") == "supervisor":
        db["group"].update_many({"assignedSupervisor": user_id}, {"$set": {"assignedSupervisor": None}})
        db["group"].update_many({"proposalsSubmittedTo": user_id}, {"$pull": {"proposalsSubmittedTo": user_id}})
        db["proposal"].delete_many({"supervisor": user_id})
        db["meeting"].delete_many({"supervisorId": user_id})

    db["user"].delete_one({"_id": user["_id"]})
    db["user"].update_many({"students": user_id}, {"$pull": {"students": user_id}})
    db["user"].update_many({"assignedSupervisor": user_id}, {"$set": {"assignedSupervisor": None}})
    db["group"].update_many({"members": user_id}, {"$pull": {"members": user_id}})
    db["group"].update_many(
        {"pendingJoinRequests.student": user_id},
        {"$pull": {"pendingJoinRequests": {"student": user_id}}},
    )
    logger.info("Deleted user %s", user_id)
    return {"success": True, "message": "User deleted"}


# --------- Notifications ---------
@router.get("/users/{user_id}/notifications")
def list_notifications(user_id: str, db: Database = Depends(get_db)):
    u = find_by_id(db, "user", user_id, "User")
    return {
        "isSeen": u.get("isSeen", True),
        "notifications": list(reversed(u.get("notifications", []))),
    }


@router.patch("/users/{user_id}/notifications/seen")
def mark_notifications_seen(user_id: str, db: Database = Depends(get_db)):
    res = db["user"].update_one({"_id": oid(user_id)}, {"$set": {"isSeen": True}})
    if res.matched_count == 0:
        raise HTTPException(404, "User not found")
    return {"success": True, "message": "Notifications marked as seen"}


@router.get("/users/{user_id}/join-requests")
def list_join_invites(user_id: str, db: Database = Depends(get_db)):
    u = find_by_id(db, "user", user_id, "User")
    return u.get("joinRequests", [])


# --------- Bookmarks ---------
@router.post("/users/{user_id}/bookmarks", status_code=201)
def add_bookmark(user_id: str, paper: Paper, db: Database = Depends(get_db)):
    res = db["user"].update_one(
        {"_id": oid(user_id), "bookmarks.id": {"$ne": paper.id}},
        {"$push": {"bookmarks": paper.model_dump()}},
    )
    if res.matched_count == 0:
        find_by_id(db, "user", user_id, "User")
        raise HTTPException(409, "Paper already bookmarked")
    return {"success": True, "message": "Bookmark added"}


@router.get("/users/{user_id}/bookmarks")
def list_bookmarks(user_id: str, db: Database = Depends(get_db)):
    u = find_by_id(db, "user", user_id, "User")
    return u.get("bookmarks", [])


@router.delete("/users/{user_id}/bookmarks/{paper_id}")
def remove_bookmark(user_id: str, paper_id: str, db: Database = Depends(get_db)):
    res = db["user"].update_one(
        {"_id": oid(user_id), "bookmarks.id": paper_id},
        {"$pull": {"bookmarks": {"id": paper_id}}},
    )
    if res.matched_count == 0:
        find_by_id(db, "user", user_id, "User")
        raise HTTPException(404, "Bookmark not found")
    return {"success": True, "message": "Bookmark removed"}


# --------- Supervisor assignment ---------
@router.patch("/users/{student_id}/supervisor")
def assign_supervisor(student_id: str, body: SupervisorAssignment, db: Database = Depends(get_db)):
    student = find_by_id(db, "user", student_id, "Student")
    if student.get("role") != "student":
        raise HTTPException(400, "User is not a student")
    _ensure_not_group_supervised(db, student_id)
    _get_supervisor(db, body.supervisorId)
    link_supervisor(db, [student_id], body.supervisorId)
    logger.info("Assigned supervisor %s to student %s", body.supervisorId, student_id)
    return {"success": True, "message": "Supervisor assigned"}


@router.delete("/users/{student_id}/supervisor")
def unassign_supervisor(student_id: str, db: Database = Depends(get_db)):
    student = find_by_id(db, "user", student_id, "Student")
    supervisor_id = student.get("assignedSupervisor")
    if not supervisor_id:
        raise HTTPException(409, "Student has no assigned supervisor")
    _ensure_not_group_supervised(db, student_id)
    unlink_supervisor(db, [student_id], supervisor_id)
    return {"success": True, "message": "Supervisor unassigned"}


@router.get("/users/{supervisor_id}/students")
def list_supervisees(supervisor_id: str, db: Database = Depends(get_db)):
    supervisor = _get_supervisor(db, supervisor_id)
    ids = [oid(s) for s in supervisor.get("students", [])]
    return [serialize(u) for u in get_documents(db, "user", {"_id": {"$in": ids}})]
