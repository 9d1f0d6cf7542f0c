import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from pymongo.database import Database

from database import create_document, find_by_id, get_db, get_documents, now, oid, serialize
from events import MeetingScheduled, publish
from rules import group_of
from schemas import Meeting, MeetingStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["meetings"])


# --------- Schemas (light, for request bodies) ---------
class MeetingIn(BaseModel):
    title: str
    date: str
    time: str
    groupId: str
    supervisorId: str
    link: Optional[str] = None


class MeetingUpdate(BaseModel):
    supervisorId: str
    title: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    link: Optional[str] = None


class StatusIn(BaseModel):
    supervisorId: str
    status: MeetingStatus


def _ensure_assigned_supervisor(group: dict, supervisor_id: str) -> None:
    if not supervisor_id or group.get("assignedSupervisor") != supervisor_id:
        raise HTTPException(403, "Only the assigned supervisor can manage this group's meetings")


def _owned_meeting(db: Database, meeting_id: str, supervisor_id: str) -> dict:
    """Load a meeting the caller may modify: they own it and still supervise its group."""
    meeting = find_by_id(db, "meeting", meeting_id, "Meeting")
    if meeting.get("supervisorId") != supervisor_id:
        raise HTTPException(403, "You are not the supervisor of this meeting")
    group = db["group"].find_one({"_id": oid(meeting["groupId"])}) or {}
    _ensure_assigned_supervisor(group, supervisor_id)
    return meeting


# --------- Meetings ---------
@router.post("/meetings", status_code=201)
def create_meeting(body: MeetingIn, db: Database = Depends(get_db)):
    if not body.title.strip():
        raise HTTPException(400, "Meeting title is required")
    group = find_by_id(db, "group", body.groupId, "Group")
    _ensure_assigned_supervisor(group, body.supervisorId)

    meeting = Meeting(**body.model_dump(), createdAt=now(), updatedAt=now())
    new_id = create_document(db, "meeting", meeting)
    logger.info("Meeting %s scheduled for group %s", new_id, body.groupId)
    publish(db, MeetingScheduled(
        meeting_id=new_id,
        title=meeting.title,
        date=meeting.date,
        time=meeting.time,
        members=group.get("members", []),
    ))
    return {"success": True, "message": "Meeting scheduled", "id": new_id}


@router.get("/meetings")
def list_meetings(supervisorId: Optional[str] = None, groupId: Optional[str] = None, studentId: Optional[str] = None,
                  db: Database = Depends(get_db)):
    filt = {}
    if supervisorId:
        filt["supervisorId"] = supervisorId
    if groupId:
        filt["groupId"] = groupId
    if studentId:
        group = group_of(db, studentId)
        if not group or filt.get("groupId", str(group["_id"])) != str(group["_id"]):
            return []
        filt["groupId"] = str(group["_id"])
    docs = get_documents(db, "meeting", filt, sort=[("date", 1), ("time", 1)])
    return [serialize(m) for m in docs]


@router.get("/meetings/{meeting_id}")
def get_meeting(meeting_id: str, db: Database = Depends(get_db)):
    return serialize(find_by_id(db, "meeting", meeting_id, "Meeting"))


@router.put("/meetings/{meeting_id}")
def update_meeting(meeting_id: str, body: MeetingUpdate, db: Database = Depends(get_db)):
    meeting = _owned_meeting(db, meeting_id, body.supervisorId)
    updates = body.model_dump(exclude={"supervisorId"}, exclude_none=True)
    if not updates:
        raise HTTPException(400, "Nothing to update")
    updates["updatedAt"] = now()
    db["meeting"].update_one({"_id": meeting["_id"]}, {"$set": updates})
    return {"success": True, "message": "Meeting updated", "meeting": serialize(db["meeting"].find_one({"_id": meeting["_id"]}))}


@router.patch("/meetings/{meeting_id}/status")
def update_meeting_status(meeting_id: str, body: StatusIn, db: Database = Depends(get_db)):
    meeting = _owned_meeting(db, meeting_id, body.supervisorId)
    db["meeting"].update_one({"_id": meeting["_id"]}, {"$set": {"status": body.status, "updatedAt": now()}})
    logger.info("Meeting %s marked %s", meeting_id, body.status)
    return {"success": True, "message": f"Meeting {body.status}"}


@router.delete("/meetings/{meeting_id}")
def delete_meeting(meeting_id: str, supervisorId: str, db: Database = Depends(get_db)):
    meeting = _owned_meeting(db, meeting_id, supervisorId)
    db["meeting"].delete_one({"_id": meeting["_id"]})
    logger.info("Meeting %s deleted", meeting_id)
    return {"success": True, "message": "Meeting deleted"}
