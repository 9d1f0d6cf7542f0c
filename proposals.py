import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from pymongo import ReturnDocument
from pymongo.database import Database

import config
from database import create_document, find_by_id, get_db, get_documents, now, oid, serialize
from events import ProposalApproved, ProposalRejected, ProposalSubmitted, publish
from rules import is_group_admin
from schemas import Proposal
from users import link_supervisor, unlink_supervisor

logger = logging.getLogger(__name__)

router = APIRouter(tags=["proposals"])


# --------- Schemas (light, for request bodies) ---------
class ProposalIn(BaseModel):
    title: str
    abstract: str
    domain: str
    supervisor: str
    studentId: str
    groupId: str


class DecisionIn(BaseModel):
    supervisorId: str
    decision: Literal["approve", "reject"]


class FeedbackIn(BaseModel):
    supervisorId: str
    text: str


class AdminDecisionIn(BaseModel):
    adminId: str
    proposalId: str


def _ensure_admin(db: Database, admin_id: str) -> None:
    admin = find_by_id(db, "user", admin_id, "Admin")
    if admin.get("role") != "admin":
        raise HTTPException(403, "Only admins can perform this action")


def _ensure_addressed_supervisor(proposal: dict, supervisor_id: str) -> None:
    if proposal.get("supervisor") != supervisor_id:
        raise HTTPException(403, "This proposal was not submitted to you")


def approve(db: Database, proposal: dict, by_admin: bool = False) -> dict:
    """Approve ``proposal``, bind its supervisor to the group and retire the group's other proposals.

    The proposal is flipped first and the group is bound with a conditional
    update on the supervisor it was read with; if another approval got there
    first the proposal is put back and 409 is raised.
    """
    group = find_by_id(db, "group", proposal["groupId"], "Group")
    supervisor = find_by_id(db, "user", proposal["supervisor"], "Supervisor")
    supervisor_id = str(supervisor["_id"])
    previous = group.get("assignedSupervisor")
    flag = "adminapproved" if by_admin else "supervisorapproved"

    if not by_admin and previous:
        raise HTTPException(409, "This group already has an assigned supervisor")

    query = {"_id": proposal["_id"]}
    if not by_admin:
        query["status"] = "Pending"
    updated = db["proposal"].find_one_and_update(
        query,
        {"$set": {"status": "Approved", flag: True, "updatedAt": now()}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise HTTPException(409, "Proposal has already been decided")

    res = db["group"].update_one(
        {"_id": group["_id"], "assignedSupervisor": previous},
        {"$set": {"assignedSupervisor": supervisor_id}},
    )
    if res.matched_count == 0:
        db["proposal"].update_one(
            {"_id": proposal["_id"]},
            {"$set": {"status": proposal["status"], flag: proposal.get(flag, False)}},
        )
        logger.warning("Lost race approving proposal %s for group %s", proposal["_id"], group["_id"])
        raise HTTPException(409, "This group already has an assigned supervisor")

    members = group.get("members", [])
    if previous and previous != supervisor_id:
        unlink_supervisor(db, members, previous)
    link_supervisor(db, members, supervisor_id)
    removed = db["proposal"].delete_many({"groupId": proposal["groupId"], "_id": {"$ne": proposal["_id"]}})
    logger.info(
        "Proposal %s approved; supervisor %s assigned to group %s, %d sibling proposal(s) removed",
        proposal["_id"], supervisor_id, group["_id"], removed.deleted_count,
    )
    publish(db, ProposalApproved(
        proposal_id=str(proposal["_id"]),
        title=proposal.get("title", ""),
        supervisor_name=supervisor.get("name", ""),
        members=members,
    ))
    return updated


def reject(db: Database, proposal: dict, by_admin: bool = False) -> dict:
    flag = "adminapproved" if by_admin else "supervisorapproved"
    updated = db["proposal"].find_one_and_update(
        {"_id": proposal["_id"], "status": "Pending"},
        {"$set": {"status": "Rejected", flag: False, "updatedAt": now()}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise HTTPException(409, "Proposal has already been decided")
    group = db["group"].find_one({"_id": oid(proposal["groupId"])}) or {}
    logger.info("Proposal %s rejected", proposal["_id"])
    publish(db, ProposalRejected(
        proposal_id=str(proposal["_id"]),
        title=proposal.get("title", ""),
        members=group.get("members", []),
    ))
    return updated


# --------- Proposals ---------
@router.post("/proposals", status_code=201)
def submit_proposal(body: ProposalIn, db: Database = Depends(get_db)):
    for field in ("title", "abstract", "domain"):
        if not getattr(body, field).strip():
            raise HTTPException(400, f"Proposal {field} is required")

    group = find_by_id(db, "group", body.groupId, "Group")
    if not is_group_admin(group, body.studentId):
        raise HTTPException(403, "Only the group admin can submit proposals")
    if group.get("assignedSupervisor"):
        raise HTTPException(409, "This group already has an assigned supervisor")
    supervisor = find_by_id(db, "user", body.supervisor, "Supervisor")
    if supervisor.get("role") != "supervisor":
        raise HTTPException(400, "User is not a supervisor")

    previous = {"groupId": body.groupId, "supervisor": body.supervisor}
    if db["proposal"].find_one({**previous, "status": "Pending"}):
        raise HTTPException(409, "A proposal to this supervisor is already pending")
    if not config.ALLOW_RESUBMISSION_AFTER_REJECTION and db["proposal"].find_one({**previous, "status": "Rejected"}):
        raise HTTPException(409, "This supervisor has already rejected a proposal from your group")

    proposal = Proposal(
        title=body.title.strip(),
        abstract=body.abstract.strip(),
        domain=body.domain.strip(),
        supervisor=body.supervisor,
        studentId=body.studentId,
        groupId=body.groupId,
        createdAt=now(),
        updatedAt=now(),
    )
    new_id = create_document(db, "proposal", proposal)
    db["group"].update_one({"_id": group["_id"]}, {"$addToSet": {"proposalsSubmittedTo": body.supervisor}})
    logger.info("Proposal %s submitted by group %s to %s", new_id, body.groupId, body.supervisor)
    publish(db, ProposalSubmitted(
        proposal_id=new_id,
        title=proposal.title,
        group_name=group.get("name", ""),
        supervisor_id=body.supervisor,
    ))
    return {"success": True, "message": "Proposal submitted", "id": new_id, "status": proposal.status}


@router.get("/proposals")
def list_proposals(supervisor: Optional[str] = None, groupId: Optional[str] = None, status: Optional[str] = None,
                   db: Database = Depends(get_db)):
    filt = {}
    if supervisor:
        filt["supervisor"] = supervisor
    if groupId:
        filt["groupId"] = groupId
    if status:
        filt["status"] = status
    docs = get_documents(db, "proposal", filt, sort=[("createdAt", -1)])
    return [serialize(p) for p in docs]


@router.get("/proposals/{proposal_id}")
def get_proposal(proposal_id: str, db: Database = Depends(get_db)):
    return serialize(find_by_id(db, "proposal", proposal_id, "Proposal"))


@router.patch("/proposals/{proposal_id}/decision")
def decide_proposal(proposal_id: str, body: DecisionIn, db: Database = Depends(get_db)):
    proposal = find_by_id(db, "proposal", proposal_id, "Proposal")
    _ensure_addressed_supervisor(proposal, body.supervisorId)
    if proposal.get("status") != "Pending":
        raise HTTPException(409, "Proposal has already been decided")
    if body.decision == "approve":
        updated = approve(db, proposal)
        message = "Proposal approved"
    else:
        updated = reject(db, proposal)
        message = "Proposal rejected"
    return {"success": True, "message": message, "proposal": serialize(updated)}


@router.post("/proposals/{proposal_id}/feedback", status_code=201)
def add_feedback(proposal_id: str, body: FeedbackIn, db: Database = Depends(get_db)):
    proposal = find_by_id(db, "proposal", proposal_id, "Proposal")
    _ensure_addressed_supervisor(proposal, body.supervisorId)
    text = body.text.strip()
    if not text:
        raise HTTPException(400, "Feedback text is required")
    entry = {"text": text, "supervisorId": body.supervisorId, "date": now()}
    db["proposal"].update_one(
        {"_id": proposal["_id"]},
        {"$push": {"feedback": entry}, "$set": {"updatedAt": now()}},
    )
    return {"success": True, "message": "Feedback added"}


# --------- Admin override ---------
@router.patch("/admin/assign-supervisor")
def admin_assign_supervisor(body: AdminDecisionIn, db: Database = Depends(get_db)):
    _ensure_admin(db, body.adminId)
    proposal = find_by_id(db, "proposal", body.proposalId, "Proposal")
    group = find_by_id(db, "group", proposal["groupId"], "Group")
    if group.get("assignedSupervisor") == proposal.get("supervisor"):
        return {"success": True, "message": "Supervisor already assigned to this group"}
    updated = approve(db, proposal, by_admin=True)
    return {"success": True, "message": "Supervisor assigned", "proposal": serialize(updated)}


@router.patch("/admin/reject-proposal")
def admin_reject_proposal(body: AdminDecisionIn, db: Database = Depends(get_db)):
    _ensure_admin(db, body.adminId)
    proposal = find_by_id(db, "proposal", body.proposalId, "Proposal")
    if proposal.get("status") != "Pending":
        raise HTTPException(409, "Proposal has already been decided")
    updated = reject(db, proposal, by_admin=True)
    return {"success": True, "message": "Proposal rejected", "proposal": serialize(updated)}
