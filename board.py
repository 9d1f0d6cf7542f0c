from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from pymongo.database import Database

from database import create_document, get_db, get_documents, now, serialize
from schemas import Announcement, Faq

router = APIRouter(tags=["board"])


class AnnouncementIn(BaseModel):
    title: str
    content: str
    postedBy: Optional[str] = None


class FaqIn(BaseModel):
    question: str
    answer: str


# --------- Announcements ---------
@router.post("/announcements", status_code=201)
def add_announcement(body: AnnouncementIn, db: Database = Depends(get_db)):
    if not body.title.strip() or not body.content.strip():
        raise HTTPException(400, "Title and content are required")
    ann_id = create_document(db, "announcement", Announcement(**body.model_dump(), createdAt=now()))
    return {"success": True, "message": "Announcement posted", "id": ann_id}


@router.get("/announcements")
def list_announcements(db: Database = Depends(get_db)):
    docs = get_documents(db, "announcement", sort=[("createdAt", -1)])
    return [serialize(d) for d in docs]


# --------- FAQs ---------
@router.post("/faqs", status_code=201)
def add_faq(body: FaqIn, db: Database = Depends(get_db)):
    if not body.question.strip() or not body.answer.strip():
        raise HTTPException(400, "Question and answer are required")
    faq_id = create_document(db, "faq", Faq(**body.model_dump(), createdAt=now()))
    return {"success": True, "message": "FAQ added", "id": faq_id}


@router.get("/faqs")
def list_faqs(db: Database = Depends(get_db)):
    docs = get_documents(db, "faq", sort=[("createdAt", 1)])
    return [serialize(d) for d in docs]
