"""
Database Schemas for the Thesis Supervision backend

Each Pydantic model corresponds to a MongoDB collection. The collection name
is the lowercase class name (e.g., User -> "user"). References between
documents are stored as string ids.
"""
from typing import List, Optional, Literal
from pydantic import BaseModel, Field, EmailStr
from datetime import datetime

import config

Role = Literal['student', 'supervisor', 'admin']
ProposalStatus = Literal['Pending', 'Approved', 'Rejected']
MeetingStatus = Literal['scheduled', 'completed', 'cancelled']

# ------------------ Embedded records ------------------

class Notification(BaseModel):
    message: str
    date: datetime
    link: Optional[str] = None

class JoinInvite(BaseModel):
    requestId: str
    groupId: str
    groupName: str
    adminId: str
    date: datetime

class PendingJoinRequest(BaseModel):
    student: str
    date: datetime

class Paper(BaseModel):
    id: str
    title: str
    summary: Optional[str] = None
    authors: List[str] = []
    published: Optional[str] = None
    link: Optional[str] = None

class Feedback(BaseModel):
    text: str
    supervisorId: str
    date: datetime

# ------------------ Core Collections ------------------

class User(BaseModel):
    name: str
    email: EmailStr
    role: Role
    studentId: Optional[str] = Field(None, description="External student code")
    department: Optional[str] = None
    phone: Optional[str] = None
    cgpa: Optional[float] = Field(None, ge=0, le=4)
    credits: Optional[int] = Field(None, ge=0)
    researchInterests: List[str] = []
    photo: Optional[str] = None
    assignedSupervisor: Optional[str] = None  # student -> supervisor id
    students: List[str] = []  # supervisor -> student ids
    groupId: Optional[str] = None
    notifications: List[Notification] = []
    isSeen: bool = True
    joinRequests: List[JoinInvite] = []
    bookmarks: List[Paper] = []
    createdAt: Optional[datetime] = None

class Group(BaseModel):
    name: str
    admin: str
    members: List[str] = []  # admin included
    researchInterests: List[str] = []
    assignedSupervisor: Optional[str] = None
    proposalsSubmittedTo: List[str] = []
    maxMembers: int = config.MAX_GROUP_MEMBERS
    pendingJoinRequests: List[PendingJoinRequest] = []
    recommendedFeatures: List[Paper] = []
    createdAt: Optional[datetime] = None

class Proposal(BaseModel):
    title: str
    abstract: str
    domain: str
    supervisor: str
    studentId: str
    groupId: str
    status: ProposalStatus = 'Pending'
    adminapproved: bool = False
    supervisorapproved: bool = False
    feedback: List[Feedback] = []
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

class Meeting(BaseModel):
    title: str
    date: str
    time: str
    groupId: str
    supervisorId: str
    link: Optional[str] = None
    status: MeetingStatus = 'scheduled'
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

class Announcement(BaseModel):
    title: str
    content: str
    postedBy: Optional[str] = None
    createdAt: Optional[datetime] = None

class Faq(BaseModel):
    question: str
    answer: str
    createdAt: Optional[datetime] = None
