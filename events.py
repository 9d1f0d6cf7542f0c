"""
Domain events raised by the registries.

Handlers describe *what happened* by publishing one of these; the event
decides who hears about it and how the notification reads.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from pymongo.database import Database

from notifications import notify


@dataclass
class Event:
    def recipients(self) -> List[str]:
        raise NotImplementedError

    def message(self) -> str:
        raise NotImplementedError

    def link(self) -> Optional[str]:
        return None


@dataclass
class StudentJoinedGroup(Event):
    group_id: str
    group_name: str
    student_id: str
    student_name: str
    admin_id: str

    def recipients(self):
        return [self.student_id, self.admin_id]

    def message(self):
        return f"{self.student_name} joined the group {self.group_name}"

    def link(self):
        return f"/groups/{self.group_id}"


@dataclass
class JoinInviteReceived(Event):
    group_id: str
    group_name: str
    student_id: str

    def recipients(self):
        return [self.student_id]

    def message(self):
        return f"You have been invited to join the group {self.group_name}"

    def link(self):
        return f"/groups/{self.group_id}"


@dataclass
class JoinInviteRejected(Event):
    group_id: str
    group_name: str
    student_name: str
    admin_id: str

    def recipients(self):
        return [self.admin_id]

    def message(self):
        return f"{self.student_name} declined the invitation to {self.group_name}"


@dataclass
class JoinRequestReceived(Event):
    group_id: str
    group_name: str
    student_name: str
    admin_id: str

    def recipients(self):
        return [self.admin_id]

    def message(self):
        return f"{self.student_name} requested to join {self.group_name}"

    def link(self):
        return f"/groups/{self.group_id}/requests"


@dataclass
class JoinRequestRejected(Event):
    group_id: str
    group_name: str
    student_id: str

    def recipients(self):
        return [self.student_id]

    def message(self):
        return f"Your request to join {self.group_name} was rejected"


@dataclass
class ProposalSubmitted(Event):
    proposal_id: str
    title: str
    group_name: str
    supervisor_id: str

    def recipients(self):
        return [self.supervisor_id]

    def message(self):
        return f"New proposal \"{self.title}\" submitted by {self.group_name}"

    def link(self):
        return f"/proposals/{self.proposal_id}"


@dataclass
class ProposalApproved(Event):
    proposal_id: str
    title: str
    supervisor_name: str
    members: List[str] = field(default_factory=list)

    def recipients(self):
        return self.members

    def message(self):
        return f"Your proposal \"{self.title}\" was approved. {self.supervisor_name} is now your supervisor"

    def link(self):
        return f"/proposals/{self.proposal_id}"


@dataclass
class ProposalRejected(Event):
    proposal_id: str
    title: str
    members: List[str] = field(default_factory=list)

    def recipients(self):
        return self.members

    def message(self):
        return f"Your proposal \"{self.title}\" was rejected"

    def link(self):
        return f"/proposals/{self.proposal_id}"


@dataclass
class MeetingScheduled(Event):
    meeting_id: str
    title: str
    date: str
    time: str
    members: List[str] = field(default_factory=list)

    def recipients(self):
        return self.members

    def message(self):
        return f"Meeting \"{self.title}\" scheduled on {self.date} at {self.time}"

    def link(self):
        return f"/meetings/{self.meeting_id}"


def publish(db: Database, event: Event) -> int:
    return notify(db, event.recipients(), event.message(), event.link())
