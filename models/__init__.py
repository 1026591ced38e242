from models.teacher import Teacher
from models.school_class import SchoolClass
from models.subject import Subject
from models.term import Term
from models.assignment import Assignment
from models.schedule import ScheduleEntry, ScheduleOverride
from models.absence import AbsenceRequest, AbsenceScope
from models.replacement import CandidateOffer, Occurrence, ReplacementTask, TaskState

__all__ = [
    "Teacher",
    "SchoolClass",
    "Subject",
    "Term",
    "Assignment",
    "ScheduleEntry",
    "ScheduleOverride",
    "AbsenceRequest",
    "AbsenceScope",
    "CandidateOffer",
    "Occurrence",
    "ReplacementTask",
    "TaskState",
]
