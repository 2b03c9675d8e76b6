from __future__ import annotations

ROUNDS = "rounds"
APPLICATIONS = "applications"
EVALUATIONS = "evaluations"
MCQ_RESPONSES = "mcq_responses"
JOBS = "jobs"
COMPANIES = "companies"
USERS = "users"
AUDIT_EVENTS = "auditlog_events"

ROUND_TYPES = {"INTERVIEW", "MCQ", "CODING", "CASE_STUDY", "GROUP_DISCUSSION", "TECHNICAL", "HR"}
# Rounds run by people; assignment notifies the round's interviewers.
INTERVIEW_ROUND_TYPES = {"INTERVIEW", "TECHNICAL", "HR", "GROUP_DISCUSSION"}

APPLICATION_STATUSES = {"APPLIED", "UNDER_REVIEW", "SHORTLISTED", "HIRED", "REJECTED"}

PENDING = "PENDING"
SCHEDULED = "SCHEDULED"
IN_PROGRESS = "IN_PROGRESS"
COMPLETED = "COMPLETED"
PASSED = "PASSED"
FAILED = "FAILED"
SKIPPED = "SKIPPED"
MISSED = "MISSED"
RESCHEDULING = "RESCHEDULING"
RESCHEDULED = "RESCHEDULED"

EVALUATION_STATUSES = {
    PENDING,
    SCHEDULED,
    IN_PROGRESS,
    COMPLETED,
    PASSED,
    FAILED,
    SKIPPED,
    MISSED,
    RESCHEDULING,
    RESCHEDULED,
}
TERMINAL_STATUSES = {PASSED, FAILED, SKIPPED}
COMPLETION_STATUSES = {COMPLETED, PASSED, FAILED}

ONLINE = "ONLINE"
OFFLINE = "OFFLINE"
INTERVIEW_MODES = {ONLINE, OFFLINE}
