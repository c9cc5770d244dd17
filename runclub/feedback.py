"""In-app feedback and its mirror issue in Linear.

Feedback is stored first (``pending``) so nothing a member writes is lost if
the tracker is down; the issue is then created and the row marked
``created`` or ``failed``. Admins can retry failed rows.
"""

from __future__ import annotations

import logging

from peewee import CharField, ForeignKeyField, IntegerField, Model, TextField

from runclub.appconfig import get_linear_settings
from runclub.db import db
from runclub.errors import NotFound, ValidationError
from runclub.linear import create_linear_issue
from runclub.models import User, now_ts

log = logging.getLogger(__name__)

CATEGORIES = ("bug", "idea", "question")
MAX_MESSAGE_LENGTH = 5000

STATUS_PENDING = "pending"
STATUS_CREATED = "created"
STATUS_FAILED = "failed"


class Feedback(Model):
    user = ForeignKeyField(User, backref="feedback", on_delete="CASCADE")
    category = CharField()  # bug | idea | question
    message = TextField()
    page_path = CharField(null=True, max_length=2048)
    user_agent = CharField(null=True, max_length=512)
    linear_status = CharField(default=STATUS_PENDING)
    linear_issue_id = CharField(null=True)
    linear_issue_url = CharField(null=True, max_length=1024)
    linear_error = TextField(null=True)
    created = IntegerField(default=now_ts)

    class Meta:
        database = db
        table_name = "feedback"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "category": self.category,
            "message": self.message,
            "page_path": self.page_path,
            "user_agent": self.user_agent,
            "linear_status": self.linear_status,
            "linear_issue_id": self.linear_issue_id,
            "linear_issue_url": self.linear_issue_url,
            "linear_error": self.linear_error,
            "created": self.created,
        }


def _issue_title(category: str, message: str) -> str:
    suffix = "…" if len(message) > 80 else ""
    return f"[Feedback] {category}: {message[:80]}{suffix}"


def _issue_description(feedback: Feedback) -> str:
    lines = [
        f"Category: {feedback.category}",
        f"User: {feedback.user.email or 'unknown'} ({feedback.user.id})",
    ]
    if feedback.page_path:
        lines.append(f"Page: {feedback.page_path}")
    lines += ["", feedback.message]
    return "\n".join(lines)


def _create_issue_for_feedback(feedback: Feedback, team_key: str | None = None) -> Feedback:
    """Try to file *feedback* in Linear and record the outcome on the row."""
    settings = get_linear_settings()
    try:
        issue = create_linear_issue(
            team_key=team_key or settings["team_key"],
            title=_issue_title(feedback.category, feedback.message),
            description=_issue_description(feedback),
            label_name=settings.get("label"),
            priority=settings.get("priority", 3),
            state_name=settings.get("state"),
        )
    except Exception as e:
        log.warning("Could not create Linear issue for feedback id=%d: %s", feedback.id, e)
        feedback.linear_status = STATUS_FAILED
        feedback.linear_error = (str(e) or "Unknown error creating Linear issue")[:2000]
    else:
        feedback.linear_status = STATUS_CREATED
        feedback.linear_issue_id = issue["id"]
        feedback.linear_issue_url = issue["url"]
        feedback.linear_error = None
    feedback.save()
    return feedback


def _result(feedback: Feedback) -> dict:
    return {
        "feedback_id": feedback.id,
        "linear_issue_url": feedback.linear_issue_url,
        "linear_status": feedback.linear_status,
    }


def submit_feedback(
    user_id: int,
    category: str,
    message: str,
    page_path: str | None = None,
    user_agent: str | None = None,
    team_key: str | None = None,
) -> dict:
    """Store feedback from *user_id* and mirror it to Linear.

    Tracker failures do not raise; they are reported as ``linear_status ==
    "failed"`` in the result.
    """
    message = (message or "").strip()
    if not message:
        raise ValidationError("Message is required", field="message")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationError("Message is too long", field="message")
    if category not in CATEGORIES:
        raise ValidationError("Invalid category", field="category")

    user = User.get_or_none(User.id == user_id)
    if user is None:
        raise NotFound("User", user_id)

    feedback = Feedback.create(
        user=user,
        category=category,
        message=message,
        page_path=page_path[:2048] if page_path else None,
        user_agent=user_agent[:512] if user_agent else None,
        linear_status=STATUS_PENDING,
    )
    log.info("Feedback id=%d (%s) submitted by user id=%d", feedback.id, category, user_id)
    return _result(_create_issue_for_feedback(feedback, team_key=team_key))


def retry_feedback_issue(feedback_id: int, team_key: str | None = None) -> dict:
    """Re-attempt issue creation; a no-op for rows that already have an issue."""
    feedback = Feedback.select(Feedback, User).join(User).where(Feedback.id == feedback_id).first()
    if feedback is None:
        raise NotFound("Feedback", feedback_id)
    if feedback.linear_status == STATUS_CREATED and feedback.linear_issue_url:
        return _result(feedback)
    return _result(_create_issue_for_feedback(feedback, team_key=team_key))


def list_feedback(limit: int = 200) -> list[dict]:
    """Newest feedback first, with the submitter's name and email."""
    query = (
        Feedback.select(Feedback, User)
        .join(User)
        .order_by(Feedback.created.desc(), Feedback.id.desc())
        .limit(limit)
    )
    return [{**f.to_dict(), "user_name": f.user.name, "user_email": f.user.email} for f in query]
