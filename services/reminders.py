"""
In-memory reminder service
"""
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Any, Union
from core.logger import setup_logger
from tools.extractors import ReminderRequest

logger = setup_logger(__name__)

PRIORITIES = ("low", "medium", "high")

@dataclass
class Reminder:
    id: str
    title: str
    due_date: datetime
    description: Optional[str] = None
    is_completed: bool = False
    priority: str = "medium"
    category: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "dueDate": self.due_date.isoformat(),
            "isCompleted": self.is_completed,
            "priority": self.priority,
            "category": self.category,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

def _parse_due_date(value: Union[datetime, str]) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        # Accept the trailing "Z" that JavaScript clients send
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone().replace(tzinfo=None)
        return parsed
    raise ValueError("dueDate is required")

class ReminderService:
    """Keeps reminders in memory, keyed by id"""

    def __init__(self):
        self.reminders: Dict[str, Reminder] = {}

    def create_reminder(
        self,
        title: str,
        due_date: Union[datetime, str],
        description: Optional[str] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None
    ) -> Reminder:
        """
        Create a reminder

        Raises:
            ValueError: empty title, missing/invalid due date or unknown priority
        """
        if not title or not str(title).strip():
            raise ValueError("title is required")
        priority = priority or "medium"
        if priority not in PRIORITIES:
            raise ValueError(f"Invalid priority: {priority}")

        now = datetime.now()
        reminder = Reminder(
            id=f"reminder_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}",
            title=str(title).strip(),
            description=description,
            due_date=_parse_due_date(due_date),
            priority=priority,
            category=category,
            created_at=now,
            updated_at=now,
        )
        self.reminders[reminder.id] = reminder
        logger.info(f"Created reminder {reminder.id}: {reminder.title!r} due {reminder.due_date:%Y-%m-%d %H:%M}")
        return reminder

    def create_from_request(self, request: ReminderRequest) -> Reminder:
        """Create a reminder from a natural-language extraction result"""
        return self.create_reminder(
            title=request.title,
            due_date=request.due_date,
            description=request.description,
            priority=request.priority,
            category=request.category,
        )

    def get_reminder(self, reminder_id: str) -> Optional[Reminder]:
        return self.reminders.get(reminder_id)

    def get_reminders(self, include_completed: bool = False) -> List[Reminder]:
        """Reminders sorted by due date, open ones only unless asked"""
        reminders = [
            r for r in self.reminders.values()
            if include_completed or not r.is_completed
        ]
        return sorted(reminders, key=lambda r: r.due_date)

    def get_upcoming_reminders(self, hours: int = 24, now: Optional[datetime] = None) -> List[Reminder]:
        """Open reminders due between now and ``hours`` from now"""
        now = now or datetime.now()
        cutoff = now + timedelta(hours=hours)
        return [r for r in self.get_reminders() if now <= r.due_date <= cutoff]

    def get_overdue_reminders(self, now: Optional[datetime] = None) -> List[Reminder]:
        now = now or datetime.now()
        return [r for r in self.get_reminders() if r.due_date < now]

    def complete_reminder(self, reminder_id: str) -> Optional[Reminder]:
        reminder = self.reminders.get(reminder_id)
        if not reminder:
            return None
        reminder.is_completed = True
        reminder.updated_at = datetime.now()
        logger.info(f"Completed reminder {reminder_id}")
        return reminder

    def delete_reminder(self, reminder_id: str) -> bool:
        return self.reminders.pop(reminder_id, None) is not None
