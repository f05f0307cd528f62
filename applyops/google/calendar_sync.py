"""
Calendar Synchronizer - interview events in the user's Google Calendar

Scheduling is best effort: a missing grant, an expired token or an API
error is logged and reported as None/False so application changes still
commit.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from googleapiclient.discovery import build

from applyops.models import Application

from .auth import CALENDAR_SCOPE

logger = logging.getLogger(__name__)

EVENT_DURATION = timedelta(hours=1)
INTERVIEW_COLOR_ID = "5"

REMINDERS = {
    "useDefault": False,
    "overrides": [
        {"method": "popup", "minutes": 60},
        {"method": "popup", "minutes": 24 * 60},
        {"method": "email", "minutes": 24 * 60},
    ],
}


def build_calendar_service(credentials):
    return build("calendar", "v3", credentials=credentials, cache_discovery=False)


def event_title(company: str, role: str) -> str:
    return f"Interview: {company} - {role}"


def event_description(company: str, role: str, notes: Optional[str] = None) -> str:
    description = f"Job Interview at {company} for the {role} position."
    if notes:
        description += f"\n\n{notes}"
    return description + "\n\nManaged by ApplyOps"


class CalendarSynchronizer:
    """Creates, moves and deletes interview events."""

    def __init__(
        self,
        credential_provider,
        timezone: str = "Asia/Kolkata",
        calendar_id: str = "primary",
        service_factory: Optional[Callable] = None,
    ):
        """
        Args:
            credential_provider: Object with get_valid_credentials(user_id, scope)
            timezone: IANA timezone written on events
            calendar_id: Target calendar
            service_factory: Builds a Calendar service from credentials (tests)
        """
        self.credential_provider = credential_provider
        self.timezone = timezone
        self.calendar_id = calendar_id
        self.service_factory = service_factory or build_calendar_service

    def _service(self, user_id: str):
        creds = self.credential_provider.get_valid_credentials(user_id, CALENDAR_SCOPE)
        if creds is None:
            logger.warning(f"No calendar credentials for user {user_id}; skipping calendar")
            return None
        return self.service_factory(creds)

    def _time_window(self, start: datetime) -> Dict[str, Any]:
        return {
            "start": {"dateTime": start.isoformat(), "timeZone": self.timezone},
            "end": {"dateTime": (start + EVENT_DURATION).isoformat(), "timeZone": self.timezone},
        }

    def ensure_interview_event(
        self,
        user_id: str,
        application: Application,
        interview_at: datetime,
        notes: Optional[str] = None,
    ) -> Optional[str]:
        """
        Create a one-hour interview event.

        Returns:
            The new event id, or None if scheduling was skipped or failed
        """
        try:
            service = self._service(user_id)
            if service is None:
                return None

            body = {
                "summary": event_title(application.company, application.role),
                "description": event_description(application.company, application.role, notes),
                **self._time_window(interview_at),
                "reminders": REMINDERS,
                "colorId": INTERVIEW_COLOR_ID,
            }
            event = service.events().insert(calendarId=self.calendar_id, body=body).execute()
        except Exception as e:
            logger.error(f"Failed to create calendar event for {application.company}: {e}")
            return None

        logger.info(f"Created calendar event {event.get('id')}: {event.get('htmlLink')}")
        return event.get("id")

    def update_interview_event(
        self,
        user_id: str,
        event_id: str,
        application: Application,
        interview_at: datetime,
    ) -> bool:
        """Move an existing event to a new interview time. Returns success."""
        try:
            service = self._service(user_id)
            if service is None:
                return False

            body = {
                "summary": event_title(application.company, application.role),
                "description": event_description(application.company, application.role),
                **self._time_window(interview_at),
            }
            service.events().update(
                calendarId=self.calendar_id, eventId=event_id, body=body
            ).execute()
        except Exception as e:
            logger.error(f"Failed to update calendar event {event_id}: {e}")
            return False

        logger.info(f"Updated calendar event {event_id}")
        return True

    def delete_interview_event(self, user_id: str, event_id: str) -> bool:
        try:
            service = self._service(user_id)
            if service is None:
                return False
            service.events().delete(calendarId=self.calendar_id, eventId=event_id).execute()
        except Exception as e:
            logger.error(f"Failed to delete calendar event {event_id}: {e}")
            return False

        logger.info(f"Deleted calendar event {event_id}")
        return True
