from pydantic import BaseModel

from gitify.models import LanguageShare
from gitify.models import ProfileSnapshot
from gitify.models import RepositoryTotals
from gitify.models import TimelineEntry


class ProfileResponse(BaseModel):
    """Aggregated profile with the derived repository and language figures."""

    snapshot: ProfileSnapshot
    repository_totals: RepositoryTotals
    languages: list[LanguageShare]
    available_years: list[int]


class TimelineResponse(BaseModel):
    """Recent public activity, optionally narrowed to one event type."""

    event_types: list[str]
    entries: list[TimelineEntry]
