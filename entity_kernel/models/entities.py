"""Domain entities returned by the per-entity services."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Habit(BaseModel):
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    color: str = "#3B82F6"
    frequency: str = "daily"            # "daily" | "weekly" | "monthly"
    target_count: int = 1
    category: Optional[str] = None
    reminder_time: Optional[str] = None
    is_active: bool = True
    created_at: datetime


class HabitCompletion(BaseModel):
    habit_id: str
    user_id: str
    completed_on: date


class HabitStreak(BaseModel):
    habit_id: str
    current_streak: int = 0
    longest_streak: int = 0
    streak_health: str = "good"         # "excellent" | "good" | "warning" | "critical"
    is_at_risk: bool = False
    next_milestone: Optional[int] = None


class Goal(BaseModel):
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    category: str = "personal"
    priority: str = "medium"            # "low" | "medium" | "high"
    status: str = "active"              # "active" | "completed" | "paused" | "abandoned"
    target_date: Optional[date] = None
    progress_percentage: float = Field(ge=0.0, le=100.0, default=0.0)
    target_value: Optional[float] = None
    current_value: float = 0.0
    notes: Optional[str] = None
    milestones: List[str] = []
    completion_date: Optional[date] = None
    created_at: datetime


class GoalStats(BaseModel):
    total: int = 0
    active: int = 0
    completed: int = 0
    completion_rate_this_month: int = 0
    overdue_goals: int = 0
    due_this_week: int = 0


class JournalEntry(BaseModel):
    id: str
    user_id: str
    title: str
    content: str
    mood_rating: Optional[int] = Field(default=None, ge=1, le=10)
    tags: List[str] = []
    category: Optional[str] = None
    is_favorite: bool = False
    created_at: datetime


class JournalStats(BaseModel):
    total_entries: int = 0
    entries_this_week: int = 0
    current_streak: int = 0
    average_mood_rating: Optional[float] = None


class MoodEntry(BaseModel):
    id: str
    user_id: str
    mood_rating: int = Field(ge=1, le=10)
    energy_level: int = Field(ge=1, le=10)
    notes: Optional[str] = None
    tags: List[str] = []
    context: Dict[str, Any] = {}
    created_at: datetime


class MoodStats(BaseModel):
    total_entries: int = 0
    average_mood: float = 0.0
    average_energy: float = 0.0
    mood_trend: str = "stable"          # "improving" | "declining" | "stable"
    energy_trend: str = "stable"
    best_day: Optional[str] = None


class MoodPatterns(BaseModel):
    patterns: List[str] = []
    recommendations: List[str] = []


class RoutineStep(BaseModel):
    id: str
    name: str
    duration_seconds: int = 60
    order: int


class Routine(BaseModel):
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    category: str = "General"
    steps: List[RoutineStep] = []
    estimated_duration: int = 10        # minutes
    preferred_time: Optional[str] = None
    is_active: bool = True
    created_at: datetime


class BeliefCycle(BaseModel):
    id: str
    user_id: str
    statement: str
    reason: str = "Personal growth and empowerment"
    category: str = "Personal Growth"
    affirmations: List[str] = []
    visualization_script: Dict[str, Any] = {}
    cycle_length: int = 21
    current_day: int = 1
    days_completed: int = 0
    target_belief_strength: int = Field(ge=1, le=10, default=10)
    status: str = "active"              # "active" | "completed" | "archived"
    created_at: datetime


class SynchronicityEntry(BaseModel):
    id: str
    user_id: str
    title: str
    description: str = ""
    significance: int = Field(ge=1, le=10, default=7)
    tags: List[str] = []
    emotions: List[str] = []
    context: Optional[str] = None
    occurred_at: datetime


class PatternInsight(BaseModel):
    """A recurring tag or emotion across synchronicity entries."""
    pattern: str
    kind: str                           # "tag" | "emotion"
    occurrences: int
    entry_ids: List[str] = []
    discovered_at: datetime
