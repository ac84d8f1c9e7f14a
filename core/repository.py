"""Repository classes for database access.

`BaseRepository` holds the generic lookups; the job and plan repositories
add the queries the generation pipeline relies on (in-flight job detection,
latest job per week, ownership-scoped reads). Ownership checks return None
for rows owned by someone else so callers can answer 404 without revealing
that the row exists.
"""

from datetime import date
from typing import TypeVar, Generic, Type, Optional, List, Any, Iterable

from sqlalchemy.orm import Session

from database.models import Base, GenerationJob, MealPlan, MealSlot, DayPlan, UserProfile

T = TypeVar('T', bound=Base)


class BaseRepository(Generic[T]):
    """Generic repository for common database operations.

    Attributes:
        model: SQLAlchemy model class to operate on.
        session: Database session for executing queries.
    """

    def __init__(self, model: Type[T], session: Session):
        self.model = model
        self.session = session

    def add(self, obj: T) -> T:
        """Stage a new object in the current transaction without committing."""
        self.session.add(obj)
        return obj

    def create(self, obj: T) -> T:
        """Add, commit and refresh a new object.

        Args:
            obj: Model instance to persist.

        Returns:
            The persisted object with refreshed attributes.
        """
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def get_by_id(self, id: Any) -> Optional[T]:
        """Retrieve an object by its primary key."""
        return self.session.get(self.model, id)

    def get_owned(self, id: Any, user_id: str) -> Optional[T]:
        """Retrieve an object by primary key only if it belongs to `user_id`."""
        obj = self.get_by_id(id)
        if obj is None or getattr(obj, "user_id", None) != user_id:
            return None
        return obj

    def update(self, obj: T) -> T:
        """Commit changes to an existing object and refresh.

        Args:
            obj: Model instance with modified attributes.

        Returns:
            The updated object with refreshed attributes.
        """
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def count(self) -> int:
        """Count total number of records."""
        return self.session.query(self.model).count()


class ProfileRepository(BaseRepository[UserProfile]):
    def __init__(self, session: Session):
        super().__init__(UserProfile, session)


class JobRepository(BaseRepository[GenerationJob]):
    """Queries over generation jobs."""

    def __init__(self, session: Session):
        super().__init__(GenerationJob, session)

    def find_for_week(self, user_id: str, week_start_date: date, statuses: Optional[Iterable[str]] = None) -> List[GenerationJob]:
        """Return the user's jobs for a week, newest first.

        Args:
            user_id: Owner of the jobs.
            week_start_date: Monday of the target week.
            statuses: Optional status filter.
        """
        query = self.session.query(GenerationJob).filter(
            GenerationJob.user_id == user_id,
            GenerationJob.week_start_date == week_start_date,
        )
        if statuses is not None:
            query = query.filter(GenerationJob.status.in_(list(statuses)))
        return query.order_by(GenerationJob.created_at.desc()).all()

    def latest_for_week(self, user_id: str, week_start_date: date) -> Optional[GenerationJob]:
        jobs = self.find_for_week(user_id, week_start_date)
        return jobs[0] if jobs else None


class MealPlanRepository(BaseRepository[MealPlan]):
    """Queries over meal plans and their slots."""

    def __init__(self, session: Session):
        super().__init__(MealPlan, session)

    def exists_for_week(self, user_id: str, week_start_date: date) -> bool:
        return self.session.query(MealPlan.id).filter(
            MealPlan.user_id == user_id,
            MealPlan.week_start_date == week_start_date,
        ).first() is not None

    def recent_for_user(self, user_id: str, limit: int = 2) -> List[MealPlan]:
        return (
            self.session.query(MealPlan)
            .filter(MealPlan.user_id == user_id)
            .order_by(MealPlan.created_at.desc())
            .limit(limit)
            .all()
        )

    def get_owned_slot(self, slot_id: int, user_id: str) -> Optional[MealSlot]:
        """Return a slot if the plan it belongs to is owned by `user_id`."""
        return (
            self.session.query(MealSlot)
            .join(DayPlan, MealSlot.day_plan_id == DayPlan.id)
            .join(MealPlan, DayPlan.meal_plan_id == MealPlan.id)
            .filter(MealSlot.id == slot_id, MealPlan.user_id == user_id)
            .first()
        )
