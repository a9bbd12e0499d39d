# learning/services/progress.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from django.db import transaction
from django.db.models import F

from ..exceptions import NotFound
from ..models import Level, Module, Quest, User, UserLevelProgress


@dataclass(frozen=True)
class CurrentLevel:
    level_id: int
    level_name: str
    progress: float          # percentage 0-100
    quests_completed: int
    total_quests: int


@dataclass(frozen=True)
class UserStats:
    total_stars: int
    total_exp: int
    completed_levels: int
    current_level: Optional[CurrentLevel] = None


def _ledger_totals(user_id: int) -> Tuple[int, int]:
    """(stars, exp) summed over every level row of the user."""
    scores = list(UserLevelProgress.objects.filter(user_id=user_id).values_list("score", flat=True))
    return sum(scores), sum(s // 100 for s in scores)


def save_progress(
    user_id: int,
    level_id: int,
    correct: bool,
    quest_id: Optional[int] = None,
) -> UserLevelProgress:
    """
    Record one quest submission for (user, level).

    Every submission counts as an attempt, including the first one; the score
    only grows on a correct answer. The user row is locked for the whole unit
    so concurrent saves from one user serialize, counters are bumped with F()
    expressions, and the cached User.stars / User.exp are recomputed from the
    ledger before commit.
    """
    if not User.objects.filter(pk=user_id).exists():
        raise NotFound("user")
    if not Level.objects.filter(pk=level_id).exists():
        raise NotFound("level")
    if quest_id is not None and not Quest.objects.filter(pk=quest_id, level_id=level_id).exists():
        raise NotFound("quest")

    with transaction.atomic():
        user = User.objects.select_for_update().get(pk=user_id)
        row, _ = UserLevelProgress.objects.get_or_create(user_id=user_id, level_id=level_id)
        UserLevelProgress.objects.filter(pk=row.pk).update(
            quests_attempted=F("quests_attempted") + 1,
            score=F("score") + (1 if correct else 0),
        )
        row.refresh_from_db()

        user.stars, user.exp = _ledger_totals(user_id)
        user.save(update_fields=["stars", "exp"])

    return row


def get_level_progress(user_id: int, level_id: int) -> Optional[UserLevelProgress]:
    return UserLevelProgress.objects.filter(user_id=user_id, level_id=level_id).first()


def get_user_stats(user_id: int) -> UserStats:
    """
    Totals are recomputed from the ledger, never read from the User cache.

    A level is completed once quests_attempted reaches its quests_count. The
    current level is the first one of the user's language without a row or
    with fewer attempts than quests, walking modules then levels by id.
    """
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise NotFound("user")

    rows = list(UserLevelProgress.objects.filter(user_id=user_id).select_related("level"))
    total_stars, total_exp = _ledger_totals(user_id)
    completed = sum(1 for r in rows if r.quests_attempted >= r.level.quests_count)

    current = None
    if user.language_id is not None:
        attempted: Dict[int, int] = {r.level_id: r.quests_attempted for r in rows}
        levels = Level.objects.filter(module__language_id=user.language_id).order_by("module_id", "id")
        for level in levels:
            if level.pk in attempted and attempted[level.pk] >= level.quests_count:
                continue
            done = attempted.get(level.pk, 0)
            current = CurrentLevel(
                level_id=level.pk,
                level_name=level.name,
                progress=done / level.quests_count * 100 if level.quests_count else 0.0,
                quests_completed=done,
                total_quests=level.quests_count,
            )
            break

    return UserStats(
        total_stars=total_stars,
        total_exp=total_exp,
        completed_levels=completed,
        current_level=current,
    )


def level_progress_map(user_id: int, module: Module) -> Dict[int, UserLevelProgress]:
    """Progress rows of the user for the levels of one module, keyed by level id."""
    rows = UserLevelProgress.objects.filter(user_id=user_id, level__module=module)
    return {r.level_id: r for r in rows}
