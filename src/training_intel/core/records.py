"""
Personal-record detection on workout completion.

A completed set with load and reps is a PR when its estimated 1RM beats the
best stored record for that exercise.  Sets are scanned in logged order, so
an ascending pyramid can set several PRs in one workout.
"""

import logging

from .interfaces import PersonalRecordRepository
from .metrics import brzycki_1rm
from .models import PersonalRecord, Workout

logger = logging.getLogger(__name__)


def detect_personal_records(
    user_id: str,
    workout: Workout,
    records: PersonalRecordRepository,
) -> list[PersonalRecord]:
    """
    Find and store every set in ``workout`` that beats the user's best e1RM.

    Args:
        user_id: Owner of the workout
        workout: The completed workout
        records: Personal record storage

    Returns:
        Newly created records, in set order
    """
    created: list[PersonalRecord] = []
    for exercise in workout.exercises:
        best = records.best_record(user_id, exercise.exercise_id)
        best_value = best.value if best is not None else 0.0

        for s in exercise.completed_sets():
            if s.weight <= 0 or s.reps <= 0:
                continue
            estimate = round(brzycki_1rm(s.weight, s.reps), 2)
            if estimate <= best_value:
                continue
            record = PersonalRecord(
                exercise_id=exercise.exercise_id,
                value=estimate,
                weight=s.weight,
                reps=s.reps,
                date=workout.date,
            )
            records.add_record(user_id, record)
            created.append(record)
            best_value = estimate
            logger.info(
                "New PR for %s/%s: %.1f kg e1RM (%g x %d)",
                user_id, exercise.exercise_id, estimate, s.weight, s.reps,
            )

    return created
