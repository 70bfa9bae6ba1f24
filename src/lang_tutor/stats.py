"""Per-session answer counters and the completion summary."""
import time
from dataclasses import dataclass, replace
from typing import Optional


def now_ms() -> int:
    return int(time.time() * 1000)


def calc_accuracy(correct: int, incorrect: int) -> Optional[int]:
    """Percentage of answered items that were correct, None if nothing was answered."""
    answered = correct + incorrect
    if answered == 0:
        return None
    return round(correct / answered * 100)


@dataclass(frozen=True)
class SessionStats:
    correct: int = 0
    incorrect: int = 0
    skipped: int = 0

    @property
    def resolved(self) -> int:
        return self.correct + self.incorrect + self.skipped

    def record_correct(self) -> "SessionStats":
        return replace(self, correct=self.correct + 1)

    def record_incorrect(self) -> "SessionStats":
        return replace(self, incorrect=self.incorrect + 1)

    def record_skipped(self) -> "SessionStats":
        return replace(self, skipped=self.skipped + 1)

    def reset(self) -> "SessionStats":
        return SessionStats()

    def as_dict(self) -> dict:
        return {"correct": self.correct, "incorrect": self.incorrect, "skipped": self.skipped}


def completion_result(stats: SessionStats, total_items: int, started_at_ms: int, finished_at_ms: int) -> dict:
    return {
        "total_items": total_items,
        "correct_answers": stats.correct,
        "incorrect_answers": stats.incorrect,
        "skipped": stats.skipped,
        "time_spent_ms": max(0, finished_at_ms - started_at_ms),
        "accuracy": calc_accuracy(stats.correct, stats.incorrect),
    }
