"""Completed-session history and accuracy summaries."""
from datetime import datetime

from lang_tutor.db import get_connection


def get_performance_label(accuracy: float | None) -> str:
    if accuracy is None:
        return "NO ANSWERS"
    if accuracy >= 80:
        return "EXCELLENT"
    elif accuracy >= 60:
        return "GOOD"
    elif accuracy >= 40:
        return "NEEDS WORK"
    return "KEEP PRACTICING"


def get_performance_color(accuracy: float | None) -> str:
    if accuracy is None:
        return "dim"
    if accuracy >= 80:
        return "green"
    elif accuracy >= 60:
        return "yellow"
    elif accuracy >= 40:
        return "dark_orange"
    return "red"


def record_session_result(db_path: str, exercise_id: str, exercise_type: str, result: dict) -> int:
    conn = get_connection(db_path)
    cur = conn.execute(
        """INSERT INTO session_results
        (exercise_id, exercise_type, total_items, correct_answers, incorrect_answers, skipped,
         time_spent_ms, accuracy, completed_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            exercise_id, exercise_type, result["total_items"], result["correct_answers"],
            result["incorrect_answers"], result["skipped"], result["time_spent_ms"],
            result["accuracy"], datetime.now().isoformat(),
        ),
    )
    conn.commit()
    result_id = cur.lastrowid
    conn.close()
    return result_id


def get_session_results(db_path: str, exercise_id: str | None = None, limit: int = 20) -> list[dict]:
    conn = get_connection(db_path)
    if exercise_id is None:
        rows = conn.execute(
            "SELECT * FROM session_results ORDER BY id DESC LIMIT ?", (limit,)
        ).fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM session_results WHERE exercise_id = ? ORDER BY id DESC LIMIT ?",
            (exercise_id, limit),
        ).fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_overall_accuracy(db_path: str) -> float | None:
    """Accuracy over every answered item in every recorded session."""
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT SUM(correct_answers) as c, SUM(incorrect_answers) as i FROM session_results"
    ).fetchone()
    conn.close()
    answered = (row["c"] or 0) + (row["i"] or 0)
    if not answered:
        return None
    return round(row["c"] / answered * 100, 1)


def get_exercise_summary(db_path: str) -> list[dict]:
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT exercise_id, exercise_type, COUNT(*) as sessions,
            SUM(correct_answers) as correct, SUM(incorrect_answers) as incorrect,
            SUM(skipped) as skipped, MAX(accuracy) as best_accuracy,
            SUM(time_spent_ms) as time_spent_ms
        FROM session_results
        GROUP BY exercise_id
        ORDER BY exercise_id"""
    ).fetchall()
    conn.close()
    results = []
    for r in rows:
        answered = r["correct"] + r["incorrect"]
        accuracy = round(r["correct"] / answered * 100, 1) if answered else None
        results.append({
            "exercise_id": r["exercise_id"],
            "exercise_type": r["exercise_type"],
            "sessions": r["sessions"],
            "correct": r["correct"],
            "incorrect": r["incorrect"],
            "skipped": r["skipped"],
            "best_accuracy": r["best_accuracy"],
            "time_spent_ms": r["time_spent_ms"],
            "accuracy": accuracy,
            "label": get_performance_label(accuracy),
        })
    return results
