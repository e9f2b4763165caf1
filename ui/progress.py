# ui/progress.py

from models.enums import CompletionLevel

LEVEL_MARKS = {
    CompletionLevel.NONE: "·",
    CompletionLevel.LOW: "░",
    CompletionLevel.MEDIUM: "▒",
    CompletionLevel.HIGH: "█",
}


def progress_bar(fraction: float, length: int = 12) -> str:
    """Text progress bar for a completion fraction in [0, 1]"""
    percent = int(fraction * 100)
    done = int(length * percent // 100)
    todo = length - done
    return "🟩" * done + "⬜️" * todo + f" {percent}%"


def habits_progress_bar(done: int, total: int) -> str:
    return progress_bar(done / total if total else 0.0)


def level_mark(percentage: float) -> str:
    return LEVEL_MARKS[CompletionLevel.for_percentage(percentage)]
