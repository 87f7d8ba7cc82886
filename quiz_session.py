"""
Quiz session module - scoring and the study/quiz session state transitions.

A Session is an immutable value. Every transition takes the current session
(plus the full record set and a random source where the working set has to be
re-derived) and returns the next one. Transitions that are not allowed in the
current state return the session unchanged.
"""

import random
from dataclasses import dataclass, field, replace
from typing import Dict, Optional

from quiz import ALL_SECTIONS, Mode, derive_working_set, parse_question


class QuizStatus:
    IN_PROGRESS = "in_progress"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class QuestionResult:
    question_id: int
    is_correct: bool
    selected_letter: Optional[str]
    correct_letter: str
    explanation: str
    selected_text: str = ""
    correct_text: str = ""


@dataclass(frozen=True)
class QuizResult:
    correct_count: int
    total: int
    percentage: int
    breakdown: tuple = ()


@dataclass(frozen=True)
class Session:
    active_category: str = ALL_SECTIONS
    mode: str = Mode.STUDY
    working_set: tuple = ()
    cursor: int = 0
    revealed: bool = False
    submitted_answers: Dict[int, str] = field(default_factory=dict)
    finalized: bool = False
    shuffle_enabled: bool = False
    sample_size: Optional[int] = None

    @property
    def status(self) -> str:
        return QuizStatus.FINALIZED if self.finalized else QuizStatus.IN_PROGRESS

    @property
    def total(self) -> int:
        return len(self.working_set)

    @property
    def answered_count(self) -> int:
        return len(self.submitted_answers)

    @property
    def current_question(self):
        if not self.working_set:
            return None
        return self.working_set[self.cursor]

    @property
    def can_submit(self) -> bool:
        return self.mode == Mode.QUIZ and not self.finalized and bool(self.submitted_answers)


def round_half_up_percentage(correct: int, total: int) -> int:
    """Percentage of correct answers, rounded half up without float error."""
    return (correct * 200 + total) // (2 * total)


# ========================================
# Scoring
# ========================================

def record_answer(submitted_answers: dict, question_id: int, letter: str) -> dict:
    """Return a copy of the answers with the selection for question_id set (or replaced)."""
    answers = dict(submitted_answers)
    answers[question_id] = letter
    return answers


def score(working_set, submitted_answers: dict) -> QuizResult:
    """
    Score an attempt against the working set.
    Unanswered questions count as incorrect; a letter is only correct on exact match.
    """
    breakdown = []
    correct_count = 0

    for record in working_set:
        parsed = parse_question(record)
        selected = submitted_answers.get(record.id)
        is_correct = selected == parsed.correct_answer

        if is_correct:
            correct_count += 1

        breakdown.append(QuestionResult(
            question_id=record.id,
            is_correct=is_correct,
            selected_letter=selected,
            correct_letter=parsed.correct_answer,
            explanation=parsed.explanation,
            selected_text=parsed.option_text(selected) if selected else "",
            correct_text=parsed.option_text(parsed.correct_answer),
        ))

    total = len(working_set)
    if total == 0:
        return QuizResult(correct_count=0, total=0, percentage=0, breakdown=())

    return QuizResult(
        correct_count=correct_count,
        total=total,
        percentage=round_half_up_percentage(correct_count, total),
        breakdown=tuple(breakdown),
    )


# ========================================
# Session Lifecycle
# ========================================

def _rederive(session: Session, all_records: list, rng=None, **changes) -> Session:
    """Apply setting changes, rebuild the working set and start a fresh attempt."""
    session = replace(session, **changes)

    # Sample size only exists for quizzes over every section
    if not (session.mode == Mode.QUIZ and session.active_category == ALL_SECTIONS):
        session = replace(session, sample_size=None)

    working_set = derive_working_set(
        all_records,
        session.active_category,
        session.mode,
        session.shuffle_enabled,
        session.sample_size,
        rng=rng,
    )

    return replace(
        session,
        working_set=tuple(working_set),
        cursor=0,
        revealed=False,
        submitted_answers={},
        finalized=False,
    )


def new_session(all_records: list, rng: Optional[random.Random] = None) -> Session:
    """Create the session shown on load: every section, study mode, file order."""
    return _rederive(Session(), all_records, rng=rng)


def select_category(session: Session, all_records: list, category: str,
                    rng: Optional[random.Random] = None) -> Session:
    """Switch section. Turns shuffle off and resets the attempt."""
    return _rederive(session, all_records, rng=rng,
                     active_category=category, shuffle_enabled=False)


def set_mode(session: Session, all_records: list, mode: str,
             rng: Optional[random.Random] = None) -> Session:
    """Switch between study and quiz mode. Resets the attempt."""
    if mode not in Mode.ALL:
        raise ValueError(f"Unknown mode: {mode}")
    return _rederive(session, all_records, rng=rng, mode=mode)


def set_sample_size(session: Session, all_records: list, sample_size: Optional[int],
                    rng: Optional[random.Random] = None) -> Session:
    """Cap a quiz over all sections to a random sample; None or <= 0 means every question."""
    if session.mode != Mode.QUIZ or session.active_category != ALL_SECTIONS:
        return session

    if sample_size is not None and sample_size <= 0:
        sample_size = None

    return _rederive(session, all_records, rng=rng, sample_size=sample_size)


def shuffle(session: Session, all_records: list,
            rng: Optional[random.Random] = None) -> Session:
    """Shuffle the current section (study mode). Each call draws a new order."""
    if session.mode != Mode.STUDY:
        return session
    return _rederive(session, all_records, rng=rng, shuffle_enabled=True)


def reset_order(session: Session, all_records: list,
                rng: Optional[random.Random] = None) -> Session:
    """Return to file order (study mode)."""
    if session.mode != Mode.STUDY:
        return session
    return _rederive(session, all_records, rng=rng, shuffle_enabled=False)


# ========================================
# Navigation
# ========================================

def next_question(session: Session) -> Session:
    if session.cursor >= session.total - 1:
        return session
    return replace(session, cursor=session.cursor + 1, revealed=False)


def previous_question(session: Session) -> Session:
    if session.cursor <= 0:
        return session
    return replace(session, cursor=session.cursor - 1, revealed=False)


def random_question(session: Session, rng: Optional[random.Random] = None) -> Session:
    """Jump to a random question (study mode)."""
    if session.mode != Mode.STUDY or session.total == 0:
        return session

    if rng is None:
        rng = random

    return replace(session, cursor=rng.randrange(session.total), revealed=False)


def toggle_reveal(session: Session) -> Session:
    if session.mode != Mode.STUDY or session.total == 0:
        return session
    return replace(session, revealed=not session.revealed)


# ========================================
# Quiz Attempt
# ========================================

def select_answer(session: Session, letter: str) -> Session:
    """Record an answer for the current question while a quiz is in progress."""
    if session.mode != Mode.QUIZ or session.finalized or session.total == 0:
        return session

    answers = record_answer(session.submitted_answers, session.current_question.id, letter)
    return replace(session, submitted_answers=answers)


def submit_quiz(session: Session) -> Session:
    """Finalize the attempt. Needs at least one recorded answer."""
    if not session.can_submit:
        return session
    return replace(session, finalized=True)


def retake_quiz(session: Session) -> Session:
    """Start a fresh attempt over the same questions."""
    if session.mode != Mode.QUIZ or not session.finalized:
        return session
    return replace(session, finalized=False, submitted_answers={}, cursor=0, revealed=False)


def session_result(session: Session) -> Optional[QuizResult]:
    """Score of a finalized attempt, None before submission."""
    if not session.finalized:
        return None
    return score(session.working_set, session.submitted_answers)
