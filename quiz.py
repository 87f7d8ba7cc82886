"""
Quiz logic module - handles question loading, parsing, section filtering and random selection.
"""

import json
import random
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


ALL_SECTIONS = "All"

OPTION_PATTERN = re.compile(r'^([A-D])\.\s*(.+)$')
ANSWER_LETTER_PATTERN = re.compile(r'^([A-D])\.')
ANSWER_PREFIX_PATTERN = re.compile(r'^[A-D]\.\s*')
EXPLANATION_SEPARATOR = " - "

REQUIRED_FIELDS = ("id", "question", "answer", "category")


@dataclass(frozen=True)
class QuestionRecord:
    """A single question as stored in the data file."""
    id: int
    question: str     # first line is the prompt, following lines "A. option"
    answer: str       # "B. text - explanation"
    category: str


@dataclass(frozen=True)
class Option:
    letter: str
    text: str


@dataclass(frozen=True)
class ParsedQuestion:
    question_text: str
    options: tuple
    correct_answer: str
    explanation: str

    def option_text(self, letter: str) -> str:
        """Return the text of the option with the given letter, or an empty string."""
        for option in self.options:
            if option.letter == letter:
                return option.text
        return ""


class Mode:
    STUDY = "study"
    QUIZ = "quiz"

    ALL = (STUDY, QUIZ)


def _parse_record_id(raw_id) -> Optional[int]:
    """Whole-number id from an int, integral float or digit string; None otherwise."""
    if isinstance(raw_id, bool):
        return None
    if isinstance(raw_id, float):
        return int(raw_id) if raw_id.is_integer() else None
    try:
        return int(raw_id)
    except (TypeError, ValueError):
        return None


def records_from_dicts(items: list) -> list:
    """
    Build QuestionRecords from already-deserialized data.
    Records missing a field, with non-text fields, or repeating an earlier id are skipped.
    """
    records = []
    seen_ids = set()

    for position, item in enumerate(items):
        if not isinstance(item, dict) or any(key not in item for key in REQUIRED_FIELDS):
            print(f"[Quiz] Skipping record #{position}: missing one of {', '.join(REQUIRED_FIELDS)}")
            continue

        record_id = _parse_record_id(item["id"])
        if record_id is None:
            print(f"[Quiz] Skipping record #{position}: id {item['id']!r} is not an integer")
            continue

        bad_fields = [key for key in REQUIRED_FIELDS[1:] if not isinstance(item[key], str)]
        if bad_fields:
            print(f"[Quiz] Skipping record #{position}: {', '.join(bad_fields)} must be text")
            continue

        if record_id in seen_ids:
            print(f"[Quiz] Skipping record #{position}: duplicate id {record_id}")
            continue
        seen_ids.add(record_id)

        records.append(QuestionRecord(
            id=record_id,
            question=item["question"],
            answer=item["answer"],
            category=item["category"],
        ))

    return records


def load_questions(filepath=None) -> list:
    """Load question records from a JSON file."""
    if filepath is None:
        filepath = Path(__file__).parent / "questions.json"

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            items = json.load(f)
    except (IOError, UnicodeDecodeError, json.JSONDecodeError) as e:
        print(f"[Quiz] Error loading questions: {e}")
        return []

    if not isinstance(items, list):
        print(f"[Quiz] Error loading questions: {filepath} does not hold a list")
        return []

    records = records_from_dicts(items)
    print(f"[Quiz] Loaded {len(records)} questions from {filepath}")
    return records


def get_section_taxonomy(all_records: list) -> list:
    """Return "All" followed by the distinct categories in ascending order."""
    categories = {record.category for record in all_records}
    return [ALL_SECTIONS] + sorted(categories)


def parse_question(record: QuestionRecord) -> ParsedQuestion:
    """Split a record into prompt, lettered options, correct letter and explanation."""
    lines = record.question.split('\n')
    question_text = lines[0]

    options = []
    for line in lines[1:]:
        match = OPTION_PATTERN.match(line.strip())
        if match:
            options.append(Option(letter=match.group(1), text=match.group(2)))

    answer_match = ANSWER_LETTER_PATTERN.match(record.answer)
    correct_answer = answer_match.group(1) if answer_match else ""

    # Segment between the first and second separator; the raw answer when it is empty
    remainder = ANSWER_PREFIX_PATTERN.sub("", record.answer, count=1)
    parts = remainder.split(EXPLANATION_SEPARATOR)
    explanation = parts[1] if len(parts) > 1 and parts[1] else record.answer

    return ParsedQuestion(
        question_text=question_text,
        options=tuple(options),
        correct_answer=correct_answer,
        explanation=explanation,
    )


def is_sampling(active_category: str, mode: str, sample_size: Optional[int]) -> bool:
    """Random sampling only applies to quizzes over every section."""
    return (
        mode == Mode.QUIZ
        and active_category == ALL_SECTIONS
        and sample_size is not None
        and sample_size > 0
    )


def derive_working_set(all_records: list, active_category: str, mode: str,
                       shuffle_enabled: bool, sample_size: Optional[int] = None,
                       rng: Optional[random.Random] = None) -> list:
    """
    Get the questions currently being studied or quizzed.
    Filters by section, then either samples (quiz over "All"), shuffles, or keeps file order.
    """
    if rng is None:
        rng = random

    if active_category == ALL_SECTIONS:
        filtered = list(all_records)
    else:
        filtered = [record for record in all_records if record.category == active_category]

    if is_sampling(active_category, mode, sample_size):
        # Don't request more questions than available
        count = min(sample_size, len(filtered))

        question_pool = filtered.copy()
        rng.shuffle(question_pool)
        return question_pool[:count]

    if shuffle_enabled:
        shuffled = filtered.copy()
        rng.shuffle(shuffled)
        return shuffled

    return filtered
