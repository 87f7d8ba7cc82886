"""
Study Quiz - Flask JSON API over a single study/quiz session.
Questions come from a static JSON file; every route maps one user control
onto one session transition and returns the new state.
"""

import os
import sys
import random
import threading
from functools import wraps
from pathlib import Path
from flask import Flask, jsonify, request
from waitress import serve

from quiz import ALL_SECTIONS, Mode, get_section_taxonomy, load_questions, parse_question
from quiz_session import (
    new_session, select_category, set_mode, set_sample_size, shuffle, reset_order,
    next_question, previous_question, random_question, toggle_reveal,
    select_answer, submit_quiz, retake_quiz, session_result,
)

# Determine base path (works for both dev and PyInstaller exe)
if getattr(sys, 'frozen', False):
    # Running as compiled exe
    BASE_DIR = Path(sys.executable).parent
else:
    # Running as script
    BASE_DIR = Path(__file__).parent

QUESTIONS_FILE = Path(os.getenv("STUDY_QUESTIONS_FILE", BASE_DIR / "questions.json"))
HOST = os.getenv("STUDY_HOST", "127.0.0.1")
PORT = int(os.getenv("STUDY_PORT", "5000"))

# Values offered by the "Number of Questions" selector (None = every question)
SAMPLE_SIZE_CHOICES = (10, 20, 30, 50, 75, 100)

app = Flask(__name__)


# ========================================
# Session Store
# ========================================

# Store the active study session (simple in-memory for single user)
current_study_session = {
    "records": [],
    "session": None,
    "rng": None
}

# Waitress serves with several threads; each route reads and replaces the session under this lock
session_lock = threading.Lock()


def with_session_lock(view):
    """Run a route while holding the session lock."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        with session_lock:
            return view(*args, **kwargs)
    return wrapper


def start_session(records=None, rng=None):
    """(Re)load the record set and start a fresh session on it."""
    if records is None:
        records = load_questions(QUESTIONS_FILE)
    if rng is None:
        rng = random.Random()

    current_study_session["records"] = list(records)
    current_study_session["rng"] = rng
    current_study_session["session"] = new_session(current_study_session["records"], rng=rng)
    return current_study_session["session"]


def get_session():
    if current_study_session["session"] is None:
        start_session()
    return current_study_session["session"]


def serialize_question(session):
    """Current question for the client; answers stay hidden until revealed or submitted."""
    record = session.current_question
    if record is None:
        return None

    parsed = parse_question(record)
    if session.mode == Mode.QUIZ:
        show_answer = session.finalized
    else:
        show_answer = session.revealed

    return {
        "id": record.id,
        "category": record.category,
        "question": parsed.question_text,
        "options": [{"letter": o.letter, "text": o.text} for o in parsed.options],
        "correct_answer": parsed.correct_answer if show_answer else None,
        "explanation": parsed.explanation if show_answer else None,
        "selected": session.submitted_answers.get(record.id)
    }


def serialize_session(session):
    return {
        "category": session.active_category,
        "mode": session.mode,
        "status": session.status,
        "index": session.cursor,
        "total": session.total,
        "revealed": session.revealed,
        "shuffled": session.shuffle_enabled,
        "sample_size": session.sample_size,
        "answered": session.answered_count,
        "can_submit": session.can_submit,
        "question_ids": [record.id for record in session.working_set],
        "question": serialize_question(session)
    }


def serialize_result(result):
    return {
        "correct": result.correct_count,
        "total": result.total,
        "percentage": result.percentage,
        "questions": [
            {
                "question_id": item.question_id,
                "is_correct": item.is_correct,
                "selected": item.selected_letter,
                "selected_text": item.selected_text,
                "correct_answer": item.correct_letter,
                "correct_text": item.correct_text,
                "explanation": item.explanation
            }
            for item in result.breakdown
        ]
    }


def state_response(session, **extra):
    """Store the new session and return it to the client."""
    current_study_session["session"] = session

    response = jsonify({
        "success": True,
        "state": serialize_session(session),
        **extra
    })
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"
    return response


def error_response(message, status=400):
    return jsonify({"success": False, "error": message}), status


def request_data():
    """JSON object body of the request; anything else counts as empty."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return {}
    return data


def is_sample_size_choice(value):
    # bool is an int subclass and 10.0 == 10, so check the type first
    if value is None:
        return True
    if not isinstance(value, int) or isinstance(value, bool):
        return False
    return value in SAMPLE_SIZE_CHOICES


# ========================================
# Section & Mode API Routes
# ========================================

@app.route('/api/sections', methods=['GET'])
@with_session_lock
def api_sections():
    """Get the section list ("All" first) and the total question count."""
    get_session()
    records = current_study_session["records"]
    return jsonify({
        "success": True,
        "sections": get_section_taxonomy(records),
        "total": len(records),
        "sample_sizes": list(SAMPLE_SIZE_CHOICES)
    })


@app.route('/api/state', methods=['GET'])
@with_session_lock
def api_state():
    """Get the current session state."""
    return state_response(get_session())


@app.route('/api/category', methods=['POST'])
@with_session_lock
def api_select_category():
    """Switch to another section."""
    category = request_data().get('category', '')
    session = get_session()
    records = current_study_session["records"]

    if category not in get_section_taxonomy(records):
        return error_response(f"Unknown section: {category}")

    return state_response(select_category(session, records, category,
                                           rng=current_study_session["rng"]))


@app.route('/api/mode', methods=['POST'])
@with_session_lock
def api_set_mode():
    """Switch between study and quiz mode."""
    mode = request_data().get('mode', '')
    session = get_session()

    if mode not in Mode.ALL:
        return error_response(f"Unknown mode: {mode}")

    return state_response(set_mode(session, current_study_session["records"], mode,
                                   rng=current_study_session["rng"]))


@app.route('/api/sample_size', methods=['POST'])
@with_session_lock
def api_set_sample_size():
    """Limit an all-sections quiz to a random sample of questions."""
    sample_size = request_data().get('sample_size')
    session = get_session()

    if not is_sample_size_choice(sample_size):
        return error_response(f"Invalid sample size: {sample_size}")

    if session.mode != Mode.QUIZ or session.active_category != ALL_SECTIONS:
        return error_response("Sample size only applies to quizzes over all sections")

    return state_response(set_sample_size(session, current_study_session["records"], sample_size,
                                          rng=current_study_session["rng"]))


# ========================================
# Study Mode API Routes
# ========================================

@app.route('/api/shuffle', methods=['POST'])
@with_session_lock
def api_shuffle():
    """Shuffle the current section."""
    return state_response(shuffle(get_session(), current_study_session["records"],
                                  rng=current_study_session["rng"]))


@app.route('/api/reset_order', methods=['POST'])
@with_session_lock
def api_reset_order():
    """Go back to the original question order."""
    return state_response(reset_order(get_session(), current_study_session["records"],
                                      rng=current_study_session["rng"]))


@app.route('/api/next', methods=['POST'])
@with_session_lock
def api_next():
    return state_response(next_question(get_session()))


@app.route('/api/previous', methods=['POST'])
@with_session_lock
def api_previous():
    return state_response(previous_question(get_session()))


@app.route('/api/random', methods=['POST'])
@with_session_lock
def api_random():
    """Jump to a random question."""
    return state_response(random_question(get_session(), rng=current_study_session["rng"]))


@app.route('/api/reveal', methods=['POST'])
@with_session_lock
def api_reveal():
    """Show or hide the answer of the current question."""
    return state_response(toggle_reveal(get_session()))


# ========================================
# Quiz Mode API Routes
# ========================================

@app.route('/api/answer', methods=['POST'])
@with_session_lock
def api_answer():
    """Select an answer for the current question."""
    letter = request_data().get('letter', '')
    session = get_session()

    if session.mode != Mode.QUIZ or session.finalized or session.total == 0:
        return error_response("Answers are locked")

    return state_response(select_answer(session, letter))


@app.route('/api/submit', methods=['POST'])
@with_session_lock
def api_submit():
    """Submit the quiz and return the results."""
    session = get_session()

    if not session.can_submit:
        return error_response("Answer at least one question before submitting")

    session = submit_quiz(session)
    result = session_result(session)
    print(f"[Session] Quiz submitted: {result.correct_count}/{result.total} ({result.percentage}%)")

    return state_response(session, results=serialize_result(result))


@app.route('/api/retake', methods=['POST'])
@with_session_lock
def api_retake():
    """Start another attempt over the same questions."""
    session = get_session()

    if not session.finalized:
        return error_response("Quiz has not been submitted")

    return state_response(retake_quiz(session))


@app.route('/api/results', methods=['GET'])
@with_session_lock
def api_results():
    """Get the per-question breakdown of a submitted quiz."""
    result = session_result(get_session())

    if result is None:
        return error_response("Quiz has not been submitted")

    return jsonify({
        "success": True,
        "results": serialize_result(result)
    })


def main():
    start_session()

    print("Study Quiz starting...")
    print(f"Process ID: {os.getpid()}")
    print(f"Questions file: {QUESTIONS_FILE}")
    print()

    # Use waitress for production-ready serving
    print(f"[Server] Starting server at http://{HOST}:{PORT}")
    print("Press Ctrl+C to stop")
    serve(app, host=HOST, port=PORT, threads=4)


if __name__ == '__main__':
    main()
