import random

import pytest

import app as app_module
from quiz import QuestionRecord


def make_records():
    return [
        QuestionRecord(id=1, category="Net", question="Q1\nA. x\nB. y", answer="A. x - reason"),
        QuestionRecord(id=2, category="OS", question="Q2\nA. fork\nB. exec\nC. wait", answer="C. wait - reaps the child"),
        QuestionRecord(id=3, category="Net", question="Q3\nA. TCP\nB. UDP", answer="B. UDP - connectionless"),
        QuestionRecord(id=4, category="DB", question="Q4\nA. 1NF\nB. 2NF\nC. 3NF\nD. BCNF", answer="D. BCNF"),
        QuestionRecord(id=5, category="OS", question="Q5 has no options", answer="Because it is open ended"),
        QuestionRecord(id=6, category="DB", question="Q6\nA. yes\nB. no", answer="A. yes - always"),
    ]


@pytest.fixture
def records():
    return make_records()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def client(records):
    app_module.app.config["TESTING"] = True
    app_module.start_session(records, rng=random.Random(42))
    with app_module.app.test_client() as test_client:
        yield test_client
