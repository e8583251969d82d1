# booking/quiz_service.py
"""
Quiz grading and certification grants for the Learnit Booking.

This file is part of Learnit Booking.
Copyright (C) 2025 Learnit Booking Contributors

This software is dual-licensed:
1. GNU General Public License v3.0 (GPL-3.0) - for open source use
2. Commercial License - for proprietary and commercial use

For GPL-3.0 license terms, see LICENSE file.
For commercial licensing, see COMMERCIAL-LICENSE.txt.
"""

import logging
from typing import Dict, List, Optional

from django.conf import settings

from .certification import safety_course_id
from .data_access import data_access
from .exceptions import CertificationRefused, NotFound
from .models import Quiz

logger = logging.getLogger(__name__)


class QuizResult:
    """Outcome of grading one quiz attempt."""

    def __init__(self, score: int, passed: bool, correct: int, total: int,
                 feedback: Optional[List[Dict]] = None):
        self.score = score
        self.passed = passed
        self.correct = correct
        self.total = total
        self.feedback = feedback or []
        self.certification = None

    def __repr__(self):
        return f"QuizResult(score={self.score}, passed={self.passed})"

    def to_dict(self):
        return {
            'score': self.score,
            'passed': self.passed,
            'correct': self.correct,
            'total': self.total,
            'feedback': self.feedback,
            'certification': self.certification,
        }


def _answer_for(answers, index):
    if isinstance(answers, dict):
        if index in answers:
            return answers[index]
        return answers.get(str(index))
    if isinstance(answers, (list, tuple)) and index < len(answers):
        return answers[index]
    return None


def _as_choice(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def grade_quiz(quiz, answers) -> QuizResult:
    """
    Grade `answers` against `quiz.questions`.

    `answers` is a list of chosen option indexes in question order, or a
    mapping of question index to option index. Missing or malformed answers
    count as wrong. The score is the percentage of correct answers rounded
    half up.
    """
    questions = quiz.questions if isinstance(quiz.questions, list) else []
    passing_score = quiz.passing_score
    if passing_score is None:
        passing_score = getattr(settings, 'QUIZ_DEFAULT_PASSING_SCORE', 70)

    correct = 0
    feedback = []
    for index, question in enumerate(questions):
        expected = question.get('correct_answer') if isinstance(question, dict) else None
        chosen = _as_choice(_answer_for(answers, index))
        is_correct = chosen is not None and chosen == expected
        if is_correct:
            correct += 1
        feedback.append({
            'question': index,
            'correct': is_correct,
            'correct_answer': expected,
            'explanation': question.get('explanation', '') if isinstance(question, dict) else '',
        })

    total = len(questions)
    score = (correct * 200 + total) // (2 * total) if total else 0
    return QuizResult(score, total > 0 and score >= passing_score, correct, total, feedback)


def submit_quiz(user, quiz_id, answers) -> QuizResult:
    """Grade an attempt and, on a pass, certify the user on the quiz's machine."""
    try:
        quiz = Quiz.objects.active().select_related('machine').get(pk=quiz_id)
    except Quiz.DoesNotExist:
        raise NotFound(f"Quiz '{quiz_id}' not found.")

    result = grade_quiz(quiz, answers)
    logger.info(f"User {user.username} scored {result.score}% on quiz {quiz.pk} (pass={result.passed})")

    if not result.passed or quiz.machine_id is None:
        return result

    granted, reason = data_access.grant_certification(
        user.pk, quiz.machine_id, quiz=quiz, score=result.score,
    )
    if not granted:
        raise CertificationRefused(
            reason,
            "You passed, but the safety course must be completed before this certification can be granted.",
            redirect_to=safety_course_id(),
        )
    result.certification = reason
    return result
