"""Test cases for quiz grading and quiz-driven certification."""
from types import SimpleNamespace

import pytest

from booking.exceptions import CertificationRefused, NotFound
from booking.models import Certification
from booking.quiz_service import grade_quiz, submit_quiz
from booking.tests.factories import (
    LaserCutterFactory, QuizFactory, SafetyCourseFactory, UserProfileFactory, certify,
)

QUESTIONS = [
    {'question': 'First?', 'options': ['a', 'b', 'c'], 'correct_answer': 1, 'explanation': 'b is right'},
    {'question': 'Second?', 'options': ['a', 'b'], 'correct_answer': 0, 'explanation': 'a is right'},
    {'question': 'Third?', 'options': ['a', 'b', 'c', 'd'], 'correct_answer': 3, 'explanation': 'd is right'},
]


def make_quiz(questions=QUESTIONS, passing_score=70):
    return SimpleNamespace(questions=questions, passing_score=passing_score)


class TestGradeQuiz:

    def test_all_correct(self):
        result = grade_quiz(make_quiz(), [1, 0, 3])
        assert result.score == 100
        assert result.passed
        assert result.correct == 3
        assert all(item['correct'] for item in result.feedback)

    def test_score_rounds_half_up(self):
        # 2 of 3 is 66.67%
        result = grade_quiz(make_quiz(), [1, 0, 0])
        assert result.score == 67
        assert not result.passed

        # 1 of 8 is 12.5%
        eight = [dict(QUESTIONS[1]) for _ in range(8)]
        assert grade_quiz(make_quiz(eight), [0] + [1] * 7).score == 13

    def test_passing_score_boundary(self):
        assert grade_quiz(make_quiz(passing_score=67), [1, 0, 0]).passed

    def test_answers_by_index_mapping(self):
        result = grade_quiz(make_quiz(), {'0': 1, 1: 0, '2': '3'})
        assert result.score == 100

    @pytest.mark.parametrize('answers', [[], None, 'abc', [True, False, True], ['x', None, 3.0]])
    def test_missing_or_malformed_answers_are_wrong(self, answers):
        result = grade_quiz(make_quiz(), answers)
        assert result.correct == 0
        assert result.score == 0

    def test_feedback_reveals_answers(self):
        result = grade_quiz(make_quiz(), [2, 0, 3])
        assert result.feedback[0] == {
            'question': 0, 'correct': False, 'correct_answer': 1, 'explanation': 'b is right',
        }

    def test_empty_quiz_never_passes(self):
        result = grade_quiz(make_quiz([], passing_score=0), [])
        assert result.score == 0
        assert not result.passed

    def test_to_dict(self):
        data = grade_quiz(make_quiz(), [1, 0, 3]).to_dict()
        assert data['score'] == 100
        assert data['certification'] is None


@pytest.mark.django_db
class TestSubmitQuiz:

    def setup_method(self):
        self.safety = SafetyCourseFactory()
        self.laser = LaserCutterFactory()
        self.user = UserProfileFactory().user
        self.safety_quiz = QuizFactory(id='safety-quiz', machine=self.safety)
        self.laser_quiz = QuizFactory(id='laser-quiz', machine=self.laser)

    def test_passing_grants_certification(self):
        result = submit_quiz(self.user, 'safety-quiz', [1, 0, 3, 0])
        assert result.passed
        assert result.certification == 'granted'
        certification = Certification.objects.get(user=self.user, machine=self.safety)
        assert certification.quiz_id == 'safety-quiz'
        assert certification.score == 100

    def test_failing_grants_nothing(self):
        result = submit_quiz(self.user, 'safety-quiz', [0, 1, 0, 1])
        assert not result.passed
        assert result.certification is None
        assert not Certification.objects.filter(user=self.user).exists()

    def test_retake_after_certification(self):
        submit_quiz(self.user, 'safety-quiz', [1, 0, 3, 0])
        result = submit_quiz(self.user, 'safety-quiz', [1, 0, 3, 1])
        assert result.score == 75
        assert result.certification == 'already-certified'
        assert Certification.objects.filter(user=self.user).count() == 1

    def test_machine_quiz_before_safety_course_redirects(self):
        with pytest.raises(CertificationRefused) as exc:
            submit_quiz(self.user, 'laser-quiz', [1, 0, 3, 0])
        assert exc.value.reason == 'safety-course-required'
        assert exc.value.redirect_to == 'safety-course'
        assert exc.value.to_dict()['redirect_to'] == 'safety-course'
        assert not Certification.objects.filter(user=self.user).exists()

    def test_machine_quiz_after_safety_course(self):
        certify(self.user, self.safety)
        result = submit_quiz(self.user, 'laser-quiz', [1, 0, 3, 0])
        assert result.certification == 'granted'
        assert self.user.userprofile.certification_ids == frozenset({'safety-course', 'laser-cutter'})

    def test_unknown_quiz(self):
        with pytest.raises(NotFound):
            submit_quiz(self.user, 'missing-quiz', [])

    def test_deleted_quiz(self):
        self.laser_quiz.deleted_at = self.laser_quiz.created_at
        self.laser_quiz.save()
        with pytest.raises(NotFound):
            submit_quiz(self.user, 'laser-quiz', [1, 0, 3, 0])
