"""
Database models package
"""
from app.models.quiz import Quiz
from app.models.quiz_submission import QuizSubmission
from app.models.submission_grade import SubmissionGradeRecord, QuestionGradeRecord

__all__ = ["Quiz", "QuizSubmission", "SubmissionGradeRecord", "QuestionGradeRecord"]
