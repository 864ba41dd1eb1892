"""
Evaluation Subsystem

AI-generated quizzes built from session documents, employee attempts,
grading and analytics.
"""
