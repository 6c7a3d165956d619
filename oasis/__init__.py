"""
Oasis corporate e-learning backend
Courses, lessons, progress tracking, quizzes and certificates
"""

__version__ = "1.0.0"
