"""
Training Domain

Companies, employees, trainings, sessions, cohorts, participants and the
documents uploaded for each session.
"""
