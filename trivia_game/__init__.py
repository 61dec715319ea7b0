"""
Discord trivia game backed by the Open Trivia Database.
"""
