"""Spaced-repetition review scheduling for the study assistant."""
