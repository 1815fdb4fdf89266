"""Gamification and progress arithmetic: stats, achievements, roadmap progress, activity."""
