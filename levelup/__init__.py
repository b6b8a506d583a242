"""LevelUp: goals, tasks, pomodoros and rewards on top of a small relational store."""

__version__ = "0.1.0"
