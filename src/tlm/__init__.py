"""tlm - TodoList Manager.

A tree of tasks in three priority buckets, with a state machine governing
each task's lifecycle and an append-only history of every change.
"""

__version__ = "0.1.0"
