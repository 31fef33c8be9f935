"""Task detail report for tlm."""

from __future__ import annotations

from jinja2 import BaseLoader, Environment

from tlm.manager import Priority
from tlm.task import Task
from tlm.translate import Translation

DEFAULT_TEMPLATE = """\
{{ labels.label_name }}: {{ task.name }} ({{ task.id }})
{{ labels.label_author }}: {{ task.created_by }}
{{ labels.label_date }}: {{ task.pretty_date }}
{% if priority -%}
{{ priority }}
{% endif -%}
{{ labels.label_state }}: {{ state }}

{{ labels.label_description }}:
{{ task.description }}
{% if task.subtasks %}
{{ labels.label_subtasks }}:
{% for subtask in task.subtasks -%}
  - {{ subtask.id }} {{ subtask.name }} [{{ labels.state_name(subtask.current_state().state) }}]
{% endfor -%}
{% endif %}
{{ labels.label_history }}:
{{ history }}"""


def render_task_report(
    task: Task,
    translation: Translation | None = None,
    priority: Priority | None = None,
    template: str | None = None,
) -> str:
    """Render a task's details and full history as plain text."""
    translation = translation or Translation()

    priority_names = {
        Priority.HIGH: translation.high_priority,
        Priority.MEDIUM: translation.medium_priority,
        Priority.LOW: translation.low_priority,
    }

    env = Environment(loader=BaseLoader())
    compiled = env.from_string(template or DEFAULT_TEMPLATE)

    context = {
        "task": task,
        "labels": translation,
        "priority": priority_names[priority] if priority else None,
        "state": translation.state_name(task.current_state().state),
        "history": task.changes_to_string(translation),
    }

    return compiled.render(**context)
