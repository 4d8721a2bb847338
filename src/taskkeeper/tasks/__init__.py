"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Priority, Category, TaskFilter, UserProfile)
- task_api.py: editor helpers (new_task, edit_task, attachments)
- task_store.py: SQLite-backed persistence for tasks, profile and preferences
- notifications.py: reminder scheduler, in-process host and delivery loop
- undo.py: single-slot undo window for deleted tasks
- task_views.py: pure filter/sort projections and stats
- task_lifecycle.py: TaskManager, the owner of the canonical task list
"""
