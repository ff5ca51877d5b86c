"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Reminder, TaskDraft, scheduler commands, shares)
- task_store.py: in-memory task list synchronized with a TaskApi backend
- task_scheduler.py: one-shot reminder timers per task (arm / cancel / re-arm)
- timers.py: wall clock + asyncio timer adapters
- task_api.py: session-level helpers used by the CLI (mutate, apply, toast; accounts and sharing)
"""
