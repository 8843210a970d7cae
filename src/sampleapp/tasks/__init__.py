"""
Background task subsystem.

Components:
- work_items.py: WorkItem variants (unscoped / scoped)
- task_queue.py: bounded FIFO queue with backpressure
- task_service.py: the single worker loop that drains the queue
- job_scheduler.py: periodic jobs that feed the queue
- task_api.py: small high-level helpers used by the rest of the app
"""
