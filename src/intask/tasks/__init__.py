"""Intask tasks — derived interview task views and the task feed.

Public API:
    Models: InterviewTask, TaskStage, Audience, PrimaryAction (and its variants),
            TaskLink, TaskTimestamps, Prerequisite, TaskBoard
    Derivation: derive_task, readiness_prerequisites, hiring_prerequisites
    Feed: list_interview_tasks, task_for_owner, refresh_task, build_task_board,
          TaskScope, TaskView, StateFilter
"""

from intask.scheduling.prerequisites import (
    Prerequisite,
    hiring_prerequisites,
    readiness_prerequisites,
)
from intask.tasks.engine import default_slot_time, derive_task
from intask.tasks.feed import (
    StateFilter,
    TaskScope,
    TaskView,
    build_task_board,
    list_interview_tasks,
    refresh_task,
    sort_tasks,
    task_for_owner,
)
from intask.tasks.models import (
    AcceptAvailabilityRequest,
    AddRecommendationNote,
    Audience,
    CompleteHiringInterview,
    CompleteReadinessInterview,
    ConfirmReadinessSlot,
    ConfirmSlot,
    InterviewTask,
    OpenDetails,
    PostReadinessSlotsBulk,
    PostSlotsBulk,
    PrimaryAction,
    RequestAvailability,
    TaskBoard,
    TaskLink,
    TaskStage,
    TaskTimestamps,
)

__all__ = [
    "AcceptAvailabilityRequest",
    "AddRecommendationNote",
    "Audience",
    "CompleteHiringInterview",
    "CompleteReadinessInterview",
    "ConfirmReadinessSlot",
    "ConfirmSlot",
    "InterviewTask",
    "OpenDetails",
    "PostReadinessSlotsBulk",
    "PostSlotsBulk",
    "Prerequisite",
    "PrimaryAction",
    "RequestAvailability",
    "StateFilter",
    "TaskBoard",
    "TaskLink",
    "TaskScope",
    "TaskStage",
    "TaskTimestamps",
    "TaskView",
    "build_task_board",
    "default_slot_time",
    "derive_task",
    "hiring_prerequisites",
    "list_interview_tasks",
    "readiness_prerequisites",
    "refresh_task",
    "sort_tasks",
    "task_for_owner",
]
