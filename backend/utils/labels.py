# backend/utils/labels.py
from models.task import TaskPriority

# Sort weight, higher is more urgent
TASK_PRIORITY_LEVELS = {
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
}
