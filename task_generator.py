"""
Application checklist generated when a university is locked.
"""

from typing import Dict, List, Optional

from models import TaskCategory, TaskPriority

# (title template, description, category, priority)
APPLICATION_TASK_TEMPLATES = [
    (
        "Research {name}'s admission requirements",
        "Check program prerequisites, test score minimums and intake dates",
        TaskCategory.GENERAL,
        TaskPriority.MEDIUM,
    ),
    (
        "Prepare SOP for {name}",
        "Draft your SOP highlighting why this university aligns with your goals",
        TaskCategory.DOCUMENT,
        TaskPriority.HIGH,
    ),
    (
        "Get recommendation letters for {name}",
        "Request 2-3 letters from professors or employers",
        TaskCategory.DOCUMENT,
        TaskPriority.HIGH,
    ),
    (
        "Prepare financial documents for {name}",
        "Bank statements, sponsor letters or loan sanction letters",
        TaskCategory.DOCUMENT,
        TaskPriority.HIGH,
    ),
    (
        "Complete application form for {name}",
        "Fill the online application before the deadline",
        TaskCategory.APPLICATION,
        TaskPriority.HIGH,
    ),
    (
        "Pay application fee for {name}",
        "Keep the payment receipt for your records",
        TaskCategory.APPLICATION,
        TaskPriority.MEDIUM,
    ),
]


def build_application_tasks(
    user_id: int,
    university_id: str,
    university_name: Optional[str] = None,
) -> List[Dict]:
    """Task rows for a newly locked university (not yet persisted)."""
    name = university_name or "your university"
    return [
        {
            "user_id": user_id,
            "university_id": university_id,
            "university_name": university_name,
            "title": title.format(name=name),
            "description": description,
            "category": category.value,
            "priority": priority.value,
            "ai_generated": True,
        }
        for title, description, category, priority in APPLICATION_TASK_TEMPLATES
    ]
