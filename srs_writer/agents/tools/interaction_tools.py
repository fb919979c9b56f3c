"""
Interaction tools - Hand control between the specialist, the user and the plan
"""
from typing import Dict, Any, Optional


def ask_question(question: str, context: Optional[str] = None) -> Dict[str, Any]:
    """Suspend the specialist until the user answers"""
    return {
        "needsChatInteraction": True,
        "chatQuestion": question,
        "context": context,
    }


def task_complete(
    summary: str,
    next_step_type: str = "TASK_FINISHED",
    context_for_next: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Echo the completion payload; the Specialist Executor ends the loop on this tool"""
    return {
        "summary": summary,
        "nextStepType": next_step_type,
        "contextForNext": context_for_next or {},
    }


__all__ = ["ask_question", "task_complete"]
