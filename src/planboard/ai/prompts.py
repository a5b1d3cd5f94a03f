# src/planboard/ai/prompts.py

"""
Prompt builders for every generation kind.

build_messages() turns (kind, inputs) into OpenAI-style chat messages.
unwrap() pulls the useful part out of the parsed JSON answer.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

logger = logging.getLogger(__name__)

KIND_TASKS = "tasks"
KIND_QUICK_TASK = "quick_task_parse"
KIND_GLOBAL_ANALYSIS = "global_analysis"
KIND_CHAT = "chat"
KIND_PRD = "prd"
KIND_DISCOVERY = "discovery"

ALL_KINDS = (KIND_TASKS, KIND_QUICK_TASK, KIND_GLOBAL_ANALYSIS, KIND_CHAT, KIND_PRD, KIND_DISCOVERY)

# Kinds whose answer is a JSON object (response_format=json_object).
JSON_KINDS = frozenset({KIND_TASKS, KIND_QUICK_TASK, KIND_GLOBAL_ANALYSIS, KIND_PRD, KIND_DISCOVERY})

SYSTEM_INSTRUCTION = (
    "You are a pragmatic product and engineering planning assistant. "
    "You break work into small, concrete tasks, estimate realistically, "
    "and always answer in the exact format requested."
)

_TASK_SHAPE = """{
  "%s": [
    {
      "title": "string",
      "category": "string",
      "priority": "High" | "Medium" | "Low",
      "date": "YYYY-MM-DD",
      "suggestedTime": "HH:MM AM/PM",
      "duration": "e.g. 1h",
      "rationale": "string"
    }
  ]
}"""


def _join(items: Any, default: str = "not specified") -> str:
    if not items:
        return default
    return ", ".join(str(x) for x in items)


def _project_block(project: dict[str, Any]) -> str:
    return (
        f"Project: {project.get('name', '')}\n"
        f"Description: {project.get('description', '') or 'not specified'}\n"
        f"Strategic goals: {_join(project.get('strategic_goals'))}\n"
        f"Current phase: {project.get('current_phase') or 'not specified'}\n"
        f"Tech stack: {_join(project.get('tech_stack'))}\n"
        f"Key features: {_join(project.get('key_features'))}\n"
        f"Target audience: {project.get('target_audience') or 'not specified'}"
    )


def _tasks_prompt(inputs: dict[str, Any]) -> str:
    request = inputs.get("prompt") or "Suggest tasks for this project based on its goals."
    return (
        f"{_project_block(inputs.get('project') or {})}\n\n"
        f"User request: {request}\n\n"
        "Create a list of suggested tasks. Answer with JSON only, exactly in this shape:\n"
        f"{_TASK_SHAPE % 'tasks'}\n"
        "Every task must have a date in YYYY-MM-DD format."
    )


def _quick_task_prompt(inputs: dict[str, Any]) -> str:
    today = inputs.get("today") or date.today().isoformat()
    return (
        f'Text: "{inputs.get("text", "")}"\n'
        f"Project: {inputs.get('project_name', '')}\n"
        f"Today: {today}\n\n"
        "Rules:\n"
        "1. Split the text into the smallest atomic tasks.\n"
        "2. Infer a sensible date and time for each task.\n"
        "3. Without an explicit date, assume today or tomorrow from context.\n"
        "4. Titles must be short and unambiguous.\n"
        "5. The rationale explains why the task matters.\n\n"
        "Answer with JSON only, exactly in this shape:\n"
        f"{_TASK_SHAPE % 'suggestions'}"
    )


def _analysis_prompt(inputs: dict[str, Any]) -> str:
    lines = []
    for t in inputs.get("tasks") or []:
        lines.append(
            f"- [{t.get('context_id', '')}] {t.get('title', '')} "
            f"({t.get('date', '')} {t.get('suggested_time', '')}) status={t.get('status', '')}"
        )
    summary = "\n".join(lines) or "- (no tasks)"
    return (
        "Acting as a principal engineer and strategic product manager, analyze this portfolio of tasks:\n\n"
        f"{summary}\n\n"
        "Answer with JSON only:\n"
        "{\n"
        '  "conflicts": [{"title": "string", "description": "string", "severity": "High" | "Medium" | "Low"}],\n'
        '  "missedOpportunities": ["string"],\n'
        '  "strategicBrainstorm": ["string"],\n'
        '  "dailyFocus": "string"\n'
        "}"
    )


def _prd_prompt(inputs: dict[str, Any]) -> str:
    return (
        f"{_project_block(inputs.get('project') or {})}\n\n"
        f'Write a professional Product Requirements Document for the feature "{inputs.get("title", "")}".\n'
        f"Feature description: {inputs.get('description', '')}\n\n"
        "Answer with JSON only:\n"
        "{\n"
        '  "problemStatement": "string",\n'
        '  "goals": ["measurable goal"],\n'
        '  "userStories": ["As a [user], I want to [action] so that [benefit]"],\n'
        '  "acceptanceCriteria": ["string"],\n'
        '  "techNotes": "string"\n'
        "}"
    )


def _discovery_prompt(inputs: dict[str, Any]) -> str:
    artifact = inputs.get("type") or "Interview"
    label = "User interview script" if artifact == "Interview" else "Validation experiment / smoke test"
    return (
        f"{_project_block(inputs.get('project') or {})}\n\n"
        "Create a product discovery artifact.\n"
        f"Type: {label}\n"
        f"Focus: {inputs.get('focus', '')}\n\n"
        "Answer with JSON only:\n"
        "{\n"
        '  "targetAudience": "string",\n'
        '  "objectives": ["string"],\n'
        '  "questionsOrSteps": ["string"],\n'
        '  "hypotheses": ["If we [action], then [result]"],\n'
        '  "successCriteria": ["string"]\n'
        "}"
    )


def _chat_messages(inputs: dict[str, Any]) -> list[dict[str, str]]:
    project = inputs.get("project") or {}
    system = (
        f"{SYSTEM_INSTRUCTION}\n"
        f"You are now talking in the context of: {project.get('name', '')}.\n"
        f"{_project_block(project)}\n"
        "Keep the answer focused on this project."
    )
    out = [{"role": "system", "content": system}]
    for m in inputs.get("history") or []:
        role = str(m.get("role", "user"))
        if role == "model":
            role = "assistant"
        if role not in {"user", "assistant"}:
            continue
        out.append({"role": role, "content": str(m.get("content", ""))})
    out.append({"role": "user", "content": str(inputs.get("message", ""))})
    return out


_USER_PROMPTS = {
    KIND_TASKS: _tasks_prompt,
    KIND_QUICK_TASK: _quick_task_prompt,
    KIND_GLOBAL_ANALYSIS: _analysis_prompt,
    KIND_PRD: _prd_prompt,
    KIND_DISCOVERY: _discovery_prompt,
}


def build_messages(kind: str, inputs: dict[str, Any]) -> list[dict[str, str]]:
    if kind == KIND_CHAT:
        return _chat_messages(inputs)
    try:
        builder = _USER_PROMPTS[kind]
    except KeyError:
        raise ValueError(f"unknown generation kind: {kind}") from None
    return [
        {"role": "system", "content": SYSTEM_INSTRUCTION},
        {"role": "user", "content": builder(inputs)},
    ]


def unwrap(kind: str, data: Any) -> Any:
    """
    Extract the payload for kind from the parsed answer.

    tasks -> data["tasks"], quick_task_parse -> data["suggestions"];
    object kinds must be dicts. Anything malformed yields None.
    """
    if kind in (KIND_TASKS, KIND_QUICK_TASK):
        key = "tasks" if kind == KIND_TASKS else "suggestions"
        items = data.get(key) if isinstance(data, dict) else data
        if not isinstance(items, list):
            logger.info("Generation kind=%s returned no %s list", kind, key)
            return None
        return [x for x in items if isinstance(x, dict)]

    if kind == KIND_CHAT:
        text = str(data or "").strip()
        return text or None

    return data if isinstance(data, dict) else None
