"""
Assessment Flow Controller

PURPOSE:
Drive the five-step student questionnaire:

    BASIC_INFO -> CORE_VALUES -> WORK_PREFERENCES -> PERSONALITY -> RESULTS

HOW IT WORKS:
- Moving forward requires the current step to be complete:
    BASIC_INFO        all fields filled, email and phone well-formed
    CORE_VALUES       exactly 5 catalog values
    WORK_PREFERENCES  every slider moved at least once (a slider left at
                      its default 50 is unanswered)
    PERSONALITY       all 7 questions answered 1-5
- Moving back is always allowed
- RESULTS is only reached through submit(); a failed submit leaves the
  flow on PERSONALITY with the error and every answer intact

Email/phone availability is checked while the student types by
DebouncedFieldValidator: 800 ms debounce, a new value cancels the
in-flight check for that field, and a stale check can never overwrite a
newer result. Check failures fail open.

The step predicates are plain functions so the API can re-run them
server-side (POST /assessment/validate-step, POST /submit-assessment).
"""

import asyncio
import inspect
import logging
from enum import IntEnum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import httpx

from careermatch.core.catalog import (
    CORE_VALUES, PERSONALITY_TRAITS, PHONE_FORMAT_MESSAGE, REQUIRED_CORE_VALUES,
    WORK_PREFERENCE_DEFAULT, WORK_PREFERENCE_KEYS, canonical_core_value, is_valid_email,
    is_valid_phone
)

logger = logging.getLogger(__name__)


class AssessmentStep(IntEnum):
    BASIC_INFO = 1
    CORE_VALUES = 2
    WORK_PREFERENCES = 3
    PERSONALITY = 4
    RESULTS = 5


BASIC_FIELDS = ["name", "email", "phone", "education_degree", "specialization"]


class IncompleteStepError(Exception):
    """Tried to move past a step that is not complete."""

    def __init__(self, step: AssessmentStep, errors: List[str]):
        super().__init__(f"{step.name} is incomplete: {'; '.join(errors)}")
        self.step = step
        self.errors = errors


# ============================================================
# STEP PREDICATES
# Each returns the list of problems; empty means complete.
# ============================================================

def basic_info_errors(info: Dict[str, Any]) -> List[str]:
    errors = [f"{field} is required" for field in BASIC_FIELDS if not str(info.get(field) or "").strip()]
    email = str(info.get("email") or "").strip()
    if email and not is_valid_email(email):
        errors.append("Please enter a valid email address")
    phone = str(info.get("phone") or "").strip()
    if phone and not is_valid_phone(phone):
        errors.append(PHONE_FORMAT_MESSAGE)
    return errors


def core_values_errors(values: Iterable[str]) -> List[str]:
    values = list(values or [])
    errors = [f"'{v}' is not a recognised core value" for v in values if canonical_core_value(v) is None]
    known = [c for c in (canonical_core_value(v) for v in values) if c is not None]
    repeated = sorted({c for c in known if known.count(c) > 1})
    errors.extend(f"'{v}' is selected more than once" for v in repeated)
    if len(values) != REQUIRED_CORE_VALUES:
        errors.append(f"Select exactly {REQUIRED_CORE_VALUES} core values (selected {len(values)})")
    return errors


def work_preferences_errors(preferences: Dict[str, int], touched: Iterable[str]) -> List[str]:
    touched = set(touched or [])
    errors = []
    for key in WORK_PREFERENCE_KEYS:
        if key not in touched:
            errors.append(f"Move the {key} slider to answer it")
        elif not 0 <= int(preferences.get(key, WORK_PREFERENCE_DEFAULT)) <= 100:
            errors.append(f"{key} must be between 0 and 100")
    return errors


def personality_errors(scores: Dict[str, int]) -> List[str]:
    errors = []
    for trait in PERSONALITY_TRAITS:
        value = scores.get(trait)
        if value is None:
            errors.append(f"Answer the {trait} question")
        elif not 1 <= int(value) <= 5:
            errors.append(f"{trait} must be between 1 and 5")
    return errors


# ============================================================
# FLOW
# ============================================================

Submitter = Callable[[Dict[str, Any]], Any]


class AssessmentFlow:
    """
    In-memory questionnaire state. The submitter receives the full
    profile dict and returns {"student": ..., "recommendations": [...]};
    it may be a plain function or a coroutine function.
    """

    def __init__(self, submitter: Submitter):
        self.submitter = submitter
        self.step = AssessmentStep.BASIC_INFO
        self.basic_info: Dict[str, str] = {field: "" for field in BASIC_FIELDS}
        self.core_values: List[str] = []
        self.work_preferences: Dict[str, int] = {k: WORK_PREFERENCE_DEFAULT for k in WORK_PREFERENCE_KEYS}
        self.touched_preferences: set = set()
        self.personality_scores: Dict[str, int] = {}
        self.error: Optional[str] = None
        self.submitting = False
        self.student: Optional[Dict] = None
        self.recommendations: List[Dict] = []

    # --- answers -------------------------------------------------------

    def set_basic_info(self, **fields: str) -> None:
        for field, value in fields.items():
            if field not in self.basic_info:
                raise KeyError(f"Unknown basic field: {field}")
            self.basic_info[field] = value

    def toggle_core_value(self, value: str) -> bool:
        """Select or deselect a value. Returns False if the selection is already full."""
        canonical = canonical_core_value(value)
        if canonical is None:
            raise ValueError(f"'{value}' is not one of {', '.join(CORE_VALUES)}")
        if canonical in self.core_values:
            self.core_values.remove(canonical)
            return True
        if len(self.core_values) >= REQUIRED_CORE_VALUES:
            return False
        self.core_values.append(canonical)
        return True

    def move_slider(self, key: str, value: int) -> None:
        if key not in self.work_preferences:
            raise KeyError(f"Unknown work preference: {key}")
        self.work_preferences[key] = max(0, min(100, int(value)))
        self.touched_preferences.add(key)

    def answer(self, trait: str, score: int) -> None:
        if trait not in PERSONALITY_TRAITS:
            raise KeyError(f"Unknown personality question: {trait}")
        if not 1 <= int(score) <= 5:
            raise ValueError("Answers are on a 1-5 scale")
        self.personality_scores[trait] = int(score)

    # --- navigation ----------------------------------------------------

    def step_errors(self, step: Optional[AssessmentStep] = None) -> List[str]:
        step = step or self.step
        if step == AssessmentStep.BASIC_INFO:
            return basic_info_errors(self.basic_info)
        if step == AssessmentStep.CORE_VALUES:
            return core_values_errors(self.core_values)
        if step == AssessmentStep.WORK_PREFERENCES:
            return work_preferences_errors(self.work_preferences, self.touched_preferences)
        if step == AssessmentStep.PERSONALITY:
            return personality_errors(self.personality_scores)
        return []

    def can_advance(self) -> bool:
        return self.step < AssessmentStep.PERSONALITY and not self.step_errors()

    def next(self) -> AssessmentStep:
        if self.step >= AssessmentStep.PERSONALITY:
            raise IncompleteStepError(self.step, ["Submit the assessment to see your results"])
        errors = self.step_errors()
        if errors:
            raise IncompleteStepError(self.step, errors)
        self.step = AssessmentStep(self.step + 1)
        self.error = None
        return self.step

    def back(self) -> AssessmentStep:
        if self.step > AssessmentStep.BASIC_INFO:
            self.step = AssessmentStep(self.step - 1)
        self.error = None
        return self.step

    def profile(self) -> Dict[str, Any]:
        return {
            **{k: v.strip() if isinstance(v, str) else v for k, v in self.basic_info.items()},
            "core_values": list(self.core_values),
            "work_preferences": dict(self.work_preferences),
            "personality_scores": dict(self.personality_scores),
        }

    async def submit(self) -> Dict[str, Any]:
        """
        Validate every step, then hand the profile to the submitter.
        Nothing is sent unless all steps are complete.
        """
        if self.step != AssessmentStep.PERSONALITY:
            raise IncompleteStepError(self.step, ["Finish the questionnaire before submitting"])
        for step in (AssessmentStep.BASIC_INFO, AssessmentStep.CORE_VALUES,
                     AssessmentStep.WORK_PREFERENCES, AssessmentStep.PERSONALITY):
            errors = self.step_errors(step)
            if errors:
                self.error = errors[0]
                raise IncompleteStepError(step, errors)

        self.submitting = True
        self.error = None
        try:
            result = self.submitter(self.profile())
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            # Stay on PERSONALITY so the student can retry without re-answering
            logger.warning("Assessment submission failed: %s", e)
            self.error = str(e) or "Failed to submit assessment. Please try again."
            raise
        finally:
            self.submitting = False

        self.student = result.get("student")
        self.recommendations = list(result.get("recommendations") or [])
        self.step = AssessmentStep.RESULTS
        return result


# ============================================================
# DEBOUNCED FIELD VALIDATION
# ============================================================

class FieldValidation:
    def __init__(self, is_valid: Optional[bool] = None, message: str = "", is_checking: bool = False):
        self.is_valid = is_valid
        self.message = message
        self.is_checking = is_checking

    def __repr__(self):
        return f"FieldValidation(is_valid={self.is_valid!r}, message={self.message!r})"


Checker = Callable[[str, str], Awaitable[Dict[str, Any]]]


class DebouncedFieldValidator:
    """
    Availability checks for email/phone while the student types.

    validate() returns immediately; the remote check runs after the
    debounce delay on the running event loop. Each call bumps the field's
    sequence number and cancels the previous task, and a task only
    publishes its result if its sequence number is still the latest.
    """

    def __init__(self, checker: Checker, debounce_seconds: float = 0.8, min_length: int = 3):
        self.checker = checker
        self.debounce_seconds = debounce_seconds
        self.min_length = min_length
        self._tasks: Dict[str, asyncio.Task] = {}
        self._sequence: Dict[str, int] = {}
        self.results: Dict[str, FieldValidation] = {}

    def result(self, field: str) -> FieldValidation:
        return self.results.get(field, FieldValidation())

    def _format_error(self, field: str, value: str) -> Optional[str]:
        if field == "email" and not is_valid_email(value):
            return "Please enter a valid email address"
        if field == "phone" and not is_valid_phone(value):
            return PHONE_FORMAT_MESSAGE
        return None

    def validate(self, field: str, value: str) -> None:
        self._cancel(field)
        seq = self._sequence.get(field, 0) + 1
        self._sequence[field] = seq

        value = (value or "").strip()
        if len(value) < self.min_length:
            self.results[field] = FieldValidation()
            return
        format_error = self._format_error(field, value)
        if format_error:
            self.results[field] = FieldValidation(False, format_error)
            return

        self.results[field] = FieldValidation(None, "", is_checking=True)
        self._tasks[field] = asyncio.get_running_loop().create_task(self._run(field, value, seq))

    async def _run(self, field: str, value: str, seq: int) -> None:
        await asyncio.sleep(self.debounce_seconds)
        try:
            response = await self.checker(field, value)
            outcome = FieldValidation(bool(response.get("valid", True)), response.get("message", ""))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Field validation for %s failed, allowing: %s", field, e)
            outcome = FieldValidation(True, "Unable to verify availability. Please continue.")
        if self._sequence.get(field) == seq:
            self.results[field] = outcome

    def _cancel(self, field: str) -> None:
        task = self._tasks.pop(field, None)
        if task is not None and not task.done():
            task.cancel()

    async def wait(self, field: str) -> FieldValidation:
        """Wait for the pending check (if any) of a field to settle."""
        task = self._tasks.get(field)
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        return self.result(field)

    def cleanup(self) -> None:
        for field in list(self._tasks):
            self._cancel(field)


def http_field_checker(base_url: str, client: Optional[httpx.AsyncClient] = None) -> Checker:
    """Checker that asks POST {base_url}/api/validate-field."""

    async def check(field: str, value: str) -> Dict[str, Any]:
        payload = {"field": field, "value": value}
        url = f"{base_url.rstrip('/')}/api/validate-field"
        if client is not None:
            response = await client.post(url, json=payload)
        else:
            async with httpx.AsyncClient(timeout=10) as own_client:
                response = await own_client.post(url, json=payload)
        response.raise_for_status()
        return response.json()

    return check
