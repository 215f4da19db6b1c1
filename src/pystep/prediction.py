from __future__ import annotations

import logging
from typing import Any

from .helpers import format_value, repr_value

logger = logging.getLogger(__name__)


def grade_prediction(raw_value: str, correct: Any) -> bool:
    guess = str(raw_value).strip()
    return guess in (format_value(correct), repr_value(correct))


class PredictionMixin:
    """Quiz mode: assignments pause the stepper until a guess is submitted."""

    def set_prediction_mode(self, enabled: bool) -> None:
        self.prediction_mode = bool(enabled)
        self.state.prediction_mode = self.prediction_mode
        if not self.prediction_mode and self.state.waiting_for_prediction:
            # commit the paused assignment without grading it
            self._resume_prediction()

    def _resume_prediction(self) -> None:
        state = self.state
        pc, record = self._pending
        self._pending = None
        state.clear_prediction()
        self.history.append((pc, record))
        state.program_counter = pc + 1
        self.current_step += 1

    def submit_prediction(self, variable: str, raw_value: Any) -> bool:
        state = self.state
        if not state.waiting_for_prediction:
            return False
        expected_variable = state.prediction_variable
        correct = state.prediction_correct_value
        is_correct = grade_prediction(raw_value, correct)
        self._resume_prediction()
        self.last_prediction = {
            "variable": expected_variable,
            "submitted_for": variable,
            "submitted": raw_value,
            "correct_value": correct,
            "is_correct": is_correct,
        }
        logger.info(
            "prediction for %s: %r (%s, expected %r)",
            expected_variable,
            raw_value,
            "correct" if is_correct else "wrong",
            correct,
        )
        return True
