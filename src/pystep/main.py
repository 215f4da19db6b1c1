from __future__ import annotations

from .core import StepperCore
from .prediction import PredictionMixin


class Interpreter(PredictionMixin, StepperCore):
    pass
