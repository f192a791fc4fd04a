"""
Base class for time-stepping solvers.

A concrete solver provides initialize() (done once) and compute(context)
(one step). The base class owns the time loop:

    t = start
    while t < final:
        t += dt               # last increment shrunk so that t == final
        compute(StepContext(t, dt, step))

Per-step values (time, step size, step index) live in a StepContext that
is passed to every phase of the step; solvers keep no global time state.

Design principles:
1. The loop never overshoots the final time: when t + dt would pass it,
   the step size is reduced to final - t and the time snapped to final
2. A start time equal to the final time runs no step
3. Errors raised by compute() end the run; there is no retry
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)

# Relative tolerance (on dt) for reaching the final time
TIME_TOL = 1.0e-9


@dataclass
class StepContext:
    """
    Time step data threaded through the phases of a step.

    Attributes:
        time: Time at the end of the step (where equilibrium is solved)
        dt: Step size
        step: Step index, 1 for the first step
    """
    time: float
    dt: float
    step: int = 0


class TimeSteppingSolver(ABC):
    """
    Abstract time-stepping solver.

    Attributes:
        start: Initial time
        final: Final time
        dt: Nominal step size
        times: Times of the completed steps
    """

    def __init__(self, start: float, final: float, dt: float):
        if dt <= 0.0:
            raise ValueError(f"Time step must be positive, got {dt}")
        self.start = float(start)
        self.final = float(final)
        self.dt = float(dt)
        self.times: List[float] = []

    @property
    def n_planned_steps(self) -> int:
        """Number of full nominal steps between start and final time."""
        return int((self.final - self.start) / self.dt)

    @abstractmethod
    def initialize(self) -> None:
        """Set up fields and conditions before the first step."""
        pass

    @abstractmethod
    def compute(self, context: StepContext) -> None:
        """Advance the solution to context.time."""
        pass

    def next_context(self, context: StepContext) -> StepContext:
        """
        Context of the step following `context`.

        The step size is reduced if the nominal one would pass the final time.
        """
        dt = context.dt
        time = context.time + dt
        if time > self.final - TIME_TOL * self.dt:
            dt = self.final - context.time
            time = self.final
        return StepContext(time=time, dt=dt, step=context.step + 1)

    def finished(self, context: StepContext) -> bool:
        return context.time >= self.final - TIME_TOL * self.dt

    def run(self) -> List[float]:
        """
        Initialize and step until the final time.

        Returns:
            Times of the steps taken
        """
        self.initialize()
        context = StepContext(time=self.start, dt=self.dt, step=0)
        self.times = []

        while not self.finished(context):
            context = self.next_context(context)
            self.compute(context)
            self.times.append(context.time)

        logger.info("Time loop finished after %d steps at t=%g", context.step, context.time)
        return self.times
