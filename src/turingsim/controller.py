from __future__ import annotations

import logging
from dataclasses import dataclass, field

from turingsim.turing_machine import Configuration, Machine

logger = logging.getLogger(__name__)

MAX_STEPS = 1_000_000


class StepLimitExceeded(TimeoutError):
    def __init__(self, max_steps: int, configurations: list[Configuration]) -> None:
        super().__init__(f"The machine did not halt within {max_steps} steps")
        self.max_steps = max_steps
        self.configurations = configurations


@dataclass
class Controller:
    """Drives a :class:`Machine` the way an interactive front end does.

    ``is_running`` and ``is_halted`` are flags for the front end only. The machine
    itself is asked before every step, so a controller that is stepped past the
    end reports it instead of raising.
    """

    machine: Machine
    max_steps: int = MAX_STEPS
    is_running: bool = field(init=False, default=False)
    is_halted: bool = field(init=False, default=False)

    def step(self) -> bool:
        """A single manual step. Stops a continuous run."""
        self.is_running = False
        return self._advance()

    def _advance(self) -> bool:
        if not self.is_halted and not self.machine.is_halted and self.machine.step():
            return True
        self.is_halted = True
        self.is_running = False
        return False

    def pause(self) -> None:
        self.is_running = False

    def reset(self) -> None:
        self.is_running = False
        self.is_halted = False
        self.machine.reset()

    def run(self) -> int:
        """Step until the machine halts or :meth:`pause` is called from an observer.

        Returns the number of steps taken by this call.
        """
        self.is_running = True
        taken = 0
        while self.is_running:
            if taken >= self.max_steps and not self.machine.is_halted:
                self.is_running = False
                raise StepLimitExceeded(self.max_steps, [self.machine.configuration()])
            if self._advance():
                taken += 1
        return taken

    def trace(self) -> list[Configuration]:
        """Configurations from the current one up to and including the halting one."""
        configs = [self.machine.configuration()]
        while self._advance():
            configs.append(self.machine.configuration())
            if len(configs) > self.max_steps and not self.machine.is_halted:
                raise StepLimitExceeded(self.max_steps, configs)
        logger.info("Traced %d configurations", len(configs))
        return configs
