"""Finite-state Markov model of the shared link's per-tick capacity."""

from dataclasses import dataclass
import logging

import numpy as np

from uav_offload.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateSnapshot:
    """Immutable copy of a rate process, broadcast to platforms as a forecast.

    Attributes:
        state: State index at the time of the snapshot.
        values: Capacity (bytes per tick) associated with each state.
        transitions: Row-stochastic transition table, one row per state.
    """

    state: int
    values: tuple[int, ...]
    transitions: tuple[tuple[float, ...], ...]

    @property
    def current_value(self) -> int:
        return self.values[self.state]

    def peek(self) -> int:
        """Capacity of the snapshotted state."""
        return self.current_value

    def transitions_from_current(self) -> np.ndarray:
        """Return an (N, 2) array of (state value, probability from here)."""
        return np.column_stack(
            [
                np.asarray(self.values, dtype=np.float64),
                np.asarray(self.transitions[self.state], dtype=np.float64),
            ]
        )


class RateProcess:
    """Markov chain producing one link capacity sample per tick.

    Each state carries a capacity value. ``sample()`` advances the chain one
    step and returns the new state's value; ``peek()`` reads the current value
    without moving.
    """

    def __init__(
        self,
        values: list[int] | tuple[int, ...] | np.ndarray,
        start_state: int = 0,
        transitions: list[list[float]] | np.ndarray | None = None,
        symmetric: bool = False,
        rng: np.random.Generator | None = None,
    ):
        """Initialize the rate process.

        Args:
            values: Capacity value for each state.
            start_state: Index of the initial state.
            transitions: Optional full (N, N) transition table. Defaults to
                all zeros, to be filled via ``set_transition``.
            symmetric: If True, ``set_transition(a, b, p)`` also sets b -> a.
            rng: Random generator used for state transitions.

        Raises:
            ConfigurationError: On empty values, an out-of-range start state,
                a mis-shaped table or any probability outside [0, 1].
        """
        self._values = np.asarray(values, dtype=np.int64)
        if self._values.ndim != 1 or self._values.size == 0:
            raise ConfigurationError("Rate process needs at least one state value")
        if np.any(self._values < 0):
            raise ConfigurationError("State values must be non-negative")

        n = self._values.size
        if not 0 <= start_state < n:
            raise ConfigurationError(
                f"start_state {start_state} out of range for {n} states"
            )

        if transitions is None:
            table = np.zeros((n, n), dtype=np.float64)
        else:
            table = np.array(transitions, dtype=np.float64)
            if table.shape != (n, n):
                raise ConfigurationError(
                    f"Transition table must be {n}x{n}, got {table.shape}"
                )
            if np.any((table < 0.0) | (table > 1.0)) or np.any(np.isnan(table)):
                raise ConfigurationError("Transition probabilities must be in [0, 1]")

        self._transitions = table
        self._state = int(start_state)
        self.symmetric = symmetric
        self._rng = rng or np.random.default_rng()

    @property
    def num_states(self) -> int:
        return int(self._values.size)

    @property
    def state(self) -> int:
        return self._state

    @property
    def values(self) -> tuple[int, ...]:
        return tuple(int(v) for v in self._values)

    @property
    def transitions(self) -> np.ndarray:
        """Copy of the transition table."""
        return self._transitions.copy()

    def set_transition(self, src: int, dest: int, prob: float) -> None:
        """Set the transition probability from ``src`` to ``dest``.

        Raises:
            ConfigurationError: If either index is out of range or ``prob`` is
                outside [0, 1]. The table is left untouched.
        """
        n = self.num_states
        if not (0 <= src < n and 0 <= dest < n):
            raise ConfigurationError(
                f"Transition ({src} -> {dest}) out of range for {n} states"
            )
        if not 0.0 <= prob <= 1.0:
            raise ConfigurationError(f"Transition probability {prob} not in [0, 1]")

        self._transitions[src, dest] = prob
        if self.symmetric:
            self._transitions[dest, src] = prob

    def set_state(self, state: int) -> None:
        if not 0 <= state < self.num_states:
            raise ConfigurationError(
                f"State {state} out of range for {self.num_states} states"
            )
        self._state = int(state)

    def sample(self) -> int:
        """Advance the chain one step and return the new state's value.

        Walks the current row cumulatively and moves to the first state with
        nonzero probability whose cumulative probability reaches the uniform
        draw. Rows summing to less than one fall back to their last reachable
        state; a row with no outgoing probability keeps the current state.
        """
        row = self._transitions[self._state]
        u = self._rng.random()
        cumulative = np.cumsum(row)

        candidates = np.flatnonzero((cumulative >= u) & (row > 0.0))
        if candidates.size:
            self._state = int(candidates[0])
        else:
            reachable = np.flatnonzero(row > 0.0)
            if reachable.size:
                self._state = int(reachable[-1])

        return int(self._values[self._state])

    def peek(self) -> int:
        """Current state's value, without advancing."""
        return int(self._values[self._state])

    def snapshot(self) -> RateSnapshot:
        """Immutable copy of the current chain for use as a forecast."""
        return RateSnapshot(
            state=self._state,
            values=self.values,
            transitions=tuple(tuple(float(p) for p in row) for row in self._transitions),
        )

    @classmethod
    def constant(cls, value: int, rng: np.random.Generator | None = None) -> "RateProcess":
        """Single absorbing state with a fixed capacity."""
        return cls([value], transitions=[[1.0]], rng=rng)

    @classmethod
    def from_max_rate(
        cls,
        max_rate: int,
        levels: int = 6,
        absorbing: tuple[int, ...] = (0,),
        start_state: int = 0,
        rng: np.random.Generator | None = None,
    ) -> "RateProcess":
        """Build a symmetric chain of evenly spaced capacity levels.

        State k carries ``ceil(max_rate * (levels - k) / levels)``, down to a
        final zero-capacity outage state. States listed in ``absorbing`` get a
        self-transition probability of one.
        """
        values = [int(np.ceil(max_rate * (levels - k) / levels)) for k in range(levels)]
        values.append(0)
        process = cls(values, start_state=start_state, symmetric=True, rng=rng)
        for state in absorbing:
            process.set_transition(state, state, 1.0)
        logger.debug("Built %d-state rate process from max rate %d", len(values), max_rate)
        return process
