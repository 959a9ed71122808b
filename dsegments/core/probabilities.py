"""
dsegments probability model

Provides:
1. Storage for initiation, transition and emission probabilities of a small
   copy-number HMM, with every value mirrored in the log domain
2. The per-bucket D-segment score (log2 likelihood ratio, elevated vs background)
3. The detection threshold derived from the transition table
4. Poisson-parameterised construction from expected segment lengths and means

States are numbered so that 1 = background and 2 = elevated; state 0 is the
unused initial state. The model stores any number of states, but the score
and threshold formulas only ever read states 1 and 2.
"""

from enum import IntEnum
from typing import Optional, Tuple, Dict, Any, Union

import numpy as np
from scipy.stats import poisson


class ConfigurationError(ValueError):
    """Raised for malformed model parameters or lookups of unknown keys."""


class State(IntEnum):
    INITIAL = 0
    BACKGROUND = 1
    ELEVATED = 2


class Bucket(IntEnum):
    """Read-start count category. THREE_OR_MORE is right-censored."""
    ZERO = 0
    ONE = 1
    TWO = 2
    THREE_OR_MORE = 3

    @classmethod
    def from_count(cls, count: int) -> 'Bucket':
        """Map a raw read-start count onto its bucket, clamping at the top."""
        if count < 0:
            raise ValueError(f"Read-start count must be non-negative, got {count}")
        return cls(min(int(count), cls.THREE_OR_MORE))

    @property
    def label(self) -> str:
        return str(int(self))


N_BUCKETS = len(Bucket)
DEFAULT_N_STATES = 3

# The only pair of states the segment score and threshold are defined over
SCORING_STATES = (State.BACKGROUND, State.ELEVATED)

# Stored in place of log(0)
UNDEFINED_LOG = float('nan')

LN2 = np.log(2.0)

BucketKey = Union[Bucket, int, str]


def _log_or_undefined(value: float) -> float:
    if value == 0:
        return UNDEFINED_LOG
    return float(np.log(value))


def poisson_probability(mean: float, observed: int) -> float:
    """Poisson probability mass mean^k e^-mean / k!"""
    return float(poisson.pmf(observed, mean))


class ProbabilityModel:
    """
    Two-state copy-number HMM probabilities for D-segment detection.

    Linear probabilities are kept in ``startprob_``, ``transmat_`` and
    ``emissionprob_``; the setters keep the natural-log mirrors in sync.
    A zero probability is mirrored as ``UNDEFINED_LOG`` (nan) rather than
    -inf, so any score that consumes it is nan as well.

    No range checking is done on stored values. Rows of the transition
    matrix are expected to sum to 1 but that is left to the caller.
    """

    def __init__(self, n_states: int = DEFAULT_N_STATES):
        if n_states <= max(SCORING_STATES):
            raise ConfigurationError(
                f"Model needs at least {max(SCORING_STATES) + 1} states, got {n_states}"
            )
        self.n_states = n_states
        self.n_buckets = N_BUCKETS

        self.startprob_ = np.zeros(n_states)
        self.transmat_ = np.zeros((n_states, n_states))
        self.emissionprob_ = np.zeros((n_states, N_BUCKETS))

        self._log_startprob = np.full(n_states, UNDEFINED_LOG)
        self._log_transmat = np.full((n_states, n_states), UNDEFINED_LOG)
        self._log_emissionprob = np.full((n_states, N_BUCKETS), UNDEFINED_LOG)

        # Builder parameters, kept for reports and model files
        self.segment_lengths: Optional[Tuple[int, int]] = None
        self.poisson_means: Optional[Tuple[float, float]] = None

    @classmethod
    def from_segment_lengths(cls, normal_length: int, elevated_length: int,
                             normal_mean: float, elevated_mean: float) -> 'ProbabilityModel':
        """
        Build a model from expected segment lengths and Poisson means.

        Self-transition probabilities are 1 - 1/length for each state and
        emissions follow a Poisson distribution per state, with the top
        bucket taking the remaining mass.

        Args:
            normal_length: Expected length of a background run (positions)
            elevated_length: Expected length of an elevated run (positions)
            normal_mean: Mean read starts per position in background
            elevated_mean: Mean read starts per position in elevated regions

        Returns:
            ProbabilityModel instance
        """
        for name, length in (('normal_length', normal_length),
                             ('elevated_length', elevated_length)):
            if length < 1:
                raise ConfigurationError(f"{name} must be >= 1, got {length}")
        for name, mean in (('normal_mean', normal_mean),
                           ('elevated_mean', elevated_mean)):
            if not mean >= 0:
                raise ConfigurationError(f"{name} must be >= 0, got {mean}")

        model = cls(n_states=DEFAULT_N_STATES)
        bg, el = State.BACKGROUND, State.ELEVATED

        model.set_transition_probability(bg, bg, 1 - 1 / normal_length)
        model.set_transition_probability(bg, el, 1 / normal_length)
        model.set_transition_probability(el, bg, 1 / elevated_length)
        model.set_transition_probability(el, el, 1 - 1 / elevated_length)

        model.populate_poisson_emissions(bg, normal_mean)
        model.populate_poisson_emissions(el, elevated_mean)

        model.segment_lengths = (int(normal_length), int(elevated_length))
        model.poisson_means = (float(normal_mean), float(elevated_mean))
        return model

    # -------------------------------------------------------------------------
    # Key validation
    # -------------------------------------------------------------------------

    def _state_index(self, state: int) -> int:
        try:
            idx = int(state)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Unknown state: {state!r}") from None
        if not 0 <= idx < self.n_states:
            raise ConfigurationError(
                f"State {idx} out of range for a {self.n_states}-state model"
            )
        return idx

    def _bucket_index(self, bucket: BucketKey) -> int:
        if isinstance(bucket, str):
            for b in Bucket:
                if b.label == bucket:
                    return int(b)
            raise ConfigurationError(f"Unknown emission bucket: {bucket!r}")
        try:
            idx = int(bucket)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Unknown emission bucket: {bucket!r}") from None
        if not 0 <= idx < self.n_buckets:
            raise ConfigurationError(
                f"Emission bucket {idx} out of range (0-{self.n_buckets - 1})"
            )
        return idx

    # -------------------------------------------------------------------------
    # Setters
    # -------------------------------------------------------------------------

    def set_initiation_probability(self, state: int, value: float):
        i = self._state_index(state)
        self.startprob_[i] = value
        self._log_startprob[i] = _log_or_undefined(value)

    def set_transition_probability(self, from_state: int, to_state: int, value: float):
        i, j = self._state_index(from_state), self._state_index(to_state)
        self.transmat_[i, j] = value
        self._log_transmat[i, j] = _log_or_undefined(value)

    def set_emission_probability(self, state: int, bucket: BucketKey, value: float):
        i, k = self._state_index(state), self._bucket_index(bucket)
        self.emissionprob_[i, k] = value
        self._log_emissionprob[i, k] = _log_or_undefined(value)

    def populate_poisson_emissions(self, state: int, mean: float):
        """Set emissions for buckets 0-2 from Poisson(mean); the top bucket gets 1 - sum."""
        total = 0.0
        for bucket in (Bucket.ZERO, Bucket.ONE, Bucket.TWO):
            p = poisson_probability(mean, int(bucket))
            self.set_emission_probability(state, bucket, p)
            total += p
        self.set_emission_probability(state, Bucket.THREE_OR_MORE, 1 - total)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def initiation_probability(self, state: int) -> float:
        return float(self.startprob_[self._state_index(state)])

    def transition_probability(self, from_state: int, to_state: int) -> float:
        return float(self.transmat_[self._state_index(from_state),
                                    self._state_index(to_state)])

    def emission_probability(self, state: int, bucket: BucketKey) -> float:
        return float(self.emissionprob_[self._state_index(state),
                                        self._bucket_index(bucket)])

    def log_initiation_probability(self, state: int) -> float:
        return float(self._log_startprob[self._state_index(state)])

    def log_transition_probability(self, from_state: int, to_state: int) -> float:
        return float(self._log_transmat[self._state_index(from_state),
                                        self._state_index(to_state)])

    def log_emission_probability(self, state: int, bucket: BucketKey) -> float:
        return float(self._log_emissionprob[self._state_index(state),
                                            self._bucket_index(bucket)])

    # -------------------------------------------------------------------------
    # Scores
    # -------------------------------------------------------------------------

    @property
    def threshold(self) -> float:
        """
        Log2 odds of staying in each state versus switching away and back:

            log2 P(1->1) + log2 P(2->2) - log2 P(1->2) - log2 P(2->1)

        A window whose score falls this far below its peak is closed.
        """
        bg, el = SCORING_STATES
        same = self._log_transmat[bg, bg] + self._log_transmat[el, el]
        switch = self._log_transmat[bg, el] + self._log_transmat[el, bg]
        return float((same - switch) / LN2)

    def d_segment_score(self, bucket: BucketKey) -> float:
        """
        Log2 likelihood ratio of one position continuing an elevated run
        versus continuing a background run:

            [log P(b | 2) + log P(2->2)] - [log P(b | 1) + log P(1->1)]

        Args:
            bucket: Bucket, bucket label, or raw read-start count (clamped)

        Returns:
            Score increment in bits (nan if any term is undefined)
        """
        if isinstance(bucket, (int, np.integer)) and not isinstance(bucket, Bucket):
            bucket = Bucket.from_count(bucket)
        k = self._bucket_index(bucket)
        bg, el = SCORING_STATES
        elevated = self._log_emissionprob[el, k] + self._log_transmat[el, el]
        background = self._log_emissionprob[bg, k] + self._log_transmat[bg, bg]
        return float((elevated - background) / LN2)

    def d_segment_scores(self) -> np.ndarray:
        """Score increment for every bucket, indexed by bucket."""
        return np.array([self.d_segment_score(b) for b in Bucket])

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize model to dictionary."""
        return {
            'n_states': self.n_states,
            'startprob': self.startprob_.tolist(),
            'transmat': self.transmat_.tolist(),
            'emissionprob': self.emissionprob_.tolist(),
            'segment_lengths': list(self.segment_lengths) if self.segment_lengths else None,
            'poisson_means': list(self.poisson_means) if self.poisson_means else None,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'ProbabilityModel':
        """Deserialize model from dictionary, going through the setters."""
        try:
            model = cls(n_states=int(d.get('n_states', DEFAULT_N_STATES)))
            startprob = np.asarray(d['startprob'], dtype=float)
            transmat = np.asarray(d['transmat'], dtype=float)
            emissionprob = np.asarray(d['emissionprob'], dtype=float)
        except ConfigurationError:
            raise
        except KeyError as e:
            raise ConfigurationError(f"Model is missing field {e}") from None
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Model has a malformed field: {e}") from e

        expected = {
            'startprob': (model.n_states,),
            'transmat': (model.n_states, model.n_states),
            'emissionprob': (model.n_states, N_BUCKETS),
        }
        for name, arr in (('startprob', startprob), ('transmat', transmat),
                          ('emissionprob', emissionprob)):
            if arr.shape != expected[name]:
                raise ConfigurationError(
                    f"{name} has shape {arr.shape}, expected {expected[name]}"
                )

        for i in range(model.n_states):
            model.set_initiation_probability(i, startprob[i])
            for j in range(model.n_states):
                model.set_transition_probability(i, j, transmat[i, j])
            for k in range(N_BUCKETS):
                model.set_emission_probability(i, k, emissionprob[i, k])

        try:
            if d.get('segment_lengths') is not None:
                model.segment_lengths = tuple(int(x) for x in d['segment_lengths'])
            if d.get('poisson_means') is not None:
                model.poisson_means = tuple(float(x) for x in d['poisson_means'])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Model has malformed metadata: {e}") from e
        return model

    def __repr__(self):
        return (f"ProbabilityModel(n_states={self.n_states}, "
                f"threshold={self.threshold:.4f})")
