"""
Checkpointed Search State
=========================

Persistent record of a generation search, rewritten in full after every
mutation so that an interrupted run resumes at the next unprocessed
coefficient subset.

Author: Carmen Esteban
"""

import json
import os
import tempfile
from dataclasses import dataclass, field
from itertools import combinations
from typing import List, Optional

from matrix_polynomial_analysis.collapse import collapse_polynomials
from matrix_polynomial_analysis.core import Polynomial


STATE_KEYS = ("starting_mutated_polynomials", "combinations_left",
              "interesting_polynomials", "current_generation")


def all_combinations(polynomial_length):
    """combinations_left layout: entry k lists every k-subset, entry 0 is empty."""
    out = [[]]
    for k in range(1, polynomial_length + 1):
        out.append([list(c) for c in combinations(range(polynomial_length), k)])
    return out


@dataclass
class GenerationState:
    """Search progress for the current generation.

    Attributes:
        starting_mutated_polynomials: seeds of the current generation
        combinations_left: per subset size, subsets still to process
        interesting_polynomials: boundary candidates found so far
        current_generation: completed-generation counter
        matrix_size: matrix size the polynomials were searched for, None if unknown
        path: checkpoint file, None keeps the state in memory only
    """
    starting_mutated_polynomials: List[Polynomial] = field(default_factory=list)
    combinations_left: List[List[List[int]]] = field(default_factory=list)
    interesting_polynomials: List[Polynomial] = field(default_factory=list)
    current_generation: int = 0
    matrix_size: Optional[int] = None
    path: Optional[str] = field(default=None, compare=False, repr=False)

    @classmethod
    def new(cls, polynomial_length, current_generation=0, path=None, matrix_size=None):
        return cls(combinations_left=all_combinations(polynomial_length),
                   current_generation=current_generation, matrix_size=matrix_size,
                   path=path)

    # -- queries ------------------------------------------------------------

    def pending(self):
        """Remaining subsets in processing order (increasing size)."""
        return [list(c) for group in self.combinations_left for c in group]

    # -- mutations (each one persists) --------------------------------------

    def complete_combination(self, combination, polynomials):
        """Record a finished subset and its results in one persisted step."""
        combination = list(combination)
        self.interesting_polynomials.extend(polynomials)
        group = self.combinations_left[len(combination)]
        self.combinations_left[len(combination)] = [c for c in group if c != combination]
        self.save()

    def finish_generation(self, polynomial_length):
        self.interesting_polynomials = collapse_polynomials(self.interesting_polynomials)
        self.starting_mutated_polynomials = [p.copy() for p in self.interesting_polynomials]
        self.current_generation += 1
        self.combinations_left = all_combinations(polynomial_length)
        self.save()

    # -- serialization ------------------------------------------------------

    def to_dict(self):
        data = {
            "starting_mutated_polynomials": [p.to_dict() for p in self.starting_mutated_polynomials],
            "combinations_left": [[list(c) for c in group] for group in self.combinations_left],
            "interesting_polynomials": [p.to_dict() for p in self.interesting_polynomials],
            "current_generation": self.current_generation,
        }
        if self.matrix_size is not None:
            data["matrix_size"] = self.matrix_size
        return data

    @classmethod
    def from_dict(cls, data, path=None):
        if not isinstance(data, dict):
            raise ValueError("state must be a JSON object")
        missing = [k for k in STATE_KEYS if k not in data]
        if missing:
            raise ValueError("state is missing keys: {}".format(", ".join(missing)))
        try:
            combos = [[[int(i) for i in c] for c in group]
                      for group in data["combinations_left"]]
            for k, group in enumerate(combos):
                if any(len(c) != k for c in group):
                    raise ValueError("combinations_left[{}] holds a subset of the "
                                     "wrong size".format(k))
            matrix_size = data.get("matrix_size")
            if matrix_size is not None:
                matrix_size = int(matrix_size)
            return cls(
                starting_mutated_polynomials=[
                    Polynomial.from_dict(p) for p in data["starting_mutated_polynomials"]],
                combinations_left=combos,
                interesting_polynomials=[
                    Polynomial.from_dict(p) for p in data["interesting_polynomials"]],
                current_generation=int(data["current_generation"]),
                matrix_size=matrix_size,
                path=path,
            )
        except TypeError as e:
            raise ValueError("malformed state: {}".format(e)) from e

    def save(self):
        """Atomically rewrite the checkpoint: temp file, fsync, rename."""
        if self.path is None:
            return
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(prefix=".state-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(self.to_dict(), f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    @classmethod
    def load(cls, path):
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError("unreadable state file {}: {}".format(path, e)) from e
        return cls.from_dict(data, path=path)

    @classmethod
    def load_or_new(cls, path, polynomial_length, matrix_size=None):
        if os.path.exists(path):
            return cls.load(path)
        return cls.new(polynomial_length, path=path, matrix_size=matrix_size)
