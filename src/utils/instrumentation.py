"""Shared funnel instrumentation for detectors.

Every detector narrows its work in the same three stages: raw pairs it could
have evaluated (n_a * n_b), candidate pairs surviving spatial pruning, and
accepted pairs that passed all geometric tests. Recording the same counters
for every interaction type makes pruning efficiency comparable across types.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class DetectionFunnel:
    interaction_type: str
    raw_pairs: int = 0
    candidate_pairs: int = 0
    accepted_pairs: int = 0
    phase_pair_gen_ms: Optional[float] = None
    phase_eval_ms: Optional[float] = None
    phase_build_ms: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def acceptance_ratio(self) -> float:
        return (self.accepted_pairs / self.candidate_pairs) if self.candidate_pairs else 0.0

    def update_counts(self, *, raw: Optional[int] = None,
                      candidate: Optional[int] = None, accepted: Optional[int] = None) -> None:
        if raw is not None:
            self.raw_pairs = int(raw)
        if candidate is not None:
            self.candidate_pairs = int(candidate)
        if accepted is not None:
            self.accepted_pairs = int(accepted)

    def finalize(self, *, pair_gen_seconds: float, eval_seconds: float, build_seconds: float = 0.0) -> None:
        """Store phase timings in ms (rounded), leaving counts untouched."""
        self.phase_pair_gen_ms = round(pair_gen_seconds * 1000.0, 3)
        self.phase_eval_ms = round(eval_seconds * 1000.0, 3)
        self.phase_build_ms = round(build_seconds * 1000.0, 3)

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            'interaction_type': self.interaction_type,
            'raw_pairs': self.raw_pairs,
            'candidate_pairs': self.candidate_pairs,
            'accepted_pairs': self.accepted_pairs,
            'acceptance_ratio': self.acceptance_ratio,
            'phase_pair_gen_ms': self.phase_pair_gen_ms,
            'phase_eval_ms': self.phase_eval_ms,
            'phase_build_ms': self.phase_build_ms,
        }
        out.update(self.extra)
        return out


__all__ = ['DetectionFunnel']
