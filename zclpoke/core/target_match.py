"""Device-model-to-target matching logic."""

from __future__ import annotations

from zclpoke.core.model import TargetProfile


def match_score(model: str, target: TargetProfile) -> int:
    lower_model = model.lower()
    patterns = [pattern.lower() for pattern in target.match.models]
    if lower_model in patterns:
        return 2
    if any(lower_model.startswith(pattern) for pattern in patterns):
        return 1
    return 0


def best_target_for_model(model: str, targets: dict[str, TargetProfile]) -> TargetProfile | None:
    best: TargetProfile | None = None
    best_score = 0
    for target in targets.values():
        score = match_score(model, target)
        if score > best_score:
            best = target
            best_score = score
    return best
