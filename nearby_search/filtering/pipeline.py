import logging
from typing import Callable, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)


class FilterPipeline:
    """Ordered fold of predicates over a candidate list.

    Predicates are sorted by stage; within a stage they keep the order they
    were given in. The empty pipeline returns its input unchanged.
    """

    def __init__(self, predicates: Iterable = ()):
        self.stages = tuple(sorted(predicates, key=lambda p: p.stage))

    def __add__(self, other: "FilterPipeline") -> "FilterPipeline":
        return FilterPipeline(self.stages + other.stages)

    def __len__(self) -> int:
        return len(self.stages)

    def apply(
        self,
        candidates: Sequence,
        on_stage: Optional[Callable[[object, int], None]] = None,
    ) -> List:
        survivors = list(candidates)
        for predicate in self.stages:
            survivors = [c for c in survivors if predicate.matches(c)]
            if on_stage is not None:
                on_stage(predicate, len(survivors))
        logger.debug(
            f"Filtered {len(candidates)} candidates to {len(survivors)} "
            f"through {len(self.stages)} predicates"
        )
        return survivors
