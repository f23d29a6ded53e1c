"""
Module: payroll_engines.salary_structure.head_resolver
Responsibility:
    Turn the company's head definitions plus a selection of head ids into
    (a) the regular heads in definition order, (b) a dependency-safe
    evaluation order for them, and (c) the single balancing head.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Selection order never influences the result; duplicates are ignored.
    - A head referencing another head's short name is evaluated after it.
      Ties are broken by definition order, so input that is already
      dependency-safe evaluates exactly in definition order.
    - Self-references and references to unselected heads are leaves.
    - Cycles do not raise: the heads involved are appended in definition
      order and a HEAD_DEPENDENCY_CYCLE warning is recorded.

Failure modes:
    None raised.  Unknown ids and extra balancing heads become warnings.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from payroll_engines.salary_structure.types import (
    CalculationWarning,
    SalaryHeadDefinition,
    WarningCode,
)
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.salary_structure.resolver")


@dataclass(frozen=True)
class ResolvedHeads:
    """
    Output of the Head Resolver.

    Guarantees:
        - ``regular_heads`` are in definition order.
        - ``evaluation_order`` is a permutation of ``regular_heads``.
        - ``short_name_index`` maps each short name to the first selected
          regular head carrying it.
    """

    regular_heads: tuple[SalaryHeadDefinition, ...]
    evaluation_order: tuple[SalaryHeadDefinition, ...]
    balancing_head: SalaryHeadDefinition | None
    short_name_index: dict[str, SalaryHeadDefinition]
    warnings: tuple[CalculationWarning, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.regular_heads and self.balancing_head is None


class HeadResolver:
    """Partition and order selected salary heads."""

    def resolve(
        self,
        heads: Sequence[SalaryHeadDefinition],
        selected_head_ids: Iterable[str],
    ) -> ResolvedHeads:
        selected = {str(head_id) for head_id in selected_head_ids}
        warnings: list[CalculationWarning] = []

        known_ids = {head.id for head in heads}
        for head_id in sorted(selected - known_ids):
            warnings.append(CalculationWarning(
                code=WarningCode.UNKNOWN_SELECTED_HEAD,
                message=f"Selected head {head_id} has no definition",
                head_id=head_id,
            ))
            logger.warning("salary_head_unknown", extra={"head_id": head_id})

        regular: list[SalaryHeadDefinition] = []
        balancing: SalaryHeadDefinition | None = None
        seen: set[str] = set()
        for head in heads:
            if head.id not in selected or head.id in seen:
                continue
            seen.add(head.id)
            if not head.is_balancing:
                regular.append(head)
            elif balancing is None:
                balancing = head
            else:
                warnings.append(CalculationWarning(
                    code=WarningCode.EXTRA_BALANCING_HEAD,
                    message=(
                        f"Head {head.name} is a second balancing head; "
                        f"{balancing.name} is used"
                    ),
                    head_id=head.id,
                ))
                logger.warning("salary_extra_balancing_head", extra={
                    "head_id": head.id,
                    "balancing_head_id": balancing.id,
                })

        index: dict[str, SalaryHeadDefinition] = {}
        for head in regular:
            if head.short_name and head.short_name not in index:
                index[head.short_name] = head

        order = self._evaluation_order(regular, index, warnings)

        logger.debug("salary_heads_resolved", extra={
            "selected_count": len(selected),
            "regular_count": len(regular),
            "has_balancing_head": balancing is not None,
            "evaluation_order": [head.id for head in order],
        })

        return ResolvedHeads(
            regular_heads=tuple(regular),
            evaluation_order=tuple(order),
            balancing_head=balancing,
            short_name_index=index,
            warnings=tuple(warnings),
        )

    @staticmethod
    def dependency_of(
        head: SalaryHeadDefinition,
        index: dict[str, SalaryHeadDefinition],
    ) -> SalaryHeadDefinition | None:
        """Selected head that ``head`` is a percentage of, if it resolves."""
        ref = head.referenced_short_name
        if ref is None:
            return None
        target = index.get(ref)
        if target is None or target.id == head.id:
            return None
        return target

    def _evaluation_order(
        self,
        regular: list[SalaryHeadDefinition],
        index: dict[str, SalaryHeadDefinition],
        warnings: list[CalculationWarning],
    ) -> list[SalaryHeadDefinition]:
        # Kahn's algorithm; each head has at most one prerequisite
        position = {head.id: i for i, head in enumerate(regular)}
        dependents: dict[str, list[SalaryHeadDefinition]] = {}
        pending: dict[str, int] = {}
        for head in regular:
            target = self.dependency_of(head, index)
            pending[head.id] = 0 if target is None else 1
            if target is not None:
                dependents.setdefault(target.id, []).append(head)

        ready = [position[h.id] for h in regular if pending[h.id] == 0]
        heapq.heapify(ready)
        order: list[SalaryHeadDefinition] = []
        while ready:
            head = regular[heapq.heappop(ready)]
            order.append(head)
            for child in dependents.get(head.id, ()):
                pending[child.id] -= 1
                if pending[child.id] == 0:
                    heapq.heappush(ready, position[child.id])

        if len(order) < len(regular):
            placed = {head.id for head in order}
            for head in regular:
                if head.id in placed:
                    continue
                order.append(head)
                warnings.append(CalculationWarning(
                    code=WarningCode.HEAD_DEPENDENCY_CYCLE,
                    message=(
                        f"Head {head.name} is part of (or depends on) a "
                        f"percentage_of cycle"
                    ),
                    head_id=head.id,
                ))
                logger.warning("salary_head_dependency_cycle", extra={
                    "head_id": head.id,
                    "percentage_of": head.percentage_of,
                })
        return order
