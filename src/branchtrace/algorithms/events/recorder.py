"""Append-only storage of special points found along a branch."""

from typing import Iterable, Iterator, Tuple

import pandas as pd

from branchtrace.algorithms.events.types import (STATUS_DETECTED,
                                                 EventLocation,
                                                 EventObservation, EventRecord,
                                                 EventSlot)
from branchtrace.algorithms.types.states import ContinuationState
from branchtrace.utils.log_config import logger


class EventRecorder:
    """Ordered list of :class:`EventRecord` instances for one run.

    Records are never reordered, deduplicated or modified. The continuation
    loop appends them in step order and, within a step, by flat index.
    """

    def __init__(self) -> None:
        self._records: list[EventRecord] = []

    def append(self, record: EventRecord) -> None:
        self._records.append(record)
        logger.info(
            "Special point %s at step %d: p=%.6e (%s)",
            record.label, record.step, record.param, record.status,
        )

    def extend(self, records: Iterable[EventRecord]) -> None:
        for record in records:
            self.append(record)

    @property
    def records(self) -> Tuple[EventRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[EventRecord]:
        return iter(tuple(self._records))

    def __getitem__(self, index):
        return self._records[index]

    @staticmethod
    def detected(slot: EventSlot, state: ContinuationState, observation: EventObservation) -> EventRecord:
        """Build an unrefined record located at the step where the slot fired."""
        return EventRecord(
            kind=slot.label,
            name=slot.name,
            step=int(state.step),
            flat_index=slot.flat_index,
            event_id=slot.event_id,
            local_index=slot.local_index,
            param=float(state.p),
            state=state,
            status=STATUS_DETECTED,
            interval=(float(state.p), float(state.p)),
            inversions=0,
            value=float(observation.values[slot.flat_index]),
        )

    @staticmethod
    def located(slot: EventSlot, state_hi: ContinuationState, location: EventLocation) -> EventRecord:
        """Build a record from a bisection result.

        ``state_hi`` is the accepted state at which the slot fired; its step
        index is the record's step.
        """
        return EventRecord(
            kind=slot.label,
            name=slot.name,
            step=int(state_hi.step),
            flat_index=slot.flat_index,
            event_id=slot.event_id,
            local_index=slot.local_index,
            param=float(location.param),
            state=location.state,
            status=location.status,
            interval=location.interval,
            inversions=int(location.inversions),
            value=float(location.value),
        )

    def to_df(self) -> pd.DataFrame:
        """Return the records as a :class:`pandas.DataFrame`, one row each."""
        columns = [
            "kind", "name", "step", "event_id", "local_index", "flat_index",
            "param", "value", "status", "inversions", "interval_lo", "interval_hi",
        ]
        rows = [
            {
                "kind": r.kind,
                "name": r.name,
                "step": r.step,
                "event_id": r.event_id,
                "local_index": r.local_index,
                "flat_index": r.flat_index,
                "param": r.param,
                "value": r.value,
                "status": r.status,
                "inversions": r.inversions,
                "interval_lo": r.interval[0],
                "interval_hi": r.interval[1],
            }
            for r in self._records
        ]
        return pd.DataFrame(rows, columns=columns)

    def __repr__(self) -> str:
        return f"EventRecorder(n={len(self._records)})"
