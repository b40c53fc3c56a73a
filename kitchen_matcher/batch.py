"""Bounded-concurrency batch matching and conversion."""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .config import DEFAULT_BATCH_SIZE
from .converter import ConversionRequest, ConversionResult, UnitConverter, failed_conversion
from .matcher import IngredientMatcher
from .models import MatchCandidate, MatchOptions
from .units import normalize_unit

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _chunks(items: list[T], size: int) -> list[list[T]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class BatchCoordinator:
    """
    Run many matches or conversions in groups of batch_size.

    Items inside a group run concurrently; groups run one after another. A
    failing item is isolated: it is logged and gets an empty (match) or
    failed (conversion) result while its siblings complete normally.
    """

    def __init__(
        self,
        matcher: IngredientMatcher,
        converter: UnitConverter,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        item_timeout: float | None = None,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex[:8],
    ):
        self.matcher = matcher
        self.converter = converter
        self.batch_size = _check_batch_size(batch_size)
        self.item_timeout = item_timeout
        self._id_factory = id_factory

    async def _run(self, coro: Awaitable[T]) -> T:
        if self.item_timeout is None:
            return await coro
        return await asyncio.wait_for(coro, timeout=self.item_timeout)

    async def batch_match(
        self,
        names: list[str],
        options: MatchOptions,
        *,
        batch_size: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, list[MatchCandidate]]:
        """
        Match many ingredient names.

        Args:
            names: Ingredient names; duplicates collapse to one key (last result wins)
            options: Options applied to every name
            batch_size: Group size override
            cancel_event: When set, no further group is started

        Returns:
            Dict of name -> candidates in input order, for every processed name
        """
        size = _check_batch_size(self.batch_size if batch_size is None else batch_size)
        batch_id = self._id_factory()
        results: dict[str, list[MatchCandidate]] = {}

        logger.info(f"[batch {batch_id}] Matching {len(names)} ingredients in groups of {size}")

        for index, group in enumerate(_chunks(list(names), size)):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"[batch {batch_id}] Cancelled before group {index + 1}")
                break

            outcomes = await asyncio.gather(
                *(self._run(self.matcher.match(name, options)) for name in group),
                return_exceptions=True,
            )
            _raise_cancellation(outcomes)
            for name, outcome in zip(group, outcomes):
                if isinstance(outcome, Exception):
                    logger.warning(f"[batch {batch_id}] Matching {name!r} failed: {outcome!r}")
                    results[name] = []
                else:
                    results[name] = outcome

        logger.info(f"[batch {batch_id}] Matched {len(results)} distinct ingredients")
        return results

    async def batch_convert(
        self,
        requests: list[ConversionRequest],
        *,
        user_id: str | None = None,
        batch_size: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[ConversionResult]:
        """
        Convert many quantities.

        Returns:
            One result per processed request, in input order
        """
        size = _check_batch_size(self.batch_size if batch_size is None else batch_size)
        batch_id = self._id_factory()
        results: list[ConversionResult] = []

        logger.info(f"[batch {batch_id}] Converting {len(requests)} quantities in groups of {size}")

        for index, group in enumerate(_chunks(list(requests), size)):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"[batch {batch_id}] Cancelled before group {index + 1}")
                break

            outcomes = await asyncio.gather(
                *(
                    self._run(
                        self.converter.convert(
                            req.amount,
                            req.from_unit,
                            req.to_unit,
                            user_id=user_id,
                            ingredient=req.ingredient,
                        )
                    )
                    for req in group
                ),
                return_exceptions=True,
            )
            _raise_cancellation(outcomes)
            for req, outcome in zip(group, outcomes):
                if isinstance(outcome, Exception):
                    logger.warning(
                        f"[batch {batch_id}] Converting {req.amount} {req.from_unit} -> "
                        f"{req.to_unit} failed: {outcome!r}"
                    )
                    results.append(
                        failed_conversion(
                            req.amount,
                            normalize_unit(req.from_unit),
                            normalize_unit(req.to_unit),
                            f"Conversion failed: {outcome}",
                        )
                    )
                else:
                    results.append(outcome)

        return results


def _check_batch_size(batch_size: int) -> int:
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")
    return batch_size


def _raise_cancellation(outcomes: list[object]) -> None:
    # Only ordinary exceptions are per-item failures; cancellation propagates
    for outcome in outcomes:
        if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
            raise outcome
