import asyncio
from datetime import datetime, timezone

import pytest

from domain.common.exceptions import IdentifierGenerationError
from domain.order.exceptions import OrderNumberGenerationError
from domain.order.number import IdentifierGenerator


def _clock():
    return datetime(2025, 3, 7, 12, 0, tzinfo=timezone.utc)


def _fixed_entropy(width):
    return "1" * width


@pytest.mark.asyncio
async def test_format_prefix_date_and_digits():
    gen = IdentifierGenerator("MD", random_digits=8, clock=_clock)

    async def never_exists(value):
        return False

    value = await gen.generate(never_exists)
    assert value.startswith("MD250307")
    assert len(value) == len("MD250307") + 8
    assert value[8:].isdigit()


@pytest.mark.asyncio
async def test_collision_retries_with_attempt_counter():
    gen = IdentifierGenerator("MD", random_digits=4, clock=_clock, entropy=_fixed_entropy)
    taken = {"MD2503071111"}

    async def exists(value):
        return value in taken

    value = await gen.generate(exists)
    assert value == "MD250307111101"


@pytest.mark.asyncio
async def test_exhaustion_raises_configured_error():
    gen = IdentifierGenerator(
        "MD",
        random_digits=4,
        max_attempts=3,
        clock=_clock,
        entropy=_fixed_entropy,
        error_cls=OrderNumberGenerationError,
    )
    calls = []

    async def always_exists(value):
        calls.append(value)
        return True

    with pytest.raises(OrderNumberGenerationError) as exc_info:
        await gen.generate(always_exists)
    assert len(calls) == 3
    assert exc_info.value.details == {"prefix": "MD", "attempts": 3}
    assert isinstance(gen.exhausted(), IdentifierGenerationError)


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        IdentifierGenerator("MD", max_attempts=0)


@pytest.mark.asyncio
async def test_concurrent_generation_yields_distinct_values():
    gen = IdentifierGenerator("PAY", random_digits=8)
    issued: set[str] = set()

    async def claim():
        async def exists(value):
            await asyncio.sleep(0)
            return value in issued

        value = await gen.generate(exists)
        issued.add(value)
        return value

    values = await asyncio.gather(*(claim() for _ in range(50)))
    assert len(set(values)) == 50
