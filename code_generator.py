# code_generator.py
from datetime import datetime
import logging
import secrets
from typing import Callable, Iterable
import uuid

from config import CODE_ALPHABET, CODE_LENGTH, MAX_DRAWS_PER_CODE
from errors import GenerationExhaustedError
from schemas import Code, CodeStatus, Issuer

logger = logging.getLogger(__name__)

Chooser = Callable[[str], str]


def normalize_value(value: str) -> str:
    return value.strip().upper()


def random_code(choice: Chooser = secrets.choice, length: int = CODE_LENGTH) -> str:
    # Codes get typed by hand at the door, so keep to one case
    return "".join(choice(CODE_ALPHABET) for _ in range(length))


def unique_values(
    count: int,
    taken: Iterable[str],
    *,
    choice: Chooser = secrets.choice,
    max_draws: int = MAX_DRAWS_PER_CODE,
) -> list[str]:
    """Draw ``count`` values that collide neither with ``taken`` nor with each other.

    Each value gets ``max_draws`` attempts. Running out for any one of them
    fails the whole call, so callers never see a partial batch.
    """
    seen = {normalize_value(v) for v in taken}
    values: list[str] = []

    for index in range(count):
        for _ in range(max_draws):
            candidate = random_code(choice)
            if candidate not in seen:
                break
        else:
            logger.warning(
                "Gave up drawing code %d of %d after %d attempts",
                index + 1,
                count,
                max_draws,
                extra={"taken": len(seen), "requested": count},
            )
            raise GenerationExhaustedError(
                f"Could not find a unique code after {max_draws} attempts; try fewer codes",
                transition="generate",
            )
        seen.add(candidate)
        values.append(candidate)

    return values


def build_batch(
    values: list[str],
    *,
    issuer: Issuer,
    issued_at: datetime,
    note: str | None = None,
) -> list[Code]:
    note = note.strip() if note and note.strip() else None
    return [
        Code(
            id=uuid.uuid4().hex,
            value=value,
            status=CodeStatus.AVAILABLE,
            issued_by=issuer,
            issued_at=issued_at,
            note=note,
        )
        for value in values
    ]
