# batches.py
"""Group a campaign's codes into the batches they were generated in.

Codes issued by the same actor, within the same second, with the same note
form one batch. A lone code is returned as a standalone group rather than a
batch of one.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone

from schemas import Code, CodeStatus


@dataclass(frozen=True)
class CodeGroup:
    key: str
    issued_at: datetime
    issued_by_name: str
    note: str | None
    codes: list[Code] = field(default_factory=list)

    @property
    def is_batch(self) -> bool:
        return len(self.codes) > 1

    @property
    def values(self) -> list[str]:
        return [code.value for code in self.codes]

    @property
    def deletable_ids(self) -> list[str]:
        return [code.id for code in self.codes if code.status == CodeStatus.AVAILABLE]


def _second(code: Code) -> int:
    return int(code.issued_at.astimezone(timezone.utc).timestamp())


def signature(code: Code) -> tuple[int, str, str | None]:
    return (_second(code), code.issued_by.name or "unknown", code.note)


def _sort_key(code: Code):
    second, name, note = signature(code)
    return (-second, name, note is not None, note or "")


def group_codes(codes: list[Code], issued_by_id: str | None = None) -> list[CodeGroup]:
    """Newest first. Sorting on the full signature keeps each batch
    contiguous, so a code from another batch landing in the same second
    never splits it."""
    if issued_by_id is not None:
        codes = [code for code in codes if code.issued_by.id == issued_by_id]

    groups: list[CodeGroup] = []
    current: list[Code] = []
    for code in sorted(codes, key=_sort_key):
        if current and signature(current[0]) != signature(code):
            groups.append(_make_group(current))
            current = []
        current.append(code)
    if current:
        groups.append(_make_group(current))
    return groups


def _make_group(codes: list[Code]) -> CodeGroup:
    first = codes[0]
    if len(codes) > 1:
        key = f"batch-{first.id}"
    else:
        key = first.id
    return CodeGroup(
        key=key,
        issued_at=first.issued_at,
        issued_by_name=first.issued_by.name or "unknown",
        note=first.note,
        codes=list(codes),
    )


def copy_values(group: CodeGroup) -> str:
    """Every value in the group, one per line, whatever its status."""
    return "\n".join(group.values)
