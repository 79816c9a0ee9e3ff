"""Part and batch arithmetic for signed multi-part uploads.

Parts are numbered from 1. The signeds3upload endpoint hands out at most
``MAX_PARTS_PER_REQUEST`` URLs per call, so parts are grouped into batches:

    total_parts = 30  ->  batch 0: parts 1-25, batch 1: parts 26-30
"""

from __future__ import annotations

from dataclasses import dataclass

MEGABYTE = 1 << 20
DEFAULT_CHUNK_SIZE = 100 * MEGABYTE
# Smaller parts make the finalize call fail with [400, TooSmall].
MIN_CHUNK_SIZE = 5 * MEGABYTE
MAX_PARTS_PER_REQUEST = 25


@dataclass(frozen=True)
class PartBatch:
    index: int
    first_part: int
    part_count: int

    @property
    def last_part(self) -> int:
        return self.first_part + self.part_count - 1


@dataclass(frozen=True)
class UploadPlan:
    file_size: int
    chunk_size: int
    total_parts: int
    batches: tuple[PartBatch, ...]

    @property
    def total_batches(self) -> int:
        return len(self.batches)

    def part_size(self, part_number: int) -> int:
        """Expected byte length of a part; only the last part may be shorter than chunk_size."""
        if part_number < 1 or part_number > self.total_parts:
            raise ValueError(f"part_number must be in 1..{self.total_parts}, got {part_number}")
        if part_number < self.total_parts:
            return self.chunk_size
        return self.file_size - (self.total_parts - 1) * self.chunk_size


def ceil_div(x: int, y: int) -> int:
    if y <= 0:
        raise ValueError("divisor must be positive")
    return -(-x // y)


def count_parts(file_size: int, chunk_size: int) -> int:
    if file_size < 0:
        raise ValueError("file_size must not be negative")
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    # An empty file still needs one (empty) part to open an upload session.
    return max(1, ceil_div(file_size, chunk_size))


def count_batches(total_parts: int, max_parts: int = MAX_PARTS_PER_REQUEST) -> int:
    if total_parts < 1:
        raise ValueError("total_parts must be at least 1")
    return ceil_div(total_parts, max_parts)


def parts_in_batch(index: int, total_parts: int, max_parts: int = MAX_PARTS_PER_REQUEST) -> int:
    remaining = total_parts - index * max_parts
    if index < 0 or remaining <= 0:
        raise ValueError(f"batch index {index} is out of range for {total_parts} parts")
    return min(max_parts, remaining)


def plan_upload(file_size: int, chunk_size: int, max_parts: int = MAX_PARTS_PER_REQUEST) -> UploadPlan:
    total_parts = count_parts(file_size, chunk_size)
    batches = tuple(
        PartBatch(
            index=index,
            first_part=index * max_parts + 1,
            part_count=parts_in_batch(index, total_parts, max_parts),
        )
        for index in range(count_batches(total_parts, max_parts))
    )
    return UploadPlan(
        file_size=file_size,
        chunk_size=chunk_size,
        total_parts=total_parts,
        batches=batches,
    )
