import pytest

from forge_client.services.upload_plan import (
    MAX_PARTS_PER_REQUEST,
    MEGABYTE,
    count_batches,
    count_parts,
    parts_in_batch,
    plan_upload,
)


def test_plan_upload_260_mib_fits_in_one_batch():
    plan = plan_upload(260 * MEGABYTE, 100 * MEGABYTE)

    assert plan.total_parts == 3
    assert plan.total_batches == 1
    assert plan.batches[0].first_part == 1
    assert plan.batches[0].part_count == 3
    assert plan.part_size(3) == 60 * MEGABYTE


def test_plan_upload_3000_mib_splits_into_two_batches():
    plan = plan_upload(3000 * MEGABYTE, 100 * MEGABYTE)

    assert plan.total_parts == 30
    assert plan.total_batches == 2
    assert (plan.batches[0].first_part, plan.batches[0].last_part) == (1, 25)
    assert (plan.batches[1].first_part, plan.batches[1].last_part) == (26, 30)
    assert plan.batches[1].part_count == 5


def test_count_parts_zero_byte_file_needs_one_part():
    assert count_parts(0, 100 * MEGABYTE) == 1

    plan = plan_upload(0, 100 * MEGABYTE)
    assert plan.total_batches == 1
    assert plan.part_size(1) == 0


@pytest.mark.parametrize("chunk_size", [1, 3, 7, 10, 64])
def test_count_parts_matches_ceiling_division(chunk_size):
    for file_size in range(0, 300):
        expected = max(1, -(-file_size // chunk_size))
        assert count_parts(file_size, chunk_size) == expected


def test_batches_cover_all_parts_without_exceeding_limit():
    for total_parts in range(1, 130):
        counts = [parts_in_batch(index, total_parts) for index in range(count_batches(total_parts))]

        assert sum(counts) == total_parts
        assert max(counts) <= MAX_PARTS_PER_REQUEST


def test_batch_first_parts_are_contiguous():
    plan = plan_upload(1000, 7)

    expected_first = 1
    for batch in plan.batches:
        assert batch.first_part == expected_first
        assert batch.first_part == batch.index * MAX_PARTS_PER_REQUEST + 1
        expected_first = batch.last_part + 1
    assert expected_first == plan.total_parts + 1


def test_part_size_last_part_is_remainder_or_full_chunk():
    assert plan_upload(25, 10).part_size(3) == 5
    assert plan_upload(30, 10).part_size(3) == 10
    assert plan_upload(30, 10).part_size(1) == 10


def test_plan_upload_rejects_invalid_sizes():
    with pytest.raises(ValueError):
        count_parts(-1, 10)
    with pytest.raises(ValueError):
        count_parts(10, 0)
    with pytest.raises(ValueError):
        parts_in_batch(2, 30)
    with pytest.raises(ValueError):
        plan_upload(25, 10).part_size(4)
