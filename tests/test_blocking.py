from household_dedupe.steps import block_statistics, build_blocks, candidate_pairs
from household_dedupe.steps.blocking import CATCH_ALL_KEY, blocking_keys


def test_blocking_keys_cover_names_places_and_contacts(make_record) -> None:
    record = make_record(
        woman="فاطمة احمد علي",
        husband="صالح محمد",
        national_id="1234567890",
        phone="771234567",
        village="الحصين",
        subdistrict="المسراخ",
    )

    keys = blocking_keys(record)

    assert "wf:فاط" in keys
    assert "ff:احمد" in keys
    assert "wl:علي" in keys
    assert "hf:صالح" in keys
    assert "hl:محمد" in keys
    assert "v:الحصين" in keys
    assert "sd:المسرا" in keys
    assert "ffhf:احمد:صالح" in keys
    assert "wfhf:فاط:صال" in keys
    assert "ws:احمد|علي|فاطمه" in keys
    assert "wp:فاط:4567" in keys
    assert "wi:فاط:7890" in keys
    assert "nid:1234567890" in keys


def test_record_without_keys_goes_to_catch_all(make_record) -> None:
    assert blocking_keys(make_record()) == [CATCH_ALL_KEY]


def test_reordered_names_share_the_signature_key(make_record) -> None:
    a = make_record(0, woman="احمد علي فاطمة")
    b = make_record(1, woman="فاطمة احمد علي")

    shared = set(blocking_keys(a)) & set(blocking_keys(b))

    assert shared == {"ws:احمد|علي|فاطمه"}


def test_each_pair_is_yielded_once(make_record) -> None:
    records = [make_record(i, woman="فاطمة احمد علي", husband="صالح محمد", village="الحصين") for i in range(3)]

    pairs = list(candidate_pairs(build_blocks(records), chunk_size=3000))

    assert sorted(pairs) == [(0, 1), (0, 2), (1, 2)]
    assert len(pairs) == len(set(pairs))


def test_unrelated_records_are_never_paired(make_record) -> None:
    records = [
        make_record(0, woman="فاطمة احمد علي", husband="صالح محمد", village="الحصين", subdistrict="المسراخ"),
        make_record(1, woman="زينب سعيد ناصر", husband="خالد منصور", village="الضالع", subdistrict="جبن"),
    ]

    blocks = build_blocks(records)

    assert list(candidate_pairs(blocks, chunk_size=3000)) == []
    assert list(blocks.candidate_blocks()) == []


def test_pairs_do_not_depend_on_chunk_size(make_record) -> None:
    records = [make_record(i, village="الحصين") for i in range(5)]
    blocks = build_blocks(records)
    expected = [(a, b) for a in range(5) for b in range(a + 1, 5)]

    assert blocks.get("v:الحصين") == [0, 1, 2, 3, 4]
    for chunk_size in (1, 2, 3, 3000):
        pairs = list(candidate_pairs(blocks, chunk_size=chunk_size))
        assert sorted(pairs) == expected
        assert len(pairs) == len(set(pairs))
    assert list(candidate_pairs(blocks, chunk_size=2))[:5] == [(0, 1), (0, 2), (0, 3), (1, 2), (1, 3)]


def test_block_statistics_do_not_depend_on_chunk_size(make_record) -> None:
    records = [make_record(i, village="الحصين") for i in range(5)]
    blocks = build_blocks(records)

    small = block_statistics(blocks, len(records), chunk_size=2)
    large = block_statistics(blocks, len(records), chunk_size=3000)

    assert small["estimated_pairs_with_blocking"] == large["estimated_pairs_with_blocking"] == 10
    assert small["sliced_blocks"] == 1
    assert large["sliced_blocks"] == 0


def test_block_statistics_report_reduction(make_record) -> None:
    records = [make_record(i, village="الحصين") for i in range(4)] + [
        make_record(4, village="الضالع"),
        make_record(5, village="حيفان"),
    ]

    stats = block_statistics(build_blocks(records), len(records), chunk_size=3000)

    assert stats["total_pairs_without_blocking"] == 15
    assert stats["estimated_pairs_with_blocking"] == 6
    assert stats["total_blocks"] == 3
    assert stats["candidate_blocks"] == 1
    assert stats["sliced_blocks"] == 0
    assert stats["reduction_ratio"] == 1 - 6 / 15
    assert stats["key_kind_counts"] == {"v": 3}
