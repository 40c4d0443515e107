from itertools import combinations

from household_dedupe.config import DedupeConfig
from household_dedupe.models import Edge
from household_dedupe.steps import CascadeScorer, SizeCappedClusterer, UnionFind, split_cluster


def _twins(make_record, count: int, **fields):
    defaults = {"woman": "فاطمة احمد علي", "husband": "صالح محمد", "national_id": "1234567890"}
    defaults.update(fields)
    return [make_record(i, **defaults) for i in range(count)]


def test_union_find_tracks_members_and_reasons() -> None:
    uf = UnionFind(range(4))

    uf.union(0, 1, ["EXACT_ID"])
    uf.union(1, 2, ["TOKEN_REORDER"])

    assert uf.find(0) == uf.find(2)
    assert uf.size(2) == 3
    assert uf.members(1) == [0, 1, 2]
    assert uf.reasons(0) == {"EXACT_ID", "TOKEN_REORDER"}
    assert uf.members(3) == [3]


def test_union_find_detach_leaves_rest_of_group_intact() -> None:
    uf = UnionFind(range(3))
    uf.union(0, 1, ["EXACT_ID"])
    uf.union(1, 2)

    uf.detach(1)

    assert uf.members(0) == [0, 2]
    assert uf.members(1) == [1]
    assert uf.find(1) != uf.find(0)
    assert uf.reasons(2) == {"EXACT_ID"}
    assert sorted(map(len, uf.groups().values())) == [1, 2]


def test_split_cluster_caps_every_group(make_record) -> None:
    records = _twins(make_record, 30)

    groups = split_cluster(range(30), records, CascadeScorer(DedupeConfig()), min_internal=0.5)

    assert [len(group.members) for group in groups] == [4] * 7 + [2]
    assert sorted(i for group in groups for i in group.members) == list(range(30))
    assert all(group.reasons == {"EXACT_ID"} for group in groups)
    assert len(groups[0].audits) == 6
    assert groups[0].audits[0].component_scores["idScore"] == 1.0


def test_split_cluster_drops_singletons(make_record) -> None:
    records = _twins(make_record, 5)
    records.append(make_record(5, woman="زينب سعيد ناصر", husband="خالد منصور"))

    groups = split_cluster(range(6), records, CascadeScorer(DedupeConfig()), min_internal=0.5)

    assert [group.members for group in groups] == [[0, 1, 2, 3]]


def test_overflowing_merge_finalizes_and_restarts_the_rest(make_record) -> None:
    records = _twins(make_record, 6)
    edges = [Edge(a, b, 0.99, ("EXACT_ID",)) for a, b in combinations(range(6), 2)]

    clusters = SizeCappedClusterer(CascadeScorer(DedupeConfig())).cluster(records, edges)

    assert [cluster.record_ids for cluster in clusters] == [
        ["row_0", "row_1", "row_2", "row_3"],
        ["row_4", "row_5"],
    ]
    assert [cluster.cluster_id for cluster in clusters] == ["cluster_00001", "cluster_00002"]


def test_leftover_components_become_clusters(make_record) -> None:
    records = _twins(make_record, 2)
    records.append(make_record(2, woman="زينب سعيد ناصر", husband="خالد منصور"))
    progress: list[tuple[int, int]] = []

    clusters = SizeCappedClusterer(CascadeScorer(DedupeConfig())).cluster(
        records,
        [Edge(0, 1, 0.99, ("EXACT_ID",))],
        on_progress=lambda done, total: progress.append((done, total)),
    )

    [cluster] = clusters
    assert cluster.record_ids == ["row_0", "row_1"]
    assert cluster.reasons == ["EXACT_ID"]
    assert [audit.final_score for audit in cluster.pair_scores] == [0.99]
    assert [record.index for record in cluster.records] == [0, 1]
    assert progress[-1] == (1, 1)


def test_no_edges_means_no_clusters(make_record) -> None:
    records = _twins(make_record, 3)

    assert SizeCappedClusterer(CascadeScorer(DedupeConfig())).cluster(records, []) == []
