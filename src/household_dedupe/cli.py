from __future__ import annotations

import argparse
import csv
import json
import logging
from concurrent.futures import Executor, ProcessPoolExecutor
from dataclasses import asdict
from pathlib import Path
from typing import Any

from tqdm import tqdm

from household_dedupe.checkpoints import JsonCheckpointStore
from household_dedupe.config import DedupeConfig, load_config
from household_dedupe.datasets import DEFAULT_COLUMNS, DEFAULT_MAPPING, ID_COLUMN, ReferenceDatasetGenerator
from household_dedupe.errors import DedupeError
from household_dedupe.models import Cluster, Progress
from household_dedupe.runners import DedupeResult, LocalDedupePipeline
from household_dedupe.schema import FieldMapping
from household_dedupe.steps import RecordNormalizer, full_pairwise_breakdown

_NOISY_PREVIEW_COLUMNS = {
    ID_COLUMN,
    "BENEFICIARY_ID",
    "REGISTERED_DATE",
}


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "run-test":
            run_test(
                size=args.size,
                duplicate_rate=args.duplicate_rate,
                seed=args.seed,
                output_dir=args.output_dir,
                input_csv=args.input_csv,
                mapping_path=args.mapping,
                config_path=args.config,
                workers=args.workers,
                session_id=args.session_id,
                checkpoint_dir=args.checkpoint_dir,
                show_clusters=args.show_clusters,
                progress=not args.no_progress,
            )
            return
        if args.command == "pairwise":
            pairwise(
                input_csv=args.input_csv,
                record_ids=args.rows,
                mapping_path=args.mapping,
                config_path=args.config,
                output=args.output,
            )
            return
    except DedupeError as exc:
        parser.exit(2, f"error: {exc}\n")

    parser.print_help()


def run_test(
    *,
    size: int,
    duplicate_rate: float,
    seed: int,
    output_dir: Path,
    input_csv: Path | None,
    mapping_path: Path | None,
    config_path: Path | None,
    workers: int,
    session_id: str | None,
    checkpoint_dir: Path | None,
    show_clusters: int,
    progress: bool,
) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)

    if input_csv is None:
        rows = ReferenceDatasetGenerator(seed=seed).generate(size=size, duplicate_rate=duplicate_rate)
        dataset_path = output_dir / "test_dataset.csv"
        _write_rows_csv(dataset_path, rows, DEFAULT_COLUMNS)
    else:
        rows = _read_rows_csv(input_csv)
        dataset_path = input_csv

    mapping = _load_mapping(mapping_path)
    config = load_config(config_path) if config_path else DedupeConfig()
    ids = [row.get(ID_COLUMN) or f"row_{i}" for i, row in enumerate(rows)]

    executor: Executor | None = ProcessPoolExecutor(max_workers=workers) if workers > 1 else None
    bar = tqdm(total=100, unit="%", desc="receiving", disable=not progress)

    def on_progress(update: Progress) -> None:
        bar.set_description(update.status.value)
        bar.update(max(0, update.percent_complete - bar.n))

    try:
        pipeline = LocalDedupePipeline(
            mapping,
            config,
            session_id=session_id,
            checkpoint_store=JsonCheckpointStore(checkpoint_dir) if checkpoint_dir else None,
            executor=executor,
            on_progress=on_progress,
        )
        result = pipeline.run_detailed(rows, ids=ids)
    finally:
        bar.close()
        if executor is not None:
            executor.shutdown()

    clusters_path = output_dir / "clusters.json"
    summary_path = output_dir / "summary.json"

    _write_json(clusters_path, [_cluster_payload(cluster) for cluster in result.clusters])
    summary = _build_summary(
        result=result,
        dataset_path=dataset_path,
        clusters_path=clusters_path,
    )
    _write_json(summary_path, summary)

    print(f"Dataset: {dataset_path}")
    print(f"Clusters: {clusters_path}")
    print(f"Summary: {summary_path}")
    print("---")
    print(f"records={summary['record_count']}")
    print(f"blocks={summary['block_count']}")
    print(f"edges={summary['edge_count']}")
    print(f"clusters={summary['cluster_count']}")
    print(f"clustered_records={summary['clustered_record_count']}")
    print(f"avg_cluster_size={summary['avg_cluster_size']}")
    print(f"confidence_levels={json.dumps(summary['confidence_levels'], ensure_ascii=False)}")
    if show_clusters > 0:
        print("---")
        print("sample_clusters=")
        print(json.dumps(_cluster_sample_payload(result.clusters, limit=show_clusters), indent=2, ensure_ascii=False))


def pairwise(
    *,
    input_csv: Path,
    record_ids: list[str],
    mapping_path: Path | None,
    config_path: Path | None,
    output: Path | None,
) -> None:
    rows = _read_rows_csv(input_csv)
    ids = [row.get(ID_COLUMN) or f"row_{i}" for i, row in enumerate(rows)]
    wanted = set(record_ids)
    selected = [(record_id, row) for record_id, row in zip(ids, rows) if record_id in wanted]
    missing = sorted(wanted - {record_id for record_id, _ in selected})
    if missing:
        print(f"Unknown record ids: {', '.join(missing)}")

    records = RecordNormalizer(_load_mapping(mapping_path)).normalize(
        [row for _, row in selected],
        ids=[record_id for record_id, _ in selected],
    )
    config = load_config(config_path) if config_path else DedupeConfig()
    payload = [asdict(row) for row in full_pairwise_breakdown(records, config)]

    if output is not None:
        _write_json(output, payload)
        print(f"Pairwise breakdown: {output}")
    else:
        print(json.dumps(payload, indent=2, ensure_ascii=False))


def _build_summary(
    *,
    result: DedupeResult,
    dataset_path: Path,
    clusters_path: Path,
) -> dict[str, object]:
    clusters = result.clusters
    cluster_sizes = [len(cluster.record_ids) for cluster in clusters]
    clustered_record_count = len({record_id for cluster in clusters for record_id in cluster.record_ids})
    levels: dict[str, int] = {}
    reasons: dict[str, int] = {}
    for cluster in clusters:
        levels[cluster.confidence_level] = levels.get(cluster.confidence_level, 0) + 1
        for reason in cluster.reasons:
            reasons[reason] = reasons.get(reason, 0) + 1

    return {
        "record_count": len(result.records),
        "block_count": result.block_stats.get("total_blocks", 0),
        "estimated_candidate_pairs": result.block_stats.get("estimated_pairs_with_blocking", 0),
        "reduction_ratio": round(result.block_stats.get("reduction_ratio", 0.0), 6),
        "edge_count": len(result.edges),
        "cluster_count": len(clusters),
        "clustered_record_count": clustered_record_count,
        "avg_cluster_size": round(sum(cluster_sizes) / len(cluster_sizes), 3) if cluster_sizes else 0.0,
        "max_cluster_size": max(cluster_sizes) if cluster_sizes else 0,
        "min_cluster_size": min(cluster_sizes) if cluster_sizes else 0,
        "confidence_levels": levels,
        "reason_counts": reasons,
        "dataset_path": str(dataset_path),
        "clusters_path": str(clusters_path),
    }


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="household-dedupe", description="Household beneficiary dedupe CLI")
    parser.add_argument("--log-level", default="warning", choices=["debug", "info", "warning", "error"])
    subparsers = parser.add_subparsers(dest="command")

    run_test_parser = subparsers.add_parser(
        "run-test",
        help="Generate or load a dataset, run dedupe, and output clusters + summary",
    )
    run_test_parser.add_argument("--size", type=int, default=2000)
    run_test_parser.add_argument("--duplicate-rate", type=float, default=0.15)
    run_test_parser.add_argument("--seed", type=int, default=42)
    run_test_parser.add_argument("--input-csv", type=Path, default=None)
    run_test_parser.add_argument("--mapping", type=Path, default=None, help="JSON object of field -> column")
    run_test_parser.add_argument("--config", type=Path, default=None, help="JSON engine settings")
    run_test_parser.add_argument("--output-dir", type=Path, default=Path("data/cli_output"))
    run_test_parser.add_argument("--workers", type=int, default=1)
    run_test_parser.add_argument("--session-id", type=str, default=None)
    run_test_parser.add_argument("--checkpoint-dir", type=Path, default=None)
    run_test_parser.add_argument("--show-clusters", type=int, default=10)
    run_test_parser.add_argument("--no-progress", action="store_true")

    pairwise_parser = subparsers.add_parser(
        "pairwise",
        help="Score every pair among selected rows and print the component breakdown",
    )
    pairwise_parser.add_argument("--input-csv", type=Path, required=True)
    pairwise_parser.add_argument("--rows", nargs="+", required=True, help=f"values of the {ID_COLUMN} column")
    pairwise_parser.add_argument("--mapping", type=Path, default=None)
    pairwise_parser.add_argument("--config", type=Path, default=None)
    pairwise_parser.add_argument("--output", type=Path, default=None)

    return parser


def _load_mapping(path: Path | None) -> FieldMapping:
    if path is None:
        return DEFAULT_MAPPING
    with path.open("r", encoding="utf-8") as handle:
        return FieldMapping.from_mapping(json.load(handle))


def _write_json(path: Path, payload: object) -> None:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False)


def _write_rows_csv(path: Path, rows: list[dict[str, str]], columns: list[str]) -> None:
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=[ID_COLUMN, *columns])
        writer.writeheader()
        writer.writerows(rows)


def _read_rows_csv(path: Path) -> list[dict[str, str]]:
    with path.open("r", newline="", encoding="utf-8-sig") as handle:
        return [dict(row) for row in csv.DictReader(handle)]


def _cluster_payload(cluster: Cluster) -> dict[str, Any]:
    return {
        "cluster_id": cluster.cluster_id,
        "record_ids": cluster.record_ids,
        "reasons": cluster.reasons,
        "confidence": round(cluster.confidence, 4),
        "confidence_level": cluster.confidence_level,
        "avg_woman_name_score": round(cluster.avg_woman_name_score, 4),
        "avg_husband_name_score": round(cluster.avg_husband_name_score, 4),
        "pair_scores": [asdict(audit) for audit in cluster.pair_scores],
    }


def _cluster_sample_payload(clusters: list[Cluster], limit: int = 10) -> list[dict[str, Any]]:
    ranked = sorted(clusters, key=lambda cluster: (-len(cluster.record_ids), cluster.cluster_id))
    payload: list[dict[str, Any]] = []

    for cluster in ranked[:limit]:
        differing_columns = _differing_columns(cluster)
        projected_records: list[dict[str, Any]] = []
        for record in cluster.records:
            projected_values = [str(record.raw.get(column, "")) for column in differing_columns]
            projected_records.append(
                {
                    "record_id": record.id,
                    "projected_values": projected_values,
                }
            )

        payload.append(
            {
                "cluster_id": cluster.cluster_id,
                "size": len(cluster.record_ids),
                "confidence": round(cluster.confidence, 4),
                "confidence_level": cluster.confidence_level,
                "reasons": cluster.reasons,
                "differing_columns": differing_columns,
                "projected_records": projected_records,
            }
        )
    return payload


def _differing_columns(cluster: Cluster) -> list[str]:
    if len(cluster.records) <= 1:
        return []
    columns = sorted({column for record in cluster.records for column in record.raw})
    differing: list[str] = []
    for column in columns:
        if column.upper() in _NOISY_PREVIEW_COLUMNS:
            continue
        values = {str(record.raw.get(column, "")).strip() for record in cluster.records}
        if len(values) > 1:
            differing.append(column)
    return differing


if __name__ == "__main__":
    main()
