import csv
import json
import sys

import pytest

from household_dedupe import cli


def _run_test(tmp_path, **overrides) -> None:
    options = {
        "size": 60,
        "duplicate_rate": 0.3,
        "seed": 7,
        "output_dir": tmp_path,
        "input_csv": None,
        "mapping_path": None,
        "config_path": None,
        "workers": 1,
        "session_id": None,
        "checkpoint_dir": None,
        "show_clusters": 2,
        "progress": False,
    }
    options.update(overrides)
    cli.run_test(**options)


def test_run_test_writes_clusters_and_summary(tmp_path, capsys) -> None:
    _run_test(tmp_path)

    summary = json.loads((tmp_path / "summary.json").read_text(encoding="utf-8"))
    clusters = json.loads((tmp_path / "clusters.json").read_text(encoding="utf-8"))

    assert summary["record_count"] == 60
    assert summary["cluster_count"] == len(clusters)
    assert summary["max_cluster_size"] <= 4
    assert all(cluster["cluster_id"].startswith("cluster_") for cluster in clusters)
    assert "records=60" in capsys.readouterr().out


def test_run_test_reads_csv_with_custom_mapping_and_config(tmp_path) -> None:
    _run_test(tmp_path / "first")
    dataset = tmp_path / "first" / "test_dataset.csv"
    mapping = tmp_path / "mapping.json"
    mapping.write_text(
        json.dumps(
            {
                "womanName": "WOMAN_NAME",
                "husbandName": "HUSBAND_NAME",
                "nationalId": "NATIONAL_ID",
                "phone": "PHONE",
                "village": "VILLAGE",
                "subdistrict": "SUBDISTRICT",
                "children": "CHILDREN",
                "cluster_id": "",
            }
        ),
        encoding="utf-8",
    )
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"rules": {"ruleSet": "review"}}), encoding="utf-8")

    _run_test(
        tmp_path / "second",
        input_csv=dataset,
        mapping_path=mapping,
        config_path=config,
        session_id="cli-run",
        checkpoint_dir=tmp_path / "checkpoints",
    )

    summary = json.loads((tmp_path / "second" / "summary.json").read_text(encoding="utf-8"))
    assert summary["record_count"] == 60
    assert summary["dataset_path"] == str(dataset)
    assert not (tmp_path / "checkpoints" / "cli-run.checkpoint.json").exists()


def test_pairwise_writes_breakdown(tmp_path) -> None:
    _run_test(tmp_path)
    dataset = tmp_path / "test_dataset.csv"
    with dataset.open(encoding="utf-8") as handle:
        ids = [row["RECORD_ID"] for row in csv.DictReader(handle)][:3]
    output = tmp_path / "pairs.json"

    cli.pairwise(input_csv=dataset, record_ids=ids, mapping_path=None, config_path=None, output=output)

    rows = json.loads(output.read_text(encoding="utf-8"))
    assert len(rows) == 3
    assert {row["a"] for row in rows} | {row["b"] for row in rows} == set(ids)
    assert all("idScore" in row["breakdown"] for row in rows)


def test_main_reports_configuration_errors(tmp_path, monkeypatch) -> None:
    config = tmp_path / "bad.json"
    config.write_text(json.dumps({"thresholds": {"minPair": "high"}}), encoding="utf-8")
    monkeypatch.setattr(
        sys,
        "argv",
        ["household-dedupe", "run-test", "--size", "10", "--output-dir", str(tmp_path), "--config", str(config), "--no-progress"],
    )

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 2
