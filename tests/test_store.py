from __future__ import annotations

import json
from dataclasses import replace

import pytest

from steptrace.core.models import TestStatus
from steptrace.core.store import ResultStore


def test_persist_writes_unique_files(store, make_result) -> None:
    first = store.persist(make_result("PXX-1"))
    second = store.persist(make_result("PXX-1"))
    assert first != second
    assert first.name.startswith("result-PXX-1-")
    assert len(list(store.results_dir.glob("*.json"))) == 2


def test_persisted_document_shape(store, make_result) -> None:
    path = store.persist(make_result("PXX-2", target="PXX-90"))
    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["testKey"] == "PXX-2"
    assert document["status"] == "PASSED"
    assert document["specFile"] == "test_login.py"
    assert document["targetExecutionKey"] == "PXX-90"
    assert document["steps"] == [{"status": "PASSED", "actualResult": "Open", "evidences": []}]


def test_collect_reads_files_from_other_processes(tmp_path, make_result) -> None:
    writer = ResultStore(tmp_path / "results")
    writer.persist(make_result("PXX-1"))
    writer.persist(make_result("PXX-2", status=TestStatus.FAILED))
    reader = ResultStore(tmp_path / "results")
    results = reader.collect()
    assert sorted(r.test_key for r in results) == ["PXX-1", "PXX-2"]
    assert {r.test_key: r.status for r in results}["PXX-2"] is TestStatus.FAILED


def test_collect_skips_unreadable_and_invalid_files(store, make_result) -> None:
    store.persist(make_result("PXX-1"))
    (store.results_dir / "broken.json").write_text("{not json", encoding="utf-8")
    (store.results_dir / "invalid.json").write_text(json.dumps({"testKey": "nope"}), encoding="utf-8")
    (store.results_dir / "list.json").write_text("[]", encoding="utf-8")
    assert [r.test_key for r in store.collect()] == ["PXX-1"]


def test_collect_falls_back_to_local_results(store, make_result) -> None:
    result = make_result("PXX-3")
    store.persist(result)
    for path in store.results_dir.glob("*.json"):
        path.unlink()
    assert store.collect() == [result]


def test_persist_rejects_invalid_result(store, make_result) -> None:
    with pytest.raises(ValueError):
        store.persist(replace(make_result(), test_key="not-a-key"))
    assert store.local_results == []


def test_persist_write_failure_keeps_local_copy(tmp_path, make_result) -> None:
    blocker = tmp_path / "results"
    blocker.write_text("a file, not a directory", encoding="utf-8")
    store = ResultStore(blocker)
    assert store.persist(make_result("PXX-4")) is None
    assert [r.test_key for r in store.local_results] == ["PXX-4"]


def test_clear_is_idempotent(store, make_result) -> None:
    store.persist(make_result())
    store.clear()
    store.clear()
    assert not store.results_dir.exists()
    assert store.local_results == []
    assert store.collect() == []
