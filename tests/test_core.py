# tests/test_core.py

import json
from pathlib import Path

import pytest
from conftest import ETHANE_KEY, ETHANOL_KEY, METHANOL_KEY, WATER_KEY, node
from pytest_mock import MockerFixture

from retroviz.adapters.base_adapter import BaseAdapter
from retroviz.core import generate_run_hash, prepare_ground_truth, render_model_run, render_target_routes
from retroviz.domain.schemas import TargetInfo
from retroviz.domain.tree import collect_identities
from retroviz.io import load_json_gz, save_json_gz


@pytest.fixture
def ethanol_target() -> TargetInfo:
    return TargetInfo(id="ethanol", smiles="CCO")


@pytest.fixture
def raw_results_file(tmp_path: Path) -> Path:
    # Content doesn't matter for the adapter mock, only the route count does
    raw_file_path = tmp_path / "raw" / "results.json.gz"
    save_json_gz({"ethanol": [{"smiles": "CCO"}, {"smiles": "CCO"}, {"smiles": "CCO"}]}, raw_file_path)
    return raw_file_path


@pytest.fixture
def mock_adapter(mocker: MockerFixture, ground_truth_route, prediction_route):
    """An adapter that yields two distinct routes and one reordered duplicate."""
    reordered = node("CCO", ETHANOL_KEY, [node("CO", METHANOL_KEY), node("CC", ETHANE_KEY)])
    mock_adapter_instance = mocker.MagicMock(spec=BaseAdapter)
    mock_adapter_instance.adapt.return_value = iter([ground_truth_route, prediction_route, reordered])
    return mock_adapter_instance


def _read_manifest(output_dir: Path) -> dict:
    manifest_files = list(output_dir.glob("*-manifest.json"))
    assert len(manifest_files) == 1
    with manifest_files[0].open("r") as f:
        return json.load(f)


# --- generate_run_hash ---


def test_generate_run_hash_is_order_invariant() -> None:
    assert generate_run_hash("model", ["b", "a"]) == generate_run_hash("model", ["a", "b"])
    assert generate_run_hash("model", ["a"]).startswith("retroviz-run-")


def test_generate_run_hash_depends_on_model_name() -> None:
    assert generate_run_hash("model-1", ["a"]) != generate_run_hash("model-2", ["a"])


# --- render_model_run ---


def test_render_model_run_happy_path(
    tmp_path: Path, mock_adapter, raw_results_file: Path, ethanol_target: TargetInfo
) -> None:
    """
    Tests the full orchestration of render_model_run.
    - Mocks the adapter to return predictable routes.
    - Verifies that the graphs file and the manifest are written.
    """
    # 1. ARRANGE
    output_dir = tmp_path / "rendered"

    # 2. ACT
    output_path = render_model_run(
        model_name="test_model_v1",
        adapter=mock_adapter,
        raw_results_file=raw_results_file,
        output_dir=output_dir,
        targets_map={"ethanol": ethanol_target},
        stock_keys={ETHANE_KEY},
    )

    # 3. ASSERT
    # --- Verify Adapter Was Called Correctly ---
    mock_adapter.adapt.assert_called_once()
    call_args, _ = mock_adapter.adapt.call_args
    assert len(call_args[0]) == 3
    assert call_args[1] == ethanol_target

    # --- Verify Output Files ---
    assert output_path is not None
    manifest = _read_manifest(output_dir)
    assert manifest["model_name"] == "test_model_v1"
    assert manifest["results_file"] == output_path.name
    assert manifest["run_hash"] in output_path.name
    assert set(manifest["source_files"]) == {"results.json.gz"}
    assert manifest["stock_size"] == 1

    stats = manifest["statistics"]
    assert stats["total_routes_in_raw_files"] == 3
    assert stats["routes_failed_transformation"] == 0
    assert stats["final_unique_routes_rendered"] == 2
    assert stats["routes_with_ground_truth_diff"] == 0
    assert stats["num_targets_with_at_least_one_route"] == 1
    assert stats["duplication_factor"] == 1.5


def test_render_model_run_writes_positioned_graphs(
    tmp_path: Path, mock_adapter, raw_results_file: Path, ethanol_target: TargetInfo
) -> None:
    output_path = render_model_run(
        model_name="test_model_v1",
        adapter=mock_adapter,
        raw_results_file=raw_results_file,
        output_dir=tmp_path / "rendered",
        targets_map={"ethanol": ethanol_target},
        stock_keys={ETHANE_KEY},
    )

    assert output_path is not None
    graphs = load_json_gz(output_path)
    routes = graphs["ethanol"]
    assert [r["rank"] for r in routes] == [1, 2]
    assert all(r["diff_graph"] is None for r in routes)

    first = routes[0]["graph"]
    assert [n["id"] for n in first["nodes"]] == ["ethanol-r1-CCO", "ethanol-r1-CCO-0-CC", "ethanol-r1-CCO-1-O"]
    statuses = {n["smiles"]: n["status"] for n in first["nodes"]}
    assert statuses == {"CCO": "default", "CC": "in-stock", "O": "default"}


def test_render_model_run_with_ground_truth(
    tmp_path: Path, mock_adapter, raw_results_file: Path, ethanol_target: TargetInfo, ground_truth_route
) -> None:
    # Act
    output_path = render_model_run(
        model_name="test_model_v1",
        adapter=mock_adapter,
        raw_results_file=raw_results_file,
        output_dir=tmp_path / "rendered",
        targets_map={"ethanol": ethanol_target},
        ground_truth={"ethanol": ground_truth_route},
    )

    # Assert
    assert output_path is not None
    routes = load_json_gz(output_path)["ethanol"]
    assert all(r["diff_graph"] is not None for r in routes)

    # the first route is the ground truth itself, the second predicts CO instead of O
    first_statuses = {n["status"] for n in routes[0]["diff_graph"]["nodes"]}
    second_statuses = {n["smiles"]: n["status"] for n in routes[1]["diff_graph"]["nodes"]}
    assert first_statuses == {"match"}
    assert second_statuses == {"CCO": "match", "CC": "match", "CO": "extension", "O": "ghost"}
    assert all(n["id"].startswith("ethanol-r2-diff_") for n in routes[1]["diff_graph"]["nodes"])

    assert _read_manifest(tmp_path / "rendered")["statistics"]["routes_with_ground_truth_diff"] == 2


def test_render_model_run_top_k(
    tmp_path: Path, mock_adapter, raw_results_file: Path, ethanol_target: TargetInfo
) -> None:
    output_path = render_model_run(
        model_name="test_model_v1",
        adapter=mock_adapter,
        raw_results_file=raw_results_file,
        output_dir=tmp_path / "rendered",
        targets_map={"ethanol": ethanol_target},
        top_k=1,
    )

    assert output_path is not None
    assert len(load_json_gz(output_path)["ethanol"]) == 1


def test_render_model_run_counts_failed_routes(
    tmp_path: Path, mocker: MockerFixture, raw_results_file: Path, ethanol_target: TargetInfo, ground_truth_route
) -> None:
    """Routes the adapter drops count as failed transformations."""
    adapter = mocker.MagicMock(spec=BaseAdapter)
    adapter.adapt.return_value = iter([ground_truth_route])

    render_model_run(
        model_name="test_model_v1",
        adapter=adapter,
        raw_results_file=raw_results_file,
        output_dir=tmp_path / "rendered",
        targets_map={"ethanol": ethanol_target},
    )

    stats = _read_manifest(tmp_path / "rendered")["statistics"]
    assert stats["total_routes_in_raw_files"] == 3
    assert stats["routes_failed_transformation"] == 2
    assert stats["final_unique_routes_rendered"] == 1


def test_render_model_run_skips_unknown_targets(
    tmp_path: Path, mocker: MockerFixture, raw_results_file: Path
) -> None:
    # Arrange
    output_dir = tmp_path / "rendered"
    adapter = mocker.MagicMock(spec=BaseAdapter)

    # Act
    output_path = render_model_run(
        model_name="test_model_v2",
        adapter=adapter,
        raw_results_file=raw_results_file,
        output_dir=output_dir,
        targets_map={},
    )

    # Assert
    adapter.adapt.assert_not_called()
    assert output_path is None
    assert list(output_dir.glob("*-graphs.json.gz")) == []
    assert _read_manifest(output_dir)["results_file"] is None


def test_render_model_run_missing_raw_file(tmp_path: Path, mocker: MockerFixture) -> None:
    """Tests that the function exits gracefully if the raw file cannot be read."""
    adapter = mocker.MagicMock(spec=BaseAdapter)

    output_path = render_model_run(
        model_name="test_model_v3",
        adapter=adapter,
        raw_results_file=tmp_path / "does-not-exist.json.gz",
        output_dir=tmp_path / "rendered",
        targets_map={},
    )

    adapter.adapt.assert_not_called()
    assert output_path is None
    manifest = _read_manifest(tmp_path / "rendered")
    assert manifest["source_files"] == {}
    assert manifest["statistics"]["final_unique_routes_rendered"] == 0


# --- render_target_routes ---


def test_render_target_routes_namespaces_each_rank(ground_truth_route, prediction_route) -> None:
    rendered = render_target_routes("t1", [ground_truth_route, prediction_route], set())

    ids_1 = {n.id for n in rendered[0].graph.nodes}
    ids_2 = {n.id for n in rendered[1].graph.nodes}
    assert ids_1.isdisjoint(ids_2)
    assert all(i.startswith("t1-r1-") for i in ids_1)
    assert rendered[0].signature != rendered[1].signature


def test_render_target_routes_empty() -> None:
    assert render_target_routes("t1", [], set()) == []


# --- prepare_ground_truth ---


def test_prepare_ground_truth_takes_first_valid_route(
    mocker: MockerFixture, ethanol_target: TargetInfo, ground_truth_route, prediction_route
) -> None:
    # Arrange
    adapter = mocker.MagicMock(spec=BaseAdapter)
    adapter.adapt.return_value = iter([ground_truth_route, prediction_route])

    # Act
    ground_truth = prepare_ground_truth({"ethanol": [{}, {}]}, adapter, {"ethanol": ethanol_target})

    # Assert
    assert ground_truth == {"ethanol": ground_truth_route}
    assert collect_identities(ground_truth["ethanol"]) == {ETHANOL_KEY, ETHANE_KEY, WATER_KEY}


def test_prepare_ground_truth_skips_targets(mocker: MockerFixture, ethanol_target: TargetInfo, caplog) -> None:
    adapter = mocker.MagicMock(spec=BaseAdapter)
    adapter.adapt.return_value = iter([])

    ground_truth = prepare_ground_truth(
        {"ethanol": [{}], "unknown": [{}]}, adapter, {"ethanol": ethanol_target}
    )

    assert ground_truth == {}
    assert "No target info found" in caplog.text
    assert "No valid ground truth route for 'ethanol'" in caplog.text
