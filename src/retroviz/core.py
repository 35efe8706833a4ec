import datetime
import hashlib
from collections.abc import Set
from pathlib import Path
from typing import Any

from tqdm import tqdm

from retroviz.adapters.base_adapter import BaseAdapter
from retroviz.domain.schemas import RenderedRoute, RouteVisualizationNode, RunStatistics, TargetInfo
from retroviz.domain.tree import deduplicate_routes, generate_route_signature
from retroviz.exceptions import RetrovizIOException
from retroviz.io import get_file_hash, load_json_gz, save_json, save_json_gz
from retroviz.utils.logging import logger
from retroviz.visualization.comparison import build_diff_overlay_graph
from retroviz.visualization.graph_builder import build_route_graph


def generate_run_hash(model_name: str, file_hashes: list[str]) -> str:
    """
    Generates a deterministic ID for a rendering run from the model name and
    the content of its input files.
    """
    run_signature = model_name + "".join(sorted(file_hashes))
    return f"retroviz-run-{hashlib.sha256(run_signature.encode('utf-8')).hexdigest()}"


def prepare_ground_truth(
    raw_ground_truth: dict[str, Any], adapter: BaseAdapter, targets_map: dict[str, TargetInfo]
) -> dict[str, RouteVisualizationNode]:
    """
    Adapts the reference route of every target.

    Raw data holds a list of routes per target, like model output; the first
    route that passes the adapter is used as the reference.
    """
    ground_truth: dict[str, RouteVisualizationNode] = {}
    for target_id, raw_routes in raw_ground_truth.items():
        if target_id not in targets_map:
            logger.warning(f"Skipping ground truth for '{target_id}': No target info found.")
            continue
        route = next(adapter.adapt(raw_routes, targets_map[target_id]), None)
        if route is None:
            logger.warning(f"No valid ground truth route for '{target_id}'.")
            continue
        ground_truth[target_id] = route

    logger.info(f"Prepared ground truth routes for {len(ground_truth)} targets.")
    return ground_truth


def render_target_routes(
    target_id: str,
    routes: list[RouteVisualizationNode],
    stock_keys: Set[str],
    ground_truth: RouteVisualizationNode | None = None,
) -> list[RenderedRoute]:
    """
    Lays out every route of one target, in rank order.

    Each route gets its own id namespace so all graphs of a target can be
    shown on one page. When a reference route is given, a diff overlay
    against it is attached as well.
    """
    rendered = []
    for rank, route in enumerate(routes, start=1):
        id_prefix = f"{target_id}-r{rank}-"
        diff_graph = None
        if ground_truth is not None:
            diff_graph = build_diff_overlay_graph(ground_truth, route, stock_keys, id_prefix=f"{id_prefix}diff_")
        rendered.append(
            RenderedRoute(
                rank=rank,
                signature=generate_route_signature(route),
                graph=build_route_graph(route, stock_keys, id_prefix),
                diff_graph=diff_graph,
            )
        )
    return rendered


def render_model_run(
    model_name: str,
    adapter: BaseAdapter,
    raw_results_file: Path,
    output_dir: Path,
    targets_map: dict[str, TargetInfo],
    stock_keys: Set[str] = frozenset(),
    ground_truth: dict[str, RouteVisualizationNode] | None = None,
    top_k: int | None = None,
) -> Path | None:
    """
    Orchestrates rendering of a model's predictions into positioned route graphs.

    Returns the path of the written graphs file, or None when no route could be rendered.
    """
    logger.info(f"--- Starting Retroviz Rendering for Model: '{model_name}' ---")
    output_dir.mkdir(parents=True, exist_ok=True)
    ground_truth = ground_truth or {}

    final_output_data: dict[str, list[dict[str, Any]]] = {}
    stats = RunStatistics()
    source_file_info = {}

    try:
        logger.info(f"Processing file: {raw_results_file.name}")
        raw_data_per_target = load_json_gz(raw_results_file)
        source_file_info[raw_results_file.name] = get_file_hash(raw_results_file)
    except RetrovizIOException as e:
        logger.error(f"Could not read or parse file {raw_results_file}. Skipping. Error: {e}")
        raw_data_per_target = {}

    run_hash = generate_run_hash(model_name, list(source_file_info.values()))
    logger.info(f"Generated unique run hash: '{run_hash}'")

    pbar = tqdm(raw_data_per_target.items(), desc="Rendering targets", unit="target")
    for target_id, raw_routes_list in pbar:
        if target_id not in targets_map:
            logger.warning(f"Skipping routes for '{target_id}': No target info found.")
            continue

        num_raw = len(raw_routes_list) if isinstance(raw_routes_list, list) else 0
        transformed_routes = list(adapter.adapt(raw_routes_list, targets_map[target_id]))
        unique_routes = deduplicate_routes(transformed_routes)
        if top_k is not None:
            unique_routes = unique_routes[:top_k]

        rendered = render_target_routes(target_id, unique_routes, stock_keys, ground_truth.get(target_id))
        if rendered:
            # dump to dicts right away instead of holding pydantic objects for the whole run
            final_output_data[target_id] = [r.model_dump(mode="json") for r in rendered]
            stats.targets_with_at_least_one_route.add(target_id)

        stats.total_routes_in_raw_files += num_raw
        stats.routes_failed_transformation += max(num_raw - len(transformed_routes), 0)
        stats.successful_routes_before_dedup += len(transformed_routes)
        stats.final_unique_routes_rendered += len(rendered)
        stats.routes_with_ground_truth_diff += sum(r.diff_graph is not None for r in rendered)

    output_path: Path | None = None
    if final_output_data:
        output_path = output_dir / f"{run_hash}-graphs.json.gz"
        logger.info(f"Writing {stats.final_unique_routes_rendered} route graphs to: {output_path}")
        save_json_gz(final_output_data, output_path)
    else:
        logger.warning("No routes were successfully rendered. No output file written.")

    manifest = {
        "run_hash": run_hash,
        "model_name": model_name,
        "results_file": output_path.name if output_path else None,
        "processing_timestamp_utc": datetime.datetime.now(datetime.UTC).isoformat(timespec="seconds"),
        "source_files": source_file_info,
        "stock_size": len(stock_keys),
        "statistics": stats.to_manifest_dict(),
    }
    manifest_path = output_dir / f"{run_hash}-manifest.json"
    save_json(manifest, manifest_path)
    logger.info(f"--- Rendering Complete. Manifest written to {manifest_path} ---")
    return output_path
